"""
poisson_disc.py
===============
Blue-noise point sampling (Bridson's Poisson-disc algorithm).

Points are spread over a ``width × height`` rectangle with no two closer than
``radius``.  A background grid with cell size ``radius / √2`` holds at most
one point per cell, so a candidate only has to be checked against the 5×5
block of cells around it.

Output order is insertion order.  Callers that want the points ordered by
distance from some centre must sort them.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

RngLike = Union[np.random.Generator, int, None]


def _bridson(
    width: float,
    height: float,
    radius: float,
    k: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Core sampler; returns an ``(N, 2)`` array of (u, v) positions."""
    cell = radius / math.sqrt(2.0)
    grid_w = int(math.ceil(width / cell))
    grid_h = int(math.ceil(height / cell))
    grid = np.full((grid_w, grid_h), -1, dtype=np.int64)
    r2 = radius * radius

    points: list[tuple[float, float]] = []
    active: list[int] = []

    first = (rng.random() * width, rng.random() * height)
    points.append(first)
    active.append(0)
    grid[min(int(first[0] / cell), grid_w - 1),
         min(int(first[1] / cell), grid_h - 1)] = 0

    while active:
        slot = int(rng.integers(len(active)))
        px, py = points[active[slot]]
        found = False

        for _ in range(k):
            angle = 2.0 * math.pi * rng.random()
            mag = radius * (1.0 + rng.random())
            cx = px + math.cos(angle) * mag
            cy = py + math.sin(angle) * mag

            if not (0.0 <= cx < width and 0.0 <= cy < height):
                continue

            gx = min(int(cx / cell), grid_w - 1)
            gy = min(int(cy / cell), grid_h - 1)
            block = grid[max(gx - 2, 0):min(gx + 3, grid_w),
                         max(gy - 2, 0):min(gy + 3, grid_h)]

            too_close = False
            for idx in block[block >= 0]:
                nx, ny = points[idx]
                if (cx - nx) ** 2 + (cy - ny) ** 2 < r2:
                    too_close = True
                    break

            if not too_close:
                points.append((cx, cy))
                active.append(len(points) - 1)
                grid[gx, gy] = len(points) - 1
                found = True
                break

        if not found:
            # swap-remove; the point stays in the result
            active[slot] = active[-1]
            active.pop()

    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def _validate(width: float, height: float, radius: float, k: int) -> bool:
    if radius <= 0:
        raise ValueError(f"minimum distance must be positive, got {radius}")
    if k < 1:
        raise ValueError(f"attempts per point must be >= 1, got {k}")
    return width > 0 and height > 0


def sample_2d(
    width: float,
    height: float,
    radius: float,
    k: int = 30,
    rng: RngLike = None,
) -> np.ndarray:
    """Poisson-disc sample of the rectangle ``[0, width) × [0, height)``.

    Parameters
    ----------
    width, height : domain extents; a non-positive extent yields no points
    radius        : minimum pairwise distance
    k             : candidate attempts per active point before it retires
    rng           : ``numpy.random.Generator``, seed, or None

    Returns
    -------
    ndarray of shape ``(N, 2)``, columns (x, y).
    """
    if not _validate(width, height, radius, k):
        return np.empty((0, 2), dtype=np.float64)
    pts = _bridson(width, height, radius, k, np.random.default_rng(rng))
    logger.debug("Poisson-disc: %d points in %gx%g (r=%g)", len(pts), width, height, radius)
    return pts


def sample_3d(
    width: float,
    height: float,
    radius: float,
    k: int = 30,
    rng: RngLike = None,
) -> np.ndarray:
    """Like ``sample_2d`` but returns ``(N, 3)`` points on the ``y = 0`` plane.

    The rectangle spans the x and z axes: columns are (x, 0, z).
    """
    if not _validate(width, height, radius, k):
        return np.empty((0, 3), dtype=np.float64)
    pts = _bridson(width, height, radius, k, np.random.default_rng(rng))
    logger.debug("Poisson-disc: %d points in %gx%g (r=%g)", len(pts), width, height, radius)
    return np.column_stack([pts[:, 0], np.zeros(len(pts)), pts[:, 1]])
