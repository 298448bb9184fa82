"""
spatial_index.py
================
Spatial lookup of star systems for picking and debug overlays.

``StarSystemIndex`` collects axis-aligned boxes with a payload and answers
nearest-system and ray-pick queries through a ``scipy.spatial.cKDTree`` built
over the box centres.  The tree is rebuilt lazily after inserts.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, List, Optional, Tuple

import numpy as np
from scipy.spatial import cKDTree


@dataclasses.dataclass
class StarSystem:
    """Payload stored per system: its id (row in the system arena) and position."""

    index: int
    position: Tuple[float, float, float]


@dataclasses.dataclass(frozen=True)
class Box:
    center: Tuple[float, float, float]
    extent: Tuple[float, float, float]

    @property
    def minimum(self) -> np.ndarray:
        return np.asarray(self.center) - np.asarray(self.extent)

    @property
    def maximum(self) -> np.ndarray:
        return np.asarray(self.center) + np.asarray(self.extent)


@dataclasses.dataclass(frozen=True)
class RayHit:
    payload: Any
    distance: float


class StarSystemIndex:
    """Insert / clear / ray-cast index over boxed payloads."""

    def __init__(self) -> None:
        self._boxes: List[Box] = []
        self._payloads: List[Any] = []
        self._tree: Optional[cKDTree] = None

    def __len__(self) -> int:
        return len(self._boxes)

    def insert(self, bounds: Box, payload: Any) -> None:
        self._boxes.append(bounds)
        self._payloads.append(payload)
        self._tree = None

    def clear(self) -> None:
        self._boxes.clear()
        self._payloads.clear()
        self._tree = None

    def _ensure_tree(self) -> Optional[cKDTree]:
        if self._tree is None and self._boxes:
            centres = np.array([b.center for b in self._boxes], dtype=np.float64)
            self._tree = cKDTree(centres)
        return self._tree

    def nearest(self, point, max_distance: float = np.inf) -> Optional[Any]:
        """Payload whose box centre is closest to *point*, within *max_distance*."""
        tree = self._ensure_tree()
        if tree is None:
            return None
        dist, idx = tree.query(np.asarray(point, dtype=np.float64), k=1,
                               distance_upper_bound=max_distance)
        if not np.isfinite(dist):
            return None
        return self._payloads[int(idx)]

    def ray_cast(self, origin, direction) -> Optional[RayHit]:
        """First box hit by the ray ``origin + t · direction`` (t >= 0).

        Candidates come from the KD-tree: the ray is intersected with the
        plane of the system field (y = 0) and only boxes near that point
        are slab-tested.  A ray leaving the plane is tested against the boxes
        around its origin.
        """
        tree = self._ensure_tree()
        if tree is None:
            return None
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)

        if abs(direction[1]) < 1e-12:
            candidates = range(len(self._boxes))
        else:
            t_plane = -origin[1] / direction[1]
            # heading away from the plane: only boxes around the origin can be hit
            anchor = origin + max(t_plane, 0.0) * direction
            # a box of half-height e is crossed within e·|d_xz|/|d_y| of the plane hit
            extents = np.array([b.extent for b in self._boxes], dtype=np.float64)
            slope = np.hypot(direction[0], direction[2]) / abs(direction[1])
            reach = (float(np.max(np.linalg.norm(extents, axis=1)))
                     + float(np.max(extents[:, 1])) * slope)
            candidates = tree.query_ball_point(anchor, reach)

        best: Optional[RayHit] = None
        for i in candidates:
            t = _slab_intersect(origin, direction, self._boxes[i])
            if t is not None and (best is None or t < best.distance):
                best = RayHit(self._payloads[i], t)
        return best

    def for_each_leaf(self, callback: Callable[[Box], None]) -> None:
        """Invoke *callback* with every stored box (debug overlays)."""
        for box in self._boxes:
            callback(box)


def _slab_intersect(origin: np.ndarray, direction: np.ndarray, box: Box) -> Optional[float]:
    lo, hi = box.minimum, box.maximum
    with np.errstate(divide="ignore", invalid="ignore"):
        t1 = (lo - origin) / direction
        t2 = (hi - origin) / direction
    # axes the ray runs parallel to: inside the slab or a miss
    parallel = direction == 0
    if np.any(parallel & ((origin < lo) | (origin > hi))):
        return None
    t_near = np.where(parallel, -np.inf, np.minimum(t1, t2))
    t_far = np.where(parallel, np.inf, np.maximum(t1, t2))
    enter = float(np.max(t_near))
    leave = float(np.min(t_far))
    if leave < max(enter, 0.0):
        return None
    return max(enter, 0.0)
