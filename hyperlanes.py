"""
hyperlanes.py
=============
Hyperlane network: a minimum spanning tree over star-system positions.

Every pair of systems is a candidate lane weighted by its planar distance
(the height / Y axis is ignored).  Kruskal's algorithm keeps the cheapest
lanes that do not close a cycle, giving ``n - 1`` lanes that connect all
``n`` systems with minimal total length.

Scaling
-------
The candidate set is the complete graph: ``n (n - 1) / 2`` edges and an
O(n² log n) sort.  Fine for tens to a few hundred systems; a warning is
logged above ``LARGE_GRAPH_WARNING`` vertices.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, List, Sequence

import numpy as np

logger = logging.getLogger(__name__)

LARGE_GRAPH_WARNING = 2_000


# ---------------------------------------------------------------------------
# Union-find
# ---------------------------------------------------------------------------

class DisjointSet:
    """Array-backed union-find over vertex ids ``[0, size)``."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        self.parent = np.arange(size, dtype=np.int64)
        self.rank = np.zeros(size, dtype=np.int64)

    def __len__(self) -> int:
        return len(self.parent)

    def find(self, x: int) -> int:
        parent = self.parent
        root = x
        while parent[root] != root:
            root = parent[root]
        # path compression
        while parent[x] != root:
            parent[x], x = root, parent[x]
        return int(root)

    def union(self, x: int, y: int) -> bool:
        """Merge the components of *x* and *y*; False if already joined."""
        x_root = self.find(x)
        y_root = self.find(y)
        if x_root == y_root:
            return False

        if self.rank[x_root] < self.rank[y_root]:
            self.parent[x_root] = y_root
        elif self.rank[x_root] > self.rank[y_root]:
            self.parent[y_root] = x_root
        else:
            self.parent[y_root] = x_root
            self.rank[x_root] += 1
        return True

    def connected(self, x: int, y: int) -> bool:
        return self.find(x) == self.find(y)


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Hyperlane:
    """Undirected lane between two systems."""

    source: int
    destination: int
    weight: float


def planar(points: np.ndarray) -> np.ndarray:
    """Project ``(N, 3)`` positions onto the (x, z) plane; pass ``(N, 2)`` through."""
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] not in (2, 3):
        raise ValueError(f"expected (N, 2) or (N, 3) points, got shape {points.shape}")
    if points.shape[1] == 3:
        return points[:, [0, 2]]
    return points


def complete_graph_edges(points: np.ndarray) -> List[Hyperlane]:
    """All ``i < j`` pairs of *points* weighted by planar distance."""
    xy = planar(points)
    n = len(xy)
    if n > LARGE_GRAPH_WARNING:
        logger.warning(
            "Building the complete graph over %d systems (%d candidate lanes); "
            "this is O(n^2) in time and memory.", n, n * (n - 1) // 2,
        )
    src, dst = np.triu_indices(n, k=1)
    weights = np.linalg.norm(xy[src] - xy[dst], axis=1)
    return [Hyperlane(int(s), int(d), float(w)) for s, d, w in zip(src, dst, weights)]


# ---------------------------------------------------------------------------
# Kruskal
# ---------------------------------------------------------------------------

def kruskal(edges: Iterable[Hyperlane], vertex_count: int) -> List[Hyperlane]:
    """Minimum spanning forest of *edges* over ``vertex_count`` vertices.

    Edges are stable-sorted by weight, so equal-weight ties keep input order.
    Stops as soon as ``vertex_count - 1`` edges are accepted.
    """
    ordered = sorted(edges, key=lambda e: e.weight)
    ds = DisjointSet(vertex_count)
    mst: List[Hyperlane] = []

    if vertex_count <= 1:
        return mst

    for edge in ordered:
        if ds.union(edge.source, edge.destination):
            mst.append(edge)
            if len(mst) == vertex_count - 1:
                break

    return mst


def build_hyperlanes(points: np.ndarray) -> List[Hyperlane]:
    """Spanning-tree lanes over *points* (``(N, 2)`` or ``(N, 3)``)."""
    n = len(points)
    if n < 2:
        return []
    return kruskal(complete_graph_edges(points), n)


def count_components(vertex_count: int, edges: Sequence) -> int:
    """Number of connected components; *edges* are Hyperlanes or (s, d) pairs."""
    ds = DisjointSet(vertex_count)
    components = vertex_count
    for edge in edges:
        if isinstance(edge, Hyperlane):
            s, d = edge.source, edge.destination
        else:
            s, d = edge[0], edge[1]
        if ds.union(int(s), int(d)):
            components -= 1
    return components


def total_weight(edges: Iterable[Hyperlane]) -> float:
    return float(sum(e.weight for e in edges))
