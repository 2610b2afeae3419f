"""Proximity clustering of candidate objects.

Clusters are the connected components of the graph whose vertices are the
candidate objects and whose edges are the qualifying proximity pairs.
Components smaller than the configured minimum size are discarded.

Traversal is a depth-first search seeded in input order, visiting
neighbours in increasing index order, so the same input always yields the
same clusters in the same order with members in the same order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Sequence, Tuple

import numpy as np

from detection.types import CornerBox, DetectedObject
from .proximity import ProximityPair

ID_SEPARATOR = "_"


@dataclass(frozen=True)
class Cluster:
    cluster_id: str
    members: Tuple[str, ...]
    member_indices: Tuple[int, ...]
    centroid: Tuple[float, float]
    bounding_box: CornerBox
    avg_pair_distance: float
    max_pair_distance: float
    density: float

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def member_set(self) -> FrozenSet[str]:
        return frozenset(self.members)


def cluster_identifier(identities: Iterable[str], prefix: str = "cluster") -> str:
    """Build an identifier that depends only on the set of member identities."""
    return ID_SEPARATOR.join([prefix, *sorted(str(identity) for identity in identities)])


def _adjacency(n: int, pairs: Iterable[ProximityPair]) -> List[List[int]]:
    neighbours: List[List[int]] = [[] for _ in range(n)]
    for pair in pairs:
        if not pair.is_qualifying:
            continue
        neighbours[pair.index_a].append(pair.index_b)
        neighbours[pair.index_b].append(pair.index_a)
    for adj in neighbours:
        adj.sort()
    return neighbours


def connected_components(n: int, pairs: Iterable[ProximityPair]) -> List[List[int]]:
    """Return components as index lists in depth-first preorder."""
    neighbours = _adjacency(n, pairs)
    visited = [False] * n
    components: List[List[int]] = []
    for seed in range(n):
        if visited[seed]:
            continue
        component: List[int] = []
        stack = [seed]
        while stack:
            node = stack.pop()
            if visited[node]:
                continue
            visited[node] = True
            component.append(node)
            # Reversed so the lowest-index neighbour is explored first
            for nxt in reversed(neighbours[node]):
                if not visited[nxt]:
                    stack.append(nxt)
        components.append(component)
    return components


def _pair_distances(indices: Sequence[int], matrix: np.ndarray) -> List[float]:
    distances: List[float] = []
    for pos, i in enumerate(indices):
        for j in indices[pos + 1:]:
            distances.append(float(matrix[i, j]))
    return distances


def cluster_density(member_count: int, max_pair_distance: float) -> float:
    """Members per unit area of the circle spanned by the widest pair."""
    if max_pair_distance <= 0:
        return float(member_count)
    radius = max_pair_distance / 2.0
    return member_count / (math.pi * radius * radius)


def make_cluster(
    indices: Sequence[int],
    objects: Sequence[DetectedObject],
    matrix: np.ndarray,
    prefix: str = "cluster",
) -> Cluster:
    members = [objects[i] for i in indices]
    centers = np.array([obj.center for obj in members], dtype=float)
    cx, cy = centers.mean(axis=0)
    box = CornerBox(
        min(obj.box.x_min for obj in members),
        min(obj.box.y_min for obj in members),
        max(obj.box.x_max for obj in members),
        max(obj.box.y_max for obj in members),
    )
    distances = _pair_distances(indices, matrix)
    avg_dist = sum(distances) / len(distances) if distances else 0.0
    max_dist = max(distances) if distances else 0.0
    identities = tuple(obj.identity for obj in members)
    return Cluster(
        cluster_id=cluster_identifier(identities, prefix),
        members=identities,
        member_indices=tuple(indices),
        centroid=(float(cx), float(cy)),
        bounding_box=box,
        avg_pair_distance=avg_dist,
        max_pair_distance=max_dist,
        density=cluster_density(len(members), max_dist),
    )


def build_clusters(
    objects: Sequence[DetectedObject],
    matrix: np.ndarray,
    pairs: Iterable[ProximityPair],
    min_cluster_size: int,
    prefix: str = "cluster",
) -> List[Cluster]:
    """Group objects into clusters of at least ``min_cluster_size`` members."""
    clusters: List[Cluster] = []
    for component in connected_components(len(objects), pairs):
        if len(component) < min_cluster_size:
            continue
        clusters.append(make_cluster(component, objects, matrix, prefix))
    return clusters
