"""Pairwise distance and overlap computation.

Centres are compared with planar Euclidean distance. Pairs close enough to
be neighbours are additionally checked for bounding-box overlap: two boxes
that overlap heavily are most likely the same physical vehicle detected
twice, so such pairs are kept for reporting but do not link objects into a
cluster.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from detection.types import CornerBox, DetectedObject


@dataclass(frozen=True)
class ProximityPair:
    id_a: str
    id_b: str
    index_a: int
    index_b: int
    distance: float
    overlap_ratio: float
    is_qualifying: bool


def distance_matrix(objects: Sequence[DetectedObject]) -> np.ndarray:
    """Return the symmetric n x n matrix of centre distances."""
    if not objects:
        return np.zeros((0, 0), dtype=float)
    centers = np.array([obj.center for obj in objects], dtype=float)
    matrix = cdist(centers, centers, metric="euclidean")
    np.fill_diagonal(matrix, 0.0)
    return matrix


def _iou(a: Tuple[float, float, float, float], b: Tuple[float, float, float, float]) -> float:
    """Compute intersection over union between two TLBR boxes."""
    ax1, ay1, ax2, ay2 = a
    bx1, by1, bx2, by2 = b
    # Separated along either axis
    if ax2 <= bx1 or bx2 <= ax1 or ay2 <= by1 or by2 <= ay1:
        return 0.0
    inter_w = min(ax2, bx2) - max(ax1, bx1)
    inter_h = min(ay2, by2) - max(ay1, by1)
    inter_area = inter_w * inter_h
    area_a = max(0.0, ax2 - ax1) * max(0.0, ay2 - ay1)
    area_b = max(0.0, bx2 - bx1) * max(0.0, by2 - by1)
    union = area_a + area_b - inter_area
    return inter_area / union if union > 0 else 0.0


def overlap_ratio(a: CornerBox, b: CornerBox) -> float:
    """Intersection over union of two corner boxes, in [0, 1]."""
    return _iou(a.to_tlbr(), b.to_tlbr())


def proximity_pairs(
    objects: Sequence[DetectedObject],
    matrix: np.ndarray,
    distance_threshold: float,
    overlap_threshold: float,
) -> List[ProximityPair]:
    """List every unordered pair whose centres are within ``distance_threshold``.

    Pairs are returned in ``(i, j)`` order with ``i < j``. A pair qualifies
    as a clustering edge only when its overlap ratio is strictly below
    ``overlap_threshold``.
    """
    pairs: List[ProximityPair] = []
    n = len(objects)
    for i in range(n):
        for j in range(i + 1, n):
            dist = float(matrix[i, j])
            if dist > distance_threshold:
                continue
            overlap = overlap_ratio(objects[i].box, objects[j].box)
            pairs.append(
                ProximityPair(
                    id_a=objects[i].identity,
                    id_b=objects[j].identity,
                    index_a=i,
                    index_b=j,
                    distance=dist,
                    overlap_ratio=overlap,
                    is_qualifying=overlap < overlap_threshold,
                )
            )
    return pairs
