from __future__ import annotations

import numpy as np
import pytest

from analytics.proximity import distance_matrix, overlap_ratio, proximity_pairs
from detection.types import CornerBox, DetectedObject


def _obj(identity: str, box: CornerBox) -> DetectedObject:
    return DetectedObject(identity, "car", 0.9, box)


def _centered(identity: str, x: float, y: float, half: float = 5) -> DetectedObject:
    return _obj(identity, CornerBox(x - half, y - half, x + half, y + half))


def test_distance_matrix_is_symmetric_with_zero_diagonal() -> None:
    objects = [_centered("A", 0, 0), _centered("B", 30, 40), _centered("C", 100, 0)]
    matrix = distance_matrix(objects)
    assert matrix.shape == (3, 3)
    assert np.allclose(matrix, matrix.T)
    assert np.allclose(np.diag(matrix), 0.0)
    assert matrix[0, 1] == pytest.approx(50.0)
    assert matrix[0, 2] == pytest.approx(100.0)


def test_distance_matrix_of_nothing_is_empty() -> None:
    assert distance_matrix([]).shape == (0, 0)


def test_overlap_ratio() -> None:
    a = CornerBox(0, 0, 10, 10)
    assert overlap_ratio(a, CornerBox(0, 0, 10, 10)) == pytest.approx(1.0)
    assert overlap_ratio(a, CornerBox(5, 0, 15, 10)) == pytest.approx(1 / 3)
    assert overlap_ratio(a, CornerBox(20, 20, 30, 30)) == 0.0
    # touching edges share no area
    assert overlap_ratio(a, CornerBox(10, 0, 20, 10)) == 0.0
    assert overlap_ratio(a, CornerBox(0, 10, 10, 20)) == 0.0


def test_pairs_respect_distance_threshold() -> None:
    objects = [_centered("A", 0, 0), _centered("B", 100, 0), _centered("C", 300, 0)]
    matrix = distance_matrix(objects)
    pairs = proximity_pairs(objects, matrix, distance_threshold=100, overlap_threshold=0.3)
    assert [(p.id_a, p.id_b) for p in pairs] == [("A", "B")]
    assert pairs[0].distance == pytest.approx(100.0)
    assert pairs[0].overlap_ratio == 0.0
    assert pairs[0].is_qualifying is True


def test_heavily_overlapping_pair_does_not_qualify() -> None:
    objects = [
        _obj("A", CornerBox(0, 0, 40, 40)),
        _obj("B", CornerBox(5, 0, 45, 40)),
    ]
    pairs = proximity_pairs(objects, distance_matrix(objects), distance_threshold=150, overlap_threshold=0.3)
    assert len(pairs) == 1
    assert pairs[0].overlap_ratio == pytest.approx(1400 / 1800)
    assert pairs[0].is_qualifying is False


def test_overlap_at_threshold_is_suppressed() -> None:
    objects = [
        _obj("A", CornerBox(0, 0, 10, 10)),
        _obj("B", CornerBox(5, 0, 15, 10)),
    ]
    matrix = distance_matrix(objects)
    assert proximity_pairs(objects, matrix, 150, overlap_threshold=1 / 3)[0].is_qualifying is False
    assert proximity_pairs(objects, matrix, 150, overlap_threshold=0.5)[0].is_qualifying is True
