from __future__ import annotations

import math

import pytest

from analytics.clustering import (
    build_clusters,
    cluster_density,
    cluster_identifier,
    connected_components,
)
from analytics.proximity import ProximityPair, distance_matrix, proximity_pairs
from detection.types import CornerBox, DetectedObject


def _centered(identity: str, x: float, y: float, half: float = 5) -> DetectedObject:
    return DetectedObject(identity, "car", 0.9, CornerBox(x - half, y - half, x + half, y + half))


def _cluster(objects, threshold=150.0, min_size=2, overlap=0.3, prefix="hotspot"):
    matrix = distance_matrix(objects)
    pairs = proximity_pairs(objects, matrix, threshold, overlap)
    return build_clusters(objects, matrix, pairs, min_size, prefix=prefix)


def _edge(i: int, j: int) -> ProximityPair:
    return ProximityPair(str(i), str(j), i, j, 1.0, 0.0, True)


def test_two_close_objects_form_one_cluster() -> None:
    clusters = _cluster([_centered("A", 0, 0), _centered("B", 100, 0)])
    assert len(clusters) == 1
    cluster = clusters[0]
    assert cluster.members == ("A", "B")
    assert cluster.centroid == pytest.approx((50.0, 0.0))
    assert cluster.avg_pair_distance == pytest.approx(100.0)
    assert cluster.max_pair_distance == pytest.approx(100.0)
    assert cluster.density == pytest.approx(2 / (math.pi * 50.0 ** 2))
    assert cluster.bounding_box == CornerBox(-5, -5, 105, 5)
    assert cluster.cluster_id == "hotspot_A_B"


def test_distant_objects_are_not_clustered() -> None:
    assert _cluster([_centered("A", 0, 0), _centered("B", 400, 0)]) == []


def test_components_merge_transitively() -> None:
    objects = [_centered("A", 0, 0), _centered("B", 100, 0), _centered("C", 200, 0)]
    clusters = _cluster(objects)
    assert len(clusters) == 1
    assert clusters[0].members == ("A", "B", "C")
    assert clusters[0].avg_pair_distance == pytest.approx(400 / 3)
    assert clusters[0].max_pair_distance == pytest.approx(200.0)


def test_overlapping_pair_can_still_join_through_third_object() -> None:
    objects = [
        DetectedObject("A", "car", 0.9, CornerBox(0, 0, 40, 40)),
        DetectedObject("B", "car", 0.9, CornerBox(5, 0, 45, 40)),
        DetectedObject("C", "car", 0.9, CornerBox(100, 0, 140, 40)),
    ]
    clusters = _cluster(objects)
    assert len(clusters) == 1
    assert clusters[0].members == ("A", "C", "B")
    assert clusters[0].cluster_id == "hotspot_A_B_C"

    assert _cluster(objects[:2]) == []


def test_small_components_are_discarded() -> None:
    objects = [
        _centered("A", 0, 0),
        _centered("B", 50, 0),
        _centered("C", 1000, 0),
        _centered("D", 1050, 0),
        _centered("E", 1100, 0),
    ]
    clusters = _cluster(objects, min_size=3)
    assert [c.members for c in clusters] == [("C", "D", "E")]


def test_clusters_are_ordered_by_first_member() -> None:
    objects = [
        _centered("A", 0, 0),
        _centered("X", 1000, 0),
        _centered("B", 50, 0),
        _centered("Y", 1050, 0),
    ]
    clusters = _cluster(objects)
    assert [c.members for c in clusters] == [("A", "B"), ("X", "Y")]


def test_traversal_matches_recursive_preorder() -> None:
    # recursive DFS from 0 visits 0, 1, 3 and only then 2
    pairs = [_edge(0, 1), _edge(0, 2), _edge(1, 3)]
    assert connected_components(4, pairs) == [[0, 1, 3, 2]]


def test_non_qualifying_pairs_are_not_edges() -> None:
    pairs = [ProximityPair("0", "1", 0, 1, 1.0, 0.9, False)]
    assert connected_components(2, pairs) == [[0], [1]]


def test_identifier_depends_only_on_membership() -> None:
    assert cluster_identifier(["b", "a", "c"]) == cluster_identifier(["c", "a", "b"])
    assert cluster_identifier(["b", "a"], prefix="crowd") == "crowd_a_b"


def test_density_with_zero_spread_uses_unit_area() -> None:
    assert cluster_density(3, 0.0) == 3.0
    assert cluster_density(2, 10.0) == pytest.approx(2 / (math.pi * 25.0))


def test_single_member_clusters_allowed_with_min_size_one() -> None:
    clusters = _cluster([_centered("A", 0, 0)], min_size=1)
    assert len(clusters) == 1
    assert clusters[0].avg_pair_distance == 0.0
    assert clusters[0].density == 1.0
