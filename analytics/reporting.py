"""Output records for hotspot and crowd analysis.

Hotspot mode fans out: every active hotspot becomes its own record so that
consumers can deduplicate and visualise hotspots independently. A frame
without hotspots produces no record at all, which consumers read as "no
active hotspots".

Crowd mode produces one summary record per analysed frame, annotated with
an alert level derived from the configured alert rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional

import numpy as np

from rules import RuleEngine
from tracking.stationary import Candidate
from .clustering import Cluster
from .proximity import ProximityPair

ALERT_NORMAL = "normal"
ALERT_HIGH = "high"


@dataclass
class FrameResult:
    """Everything computed for one analysed frame."""

    timestamp_ms: float
    total_objects: int
    candidates: List[Candidate] = field(default_factory=list)
    clusters: List[Cluster] = field(default_factory=list)
    pairs: List[ProximityPair] = field(default_factory=list)
    matrix: Optional[np.ndarray] = None

    @property
    def candidate_count(self) -> int:
        return len(self.candidates)

    @property
    def clustered_count(self) -> int:
        return sum(cluster.size for cluster in self.clusters)


def iso_timestamp(timestamp_ms: float) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).isoformat()


def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def _cluster_fields(cluster: Cluster) -> Dict[str, Any]:
    cx, cy = cluster.centroid
    return {
        "vehicle_count": cluster.size,
        "centroid_x": int(round(cx)),
        "centroid_y": int(round(cy)),
        "avg_distance_px": round(cluster.avg_pair_distance, 1),
        "max_distance_px": round(cluster.max_pair_distance, 1),
        "density": round(cluster.density, 6),
        "vehicle_ids": ",".join(cluster.members),
    }


def hotspot_records(result: FrameResult) -> Iterator[Dict[str, Any]]:
    """Yield one record per hotspot, numbered from 1."""
    timestamp = iso_timestamp(result.timestamp_ms)
    for number, cluster in enumerate(result.clusters, start=1):
        members = [result.candidates[i] for i in cluster.member_indices]
        record: Dict[str, Any] = {
            "timestamp": timestamp,
            "hotspot_id": cluster.cluster_id,
            "hotspot_number": number,
        }
        record.update(_cluster_fields(cluster))
        record["avg_parked_duration_sec"] = round(_mean(c.parked_duration_ms for c in members) / 1000.0, 1)
        record["avg_parked_frames"] = round(_mean(c.stationary_frames for c in members), 1)
        yield record


def _density_ratio_rule(context: Dict[str, Any], rule: Dict[str, Any]) -> bool:
    return context["density_ratio"] > rule.get("threshold", 0.7)


def _large_cluster_rule(context: Dict[str, Any], rule: Dict[str, Any]) -> bool:
    return context["largest_cluster"] >= rule.get("threshold", 5)


def _multiple_clusters_rule(context: Dict[str, Any], rule: Dict[str, Any]) -> bool:
    return context["cluster_count"] >= rule.get("threshold", 3)


def crowd_alert_engine(rules: Iterable[Dict[str, Any]]) -> RuleEngine:
    """Create a rule engine with the crowd alert handlers registered."""
    engine = RuleEngine([dict(rule) for rule in rules])
    engine.register_handler("crowd_density_ratio", _density_ratio_rule)
    engine.register_handler("large_cluster", _large_cluster_rule)
    engine.register_handler("multiple_clusters", _multiple_clusters_rule)
    return engine


def crowd_summary(result: FrameResult, alert_engine: Optional[RuleEngine] = None) -> Dict[str, Any]:
    """Build the per-frame crowd summary record."""
    total = result.candidate_count
    crowded = result.clustered_count
    ratio = crowded / total if total else 0.0
    context = {
        "total_vehicles": total,
        "crowded_vehicles": crowded,
        "cluster_count": len(result.clusters),
        "largest_cluster": max((c.size for c in result.clusters), default=0),
        "density_ratio": ratio,
    }
    alerts = alert_engine.evaluate(context) if alert_engine is not None else []
    alert_level = ALERT_HIGH if any(a["level"] == ALERT_HIGH for a in alerts) else ALERT_NORMAL

    clusters = []
    for number, cluster in enumerate(result.clusters, start=1):
        entry: Dict[str, Any] = {"crowd_id": cluster.cluster_id, "crowd_number": number}
        entry.update(_cluster_fields(cluster))
        clusters.append(entry)

    return {
        "timestamp": iso_timestamp(result.timestamp_ms),
        "status": "crowd_detected" if result.clusters else "no_crowd",
        "total_vehicles": total,
        "crowded_vehicles": crowded,
        "cluster_count": len(result.clusters),
        "crowd_density_pct": round(ratio * 100.0, 1),
        "alert_level": alert_level,
        "alerts": [a["message"] for a in alerts],
        "clusters": clusters,
    }
