"""Prometheus metrics exporter utilities for clustering observability."""

from __future__ import annotations

import threading
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, start_http_server

_server_lock = threading.Lock()
_server_started_ports: set[int] = set()


class MetricsExporter:
    """Expose per-camera clustering metrics via Prometheus.

    Parameters
    ----------
    port : int, optional
        Start an HTTP endpoint on this port. ``None`` only registers the
        metrics, which is enough when another process scrapes the registry.
    registry : CollectorRegistry, optional
        Registry to attach metrics to; defaults to the global registry.
    """

    def __init__(self, port: Optional[int] = 9095, registry: Optional[CollectorRegistry] = None) -> None:
        self.port = port
        self.registry = registry if registry is not None else REGISTRY
        if port is not None:
            with _server_lock:
                if port not in _server_started_ports:
                    start_http_server(port, registry=self.registry)
                    _server_started_ports.add(port)

        self.frame_latency = Histogram(
            "proximity_frame_latency_seconds",
            "Per-frame clustering latency",
            ["camera"],
            registry=self.registry,
        )
        self.frames = Counter(
            "proximity_frames_total",
            "Frames received, by outcome (processed, dropped, malformed)",
            ["camera", "outcome"],
            registry=self.registry,
        )
        self.candidates = Gauge(
            "proximity_candidates",
            "Objects eligible for clustering in the latest frame",
            ["camera"],
            registry=self.registry,
        )
        self.active_clusters = Gauge(
            "proximity_active_clusters",
            "Clusters found in the latest frame",
            ["camera"],
            registry=self.registry,
        )
        self.tracked_objects = Gauge(
            "proximity_tracked_objects",
            "Identities held by the stationary tracker",
            ["camera"],
            registry=self.registry,
        )
        self.errors = Counter(
            "proximity_pipeline_errors_total",
            "Count of runtime errors by type",
            ["camera", "category"],
            registry=self.registry,
        )

    def record_frame(
        self,
        camera_id: str,
        latency_s: float,
        candidate_count: int,
        cluster_count: int,
        tracked_count: int,
    ) -> None:
        self.frame_latency.labels(camera_id).observe(max(latency_s, 0.0))
        self.frames.labels(camera_id, "processed").inc()
        self.candidates.labels(camera_id).set(max(candidate_count, 0))
        self.active_clusters.labels(camera_id).set(max(cluster_count, 0))
        self.tracked_objects.labels(camera_id).set(max(tracked_count, 0))

    def record_dropped(self, camera_id: str) -> None:
        self.frames.labels(camera_id, "dropped").inc()
        self.active_clusters.labels(camera_id).set(0)

    def record_malformed(self, camera_id: str) -> None:
        self.frames.labels(camera_id, "malformed").inc()
        self.record_error(camera_id, "malformed_frame")

    def record_error(self, camera_id: str, category: str) -> None:
        self.errors.labels(camera_id, category).inc()
