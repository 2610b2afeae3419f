"""Per-frame proximity clustering engine.

`ProximityClusteringEngine` runs the full chain for one frame record::

    parse/normalize -> track (hotspot) -> distances -> clusters -> records

It owns the stationary tracker for its camera, so frames must be fed in
arrival order and one engine must not be shared between cameras or
threads.

Example::

    engine = ProximityClusteringEngine(build_config("hotspot"), camera_id="north-gate")
    for record in engine.process(frame_record):
        sink.log(record)
"""

from __future__ import annotations

import time
import warnings
from typing import Any, Callable, Dict, Iterator, Optional

from analytics.clustering import build_clusters
from analytics.presets import ClusteringConfig
from analytics.proximity import distance_matrix, proximity_pairs
from analytics.reporting import FrameResult, crowd_alert_engine, crowd_summary, hotspot_records
from detection.normalizer import FrameEnvelopeError, parse_frame
from monitoring import MetricsExporter
from rules import RuleEngine
from tracking.stationary import StationaryTracker


class ProximityClusteringEngine:
    """Cluster nearby vehicles frame by frame.

    Parameters
    ----------
    config : ClusteringConfig
        Thresholds and mode (``hotspot`` or ``crowd``).
    tracker : StationaryTracker, optional
        Tracker to use in hotspot mode; built from ``config`` if omitted.
    alert_engine : RuleEngine, optional
        Crowd alert rules; built from ``config.alert_rules`` if omitted.
    metrics : MetricsExporter, optional
        Prometheus exporter to report frame outcomes to.
    camera_id : str
        Label used in warnings and metrics.
    clock : callable, optional
        Returns the current time in epoch milliseconds, used for frames
        without a timestamp.
    """

    def __init__(
        self,
        config: ClusteringConfig,
        *,
        tracker: Optional[StationaryTracker] = None,
        alert_engine: Optional[RuleEngine] = None,
        metrics: Optional[MetricsExporter] = None,
        camera_id: str = "default",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config
        self.camera_id = camera_id
        self.metrics = metrics
        self.clock = clock
        self.tracker = tracker if tracker is not None else StationaryTracker(
            stationary_movement_threshold=config.stationary_movement_threshold,
            required_stationary_frames=config.required_stationary_frames,
            history_timeout_ms=config.history_timeout_ms,
            history_length=config.history_length,
        )
        self.alert_engine = alert_engine if alert_engine is not None else crowd_alert_engine(config.alert_rules)

    def reset(self) -> None:
        """Forget all tracked identities."""
        self.tracker.reset()

    def analyze(self, record: Any) -> Optional[FrameResult]:
        """Analyse one frame record.

        Returns ``None`` when the frame holds no accepted detection.

        Raises
        ------
        FrameEnvelopeError
            If the record cannot be interpreted; tracker state is untouched.
        """
        cfg = self.config
        frame = parse_frame(
            record,
            cfg.allowed_labels,
            clock=self.clock,
            normalized_coordinates=cfg.normalized_coordinates,
            min_confidence=cfg.min_confidence,
        )
        if not frame.objects:
            return None

        if cfg.tracks_parking:
            candidates = self.tracker.update(frame.objects, frame.timestamp_ms)
        else:
            candidates = StationaryTracker.passthrough(frame.objects)

        result = FrameResult(
            timestamp_ms=frame.timestamp_ms,
            total_objects=len(frame.objects),
            candidates=candidates,
        )
        if len(candidates) < cfg.min_cluster_size:
            return result

        objects = [candidate.obj for candidate in candidates]
        result.matrix = distance_matrix(objects)
        result.pairs = proximity_pairs(
            objects,
            result.matrix,
            cfg.distance_threshold,
            cfg.overlap_suppression_threshold,
        )
        result.clusters = build_clusters(
            objects,
            result.matrix,
            result.pairs,
            cfg.min_cluster_size,
            prefix=cfg.mode,
        )
        return result

    def records(self, result: FrameResult) -> Iterator[Dict[str, Any]]:
        """Lazily produce the output records for an analysed frame."""
        if self.config.tracks_parking:
            yield from hotspot_records(result)
        else:
            yield crowd_summary(result, self.alert_engine)

    def process(self, record: Any) -> Iterator[Dict[str, Any]]:
        """Analyse ``record`` now and return an iterator over its output records.

        Malformed frames are reported as warnings and yield nothing.
        """
        start = time.perf_counter()
        try:
            result = self.analyze(record)
        except FrameEnvelopeError as exc:
            warnings.warn(f"[{self.camera_id}] Skipping malformed frame: {exc}", stacklevel=2)
            if self.metrics is not None:
                self.metrics.record_malformed(self.camera_id)
            return iter(())
        if result is None:
            if self.metrics is not None:
                self.metrics.record_dropped(self.camera_id)
            return iter(())
        if self.metrics is not None:
            self.metrics.record_frame(
                self.camera_id,
                time.perf_counter() - start,
                result.candidate_count,
                len(result.clusters),
                len(self.tracker),
            )
        return self.records(result)
