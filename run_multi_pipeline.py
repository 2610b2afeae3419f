"""Run the proximity clustering pipeline for multiple cameras concurrently.

This module spawns a thread per camera defined in the configuration and
processes each stream independently. Every camera gets its own engine, and
therefore its own stationary tracker, so frames from different cameras
never share tracking state. Records are written through a shared,
thread-safe logger.

Usage::

    python run_multi_pipeline.py --config configs/default.yaml

The configuration file can specify either a single camera under `camera` or
a list of cameras under `cameras`. Each camera entry should contain at
minimum a `source` (JSONL file path). A camera may carry its own
`clustering` section; its keys override the global `clustering` section.
"""

from __future__ import annotations

import argparse
import threading
import warnings
from typing import Any, Dict, List

from adapters import JsonlFrameSource
from analytics.presets import load_config
from monitoring import MetricsExporter
from run_pipeline import build_engine, create_logger, create_metrics


class CameraPipeline(threading.Thread):
    """Threaded pipeline processing for a single camera."""

    def __init__(
        self,
        cam_id: str,
        camera_cfg: Dict[str, Any],
        global_cfg: dict,
        logger,
        metrics: MetricsExporter | None = None,
    ) -> None:
        super().__init__(daemon=True)
        self.cam_id = cam_id
        self.camera_cfg = camera_cfg
        self.logger = logger
        self.metrics = metrics
        self.stop_event = threading.Event()
        self.frames = 0
        self.emitted = 0

        clustering_cfg = dict(global_cfg.get("clustering", {}))
        clustering_cfg.update(camera_cfg.get("clustering", {}) or {})
        self.engine = build_engine(clustering_cfg, cam_id, metrics)

    def stop(self) -> None:
        self.stop_event.set()

    def run(self) -> None:
        source = JsonlFrameSource(self.camera_cfg.get("source", ""))
        try:
            source.open()
        except RuntimeError as exc:
            warnings.warn(f"[{self.cam_id}] {exc}", stacklevel=2)
            if self.metrics is not None:
                self.metrics.record_error(self.cam_id, "source_unavailable")
            return
        try:
            for line in source.read():
                if self.stop_event.is_set():
                    break
                self.frames += 1
                for record in self.engine.process(line):
                    self.emitted += 1
                    self.logger.log(record, camera_id=self.cam_id)
        finally:
            source.release()


def camera_configs(config: dict) -> List[Dict[str, Any]]:
    if "cameras" in config:
        return list(config["cameras"])
    if "camera" in config:
        return [config["camera"]]
    raise ValueError("No camera configuration found in config file.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run multi-camera proximity clustering pipeline.")
    parser.add_argument("--config", type=str, required=True, help="Path to configuration file")
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port (overrides config).",
    )
    args = parser.parse_args()

    config = load_config(args.config)
    metrics_exporter = create_metrics(config, args.metrics_port)
    logger = create_logger(config)

    # Start a thread per camera
    threads: List[CameraPipeline] = []
    for idx, cam_cfg in enumerate(camera_configs(config)):
        cam_id = cam_cfg.get("id", f"cam{idx}")
        thread = CameraPipeline(cam_id, cam_cfg, config, logger, metrics=metrics_exporter)
        thread.start()
        threads.append(thread)

    # Join threads (this blocks until all threads finish)
    try:
        for t in threads:
            t.join()
    except KeyboardInterrupt:
        # Signal threads to stop on Ctrl+C
        for t in threads:
            t.stop()
        for t in threads:
            t.join()

    for t in threads:
        print(f"[{t.cam_id}] Processed {t.frames} frames, emitted {t.emitted} records")


if __name__ == "__main__":
    main()
