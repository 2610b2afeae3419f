"""Entry point for running the proximity clustering pipeline.

This script reads frame records from a recorded JSONL stream (or stdin),
clusters nearby vehicles frame by frame, and writes the resulting hotspot
records or crowd summaries to the configured storage backend. It reads
configuration parameters from a YAML file.

Usage
-----
```bash
python run_pipeline.py --config configs/default.yaml --source data/frames.jsonl
tail -f frames.jsonl | python run_pipeline.py --config configs/default.yaml --source - --stdout
```
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Optional

from adapters import JsonlFrameSource
from analytics.presets import config_from_dict, load_config
from monitoring import MetricsExporter
from pipeline import ProximityClusteringEngine
from storage import DatabaseEventLogger, EventLogger


def create_logger(config: dict):
    # Choose storage backend: JSONL (default) or SQLite
    backend = config.get("storage_backend", "jsonl").lower()
    if backend == "sqlite":
        db_cfg = config.get("database", {})
        return DatabaseEventLogger(db_path=db_cfg.get("db_path", "events.db"))
    if backend != "jsonl":
        raise ValueError(f"Unknown storage backend: {backend}")
    return EventLogger(config.get("storage", {}).get("log_dir", "logs"))


def create_metrics(config: dict, port_override: Optional[int] = None) -> MetricsExporter | None:
    monitoring_cfg = config.get("monitoring", {})
    metrics_port = port_override if port_override is not None else monitoring_cfg.get("metrics_port")
    if not (monitoring_cfg.get("enable_metrics", False) or port_override is not None):
        return None
    return MetricsExporter(port=metrics_port or 9095)


def build_engine(
    clustering_cfg: Dict[str, Any],
    camera_id: str,
    metrics: MetricsExporter | None = None,
) -> ProximityClusteringEngine:
    return ProximityClusteringEngine(
        config_from_dict(clustering_cfg),
        metrics=metrics,
        camera_id=camera_id,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the proximity clustering pipeline.")
    parser.add_argument("--config", type=str, required=True, help="Path to configuration file.")
    parser.add_argument("--source", type=str, default=None, help="JSONL frame file, or '-' for stdin.")
    parser.add_argument("--mode", choices=["hotspot", "crowd"], default=None, help="Override clustering mode.")
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port (overrides config).",
    )
    parser.add_argument("--stdout", action="store_true", help="Also print every output record.")
    args = parser.parse_args()

    config = load_config(args.config)
    camera_cfg = config.get("camera", {})
    camera_id = camera_cfg.get("id", "cam0")
    source_path = args.source or camera_cfg.get("source")
    if not source_path:
        raise ValueError("No frame source given on the command line or in the config file.")

    clustering_cfg = dict(config.get("clustering", {}))
    if args.mode:
        clustering_cfg["mode"] = args.mode

    logger = create_logger(config)
    metrics = create_metrics(config, args.metrics_port)
    engine = build_engine(clustering_cfg, camera_id, metrics)

    frames = 0
    emitted = 0
    with JsonlFrameSource(source_path) as source:
        for line in source.read():
            frames += 1
            for record in engine.process(line):
                emitted += 1
                logger.log(record, camera_id=camera_id)
                if args.stdout:
                    print(json.dumps(record))
    print(f"Processed {frames} frames, emitted {emitted} records ({engine.config.mode} mode)", file=sys.stderr)


if __name__ == "__main__":
    main()
