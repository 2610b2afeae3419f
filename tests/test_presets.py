from __future__ import annotations

from pathlib import Path

import pytest

from analytics.presets import (
    available_presets,
    build_config,
    config_from_dict,
    load_config,
    register_preset,
)
from run_multi_pipeline import CameraPipeline

DEFAULT_CONFIG = Path(__file__).resolve().parents[1] / "configs" / "default.yaml"


def test_presets_registered() -> None:
    assert {"hotspot", "crowd"} <= set(available_presets())


def test_hotspot_defaults() -> None:
    cfg = build_config("hotspot")
    assert cfg.tracks_parking is True
    assert cfg.distance_threshold == 150.0
    assert cfg.min_cluster_size == 2
    assert cfg.stationary_movement_threshold == 10.0
    assert cfg.required_stationary_frames == 10
    assert cfg.overlap_suppression_threshold == 0.3
    assert cfg.history_timeout_ms == 5000.0
    assert "car" in cfg.allowed_labels


def test_crowd_defaults_carry_alert_rules() -> None:
    cfg = build_config("Crowd")
    assert cfg.tracks_parking is False
    assert cfg.min_cluster_size == 3
    assert [rule["type"] for rule in cfg.alert_rules] == [
        "crowd_density_ratio",
        "large_cluster",
        "multiple_clusters",
    ]


def test_overrides_are_coerced() -> None:
    cfg = build_config("hotspot", distance_threshold="80", allowed_labels=["Car", "BUS"])
    assert cfg.distance_threshold == 80.0
    assert cfg.allowed_labels == ("car", "bus")


def test_unknown_preset_and_settings_are_rejected() -> None:
    with pytest.raises(KeyError):
        build_config("parade")
    with pytest.raises(ValueError):
        build_config("hotspot", radius=3)
    with pytest.raises(ValueError):
        build_config("hotspot", min_cluster_size=0)
    with pytest.raises(ValueError):
        build_config("crowd", overlap_suppression_threshold=1.5)


def test_duplicate_registration_fails() -> None:
    with pytest.raises(ValueError):
        register_preset("hotspot")(lambda: build_config("hotspot"))


def test_config_from_yaml(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("clustering:\n  mode: crowd\n  distance_threshold: 75\n", encoding="utf-8")
    cfg = config_from_dict(load_config(str(path))["clustering"])
    assert cfg.mode == "crowd"
    assert cfg.distance_threshold == 75.0
    assert config_from_dict(None).mode == "hotspot"


def test_flags_and_label_lists_are_not_coerced_from_strings() -> None:
    with pytest.raises(ValueError):
        build_config("hotspot", normalized_coordinates="false")
    with pytest.raises(ValueError):
        build_config("hotspot", normalized_coordinates=1)
    with pytest.raises(ValueError):
        build_config("hotspot", allowed_labels="car")
    with pytest.raises(ValueError):
        build_config("crowd", alert_rules=["crowd_density_ratio"])
    assert build_config("hotspot", normalized_coordinates=True).normalized_coordinates is True


def test_reference_config_uses_preset_of_selected_mode() -> None:
    section = load_config(str(DEFAULT_CONFIG))["clustering"]
    hotspot = config_from_dict(section)
    assert hotspot.mode == "hotspot"
    assert (hotspot.distance_threshold, hotspot.min_cluster_size, hotspot.overlap_suppression_threshold) == (
        150.0,
        2,
        0.3,
    )
    crowd = config_from_dict({**section, "mode": "crowd"})
    assert crowd.mode == "crowd"
    assert (crowd.distance_threshold, crowd.min_cluster_size, crowd.overlap_suppression_threshold) == (
        100.0,
        3,
        0.5,
    )


def test_camera_mode_override_uses_crowd_preset() -> None:
    config = load_config(str(DEFAULT_CONFIG))
    camera = {"id": "lot-b", "source": "unused.jsonl", "clustering": {"mode": "crowd"}}
    pipeline = CameraPipeline("lot-b", camera, config, logger=None)
    cfg = pipeline.engine.config
    assert cfg.mode == "crowd"
    assert (cfg.distance_threshold, cfg.min_cluster_size, cfg.overlap_suppression_threshold) == (100.0, 3, 0.5)
