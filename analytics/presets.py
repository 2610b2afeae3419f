"""Clustering configuration and preset registry.

The engine runs in one of two modes, each with its own defaults:

* ``hotspot`` clusters only parked vehicles and reports each hotspot.
* ``crowd`` clusters every accepted vehicle and reports a per-frame summary.

Presets are registered under a name so deployments can select one from the
YAML configuration and override individual values::

    clustering:
      mode: hotspot
      distance_threshold: 120
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple

import yaml

HOTSPOT = "hotspot"
CROWD = "crowd"

VEHICLE_LABELS: Tuple[str, ...] = ("car", "truck", "bus", "motorcycle", "van")


@dataclass(frozen=True)
class ClusteringConfig:
    mode: str
    distance_threshold: float
    min_cluster_size: int
    overlap_suppression_threshold: float = 0.3
    stationary_movement_threshold: float = 10.0
    required_stationary_frames: int = 10
    history_timeout_ms: float = 5000.0
    history_length: int = 20
    allowed_labels: Tuple[str, ...] = VEHICLE_LABELS
    min_confidence: float = 0.0
    normalized_coordinates: bool = False
    alert_rules: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    @property
    def tracks_parking(self) -> bool:
        return self.mode == HOTSPOT

    def validate(self) -> "ClusteringConfig":
        if self.distance_threshold < 0:
            raise ValueError("distance_threshold must be non-negative")
        if self.min_cluster_size < 1:
            raise ValueError("min_cluster_size must be at least 1")
        if not 0.0 <= self.overlap_suppression_threshold <= 1.0:
            raise ValueError("overlap_suppression_threshold must be within [0, 1]")
        if self.stationary_movement_threshold < 0:
            raise ValueError("stationary_movement_threshold must be non-negative")
        if self.required_stationary_frames < 0:
            raise ValueError("required_stationary_frames must be non-negative")
        if self.history_timeout_ms < 0:
            raise ValueError("history_timeout_ms must be non-negative")
        if self.history_length < 1:
            raise ValueError("history_length must be at least 1")
        if not self.allowed_labels:
            raise ValueError("allowed_labels must not be empty")
        return self


PresetFactory = Callable[[], ClusteringConfig]

_PRESETS: Dict[str, PresetFactory] = {}


def register_preset(name: str) -> Callable[[PresetFactory], PresetFactory]:
    """Decorator to register a configuration factory under ``name``."""

    def decorator(factory: PresetFactory) -> PresetFactory:
        key = name.lower()
        if key in _PRESETS:
            raise ValueError(f"Preset already registered with name '{name}'")
        _PRESETS[key] = factory
        return factory

    return decorator


def available_presets() -> Iterable[str]:
    """Return registered preset names."""
    return _PRESETS.keys()


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"normalized_coordinates must be true or false, got {value!r}")
    return value


def _labels(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"allowed_labels must be a list of labels, got {value!r}")
    return tuple(str(label).lower() for label in value)


def _rules(value: Any) -> Tuple[Dict[str, Any], ...]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(rule, Mapping) for rule in value):
        raise ValueError(f"alert_rules must be a list of mappings, got {value!r}")
    return tuple(dict(rule) for rule in value)


_COERCE: Dict[str, Callable[[Any], Any]] = {
    "distance_threshold": float,
    "min_cluster_size": int,
    "overlap_suppression_threshold": float,
    "stationary_movement_threshold": float,
    "required_stationary_frames": int,
    "history_timeout_ms": float,
    "history_length": int,
    "allowed_labels": _labels,
    "min_confidence": float,
    "normalized_coordinates": _flag,
    "alert_rules": _rules,
}


def build_config(name: str, **overrides: Any) -> ClusteringConfig:
    """Instantiate preset ``name`` with ``overrides`` applied.

    Raises
    ------
    KeyError
        If no preset is registered under the given name.
    ValueError
        If an override names an unknown setting or has an invalid value.
    """
    factory = _PRESETS.get(name.lower())
    if factory is None:
        available = ", ".join(sorted(_PRESETS))
        raise KeyError(f"Preset '{name}' not registered. Available: {available}")
    known = {f.name for f in fields(ClusteringConfig)} - {"mode"}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unknown clustering settings: {', '.join(unknown)}")
    coerced = {key: _COERCE[key](value) for key, value in overrides.items() if value is not None}
    return replace(factory(), **coerced).validate()


def config_from_dict(cfg: Mapping[str, Any] | None) -> ClusteringConfig:
    """Build a config from the ``clustering`` section of a loaded YAML file."""
    section = dict(cfg or {})
    mode = section.pop("mode", HOTSPOT)
    return build_config(mode, **section)


def load_config(config_path: str) -> dict:
    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def default_crowd_rules() -> List[Dict[str, Any]]:
    return [
        {"type": "crowd_density_ratio", "threshold": 0.7, "level": "high",
         "message": "Crowd density above {threshold:.0%} of vehicles"},
        {"type": "large_cluster", "threshold": 5, "level": "high",
         "message": "Cluster with {threshold} or more vehicles"},
        {"type": "multiple_clusters", "threshold": 3, "level": "info",
         "message": "{threshold} or more simultaneous clusters"},
    ]


@register_preset(HOTSPOT)
def hotspot_preset() -> ClusteringConfig:
    return ClusteringConfig(
        mode=HOTSPOT,
        distance_threshold=150.0,
        min_cluster_size=2,
        overlap_suppression_threshold=0.3,
        stationary_movement_threshold=10.0,
        required_stationary_frames=10,
        history_timeout_ms=5000.0,
    )


@register_preset(CROWD)
def crowd_preset() -> ClusteringConfig:
    return ClusteringConfig(
        mode=CROWD,
        distance_threshold=100.0,
        min_cluster_size=3,
        overlap_suppression_threshold=0.5,
        history_timeout_ms=5000.0,
        alert_rules=tuple(default_crowd_rules()),
    )
