"""Frame envelope parsing and detection normalization.

Detection records come from an external pipeline (for example a DL Streamer
publisher) as already-deserialized JSON. This module turns such a record
into a `Frame` holding `DetectedObject` instances with pixel-space corner
boxes. Incomplete or unwanted detections are filtered out silently; only an
envelope that cannot be interpreted at all raises `FrameEnvelopeError`.

Two detection layouts are understood::

    {"id": 7, "label": "car", "confidence": 0.9,
     "bounding_box": {"x_min": 10, "y_min": 20, "x_max": 60, "y_max": 50}}

    {"id": 7, "detection": {"label": "car", "confidence": 0.9,
                            "bounding_box": {"x": 10, "y": 20, "width": 50, "height": 30}}}
"""

from __future__ import annotations

import json
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .types import BoundingBox, CornerBox, DetectedObject, Frame, SizeBox

_CORNER_KEYS = ("x_min", "y_min", "x_max", "y_max")
_SIZE_KEYS = ("x", "y")


class FrameEnvelopeError(ValueError):
    """Raised when a frame record cannot be interpreted at all."""


def _number(value: Any) -> float:
    # Absent, non-numeric or non-finite fields count as zero
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_box(raw: Any) -> Optional[BoundingBox]:
    """Select the box variant from the keys present in ``raw``."""
    if not isinstance(raw, Mapping):
        return None
    if any(key in raw for key in _CORNER_KEYS):
        return CornerBox(*(_number(raw.get(key)) for key in _CORNER_KEYS))
    if any(key in raw for key in _SIZE_KEYS) or "width" in raw or "w" in raw:
        return SizeBox(
            _number(raw.get("x")),
            _number(raw.get("y")),
            _number(raw.get("width", raw.get("w"))),
            _number(raw.get("height", raw.get("h"))),
        )
    return None


def _scale(box: CornerBox, width: float, height: float) -> CornerBox:
    return CornerBox(box.x_min * width, box.y_min * height, box.x_max * width, box.y_max * height)


def _raw_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Flatten the nested ``detection`` layout onto the top-level keys."""
    nested = raw.get("detection")
    fields: Dict[str, Any] = dict(raw)
    if isinstance(nested, Mapping):
        for key, value in nested.items():
            fields.setdefault(key, value)
    box = fields.get("bounding_box", fields.get("bbox"))
    if box is None and ("w" in raw or "width" in raw):
        box = {key: raw.get(key) for key in ("x", "y", "w", "h", "width", "height") if key in raw}
    fields["_box"] = box
    return fields


def normalize_detections(
    raw_detections: Iterable[Any],
    allowed_labels: Iterable[str],
    *,
    frame_width: float = 0,
    frame_height: float = 0,
    normalized_coordinates: bool = False,
    min_confidence: float = 0.0,
) -> List[DetectedObject]:
    """Convert raw detections into accepted `DetectedObject` instances.

    Parameters
    ----------
    raw_detections : iterable
        Raw detection mappings as received from the publisher.
    allowed_labels : iterable of str
        Accepted class names, compared case-insensitively.
    frame_width, frame_height : float
        Frame resolution, used only when ``normalized_coordinates`` is set.
    normalized_coordinates : bool
        Treat box coordinates as fractions of the frame size.
    min_confidence : float
        Detections below this confidence are dropped.

    Returns
    -------
    objects : list of DetectedObject
        Accepted detections in input order.
    """
    allowed = {label.lower() for label in allowed_labels}
    objects: List[DetectedObject] = []
    for index, raw in enumerate(raw_detections):
        if not isinstance(raw, Mapping):
            continue
        fields = _raw_fields(raw)
        label = fields.get("label")
        if not isinstance(label, str) or label.lower() not in allowed:
            continue
        box = parse_box(fields["_box"])
        if box is None:
            continue
        corners = box.to_corners()
        if normalized_coordinates:
            corners = _scale(corners, frame_width, frame_height)
        if not all(math.isfinite(edge) for edge in corners.to_tlbr()):
            continue
        if corners.width <= 0 or corners.height <= 0:
            continue
        confidence = _number(fields.get("confidence"))
        if confidence < min_confidence:
            continue
        identity = fields.get("id", fields.get("object_id", fields.get("track_id")))
        if identity is None or identity == "":
            identity = f"{label.lower()}-{index}"
        objects.append(DetectedObject(str(identity), label.lower(), confidence, corners))
    return objects


def _checked_ms(ms: float) -> float:
    # Must be representable as a calendar date for the ISO output field
    if not math.isfinite(ms):
        raise FrameEnvelopeError(f"Non-finite timestamp: {ms!r}")
    try:
        datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise FrameEnvelopeError(f"Timestamp out of range: {ms!r}") from exc
    return ms


def _timestamp_ms(value: Any, clock: Callable[[], float]) -> float:
    if value is None:
        return _checked_ms(float(clock()))
    if isinstance(value, bool):
        raise FrameEnvelopeError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return _checked_ms(float(value))
        except OverflowError as exc:
            raise FrameEnvelopeError(f"Timestamp out of range: {value!r}") from exc
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise FrameEnvelopeError(f"Unparseable timestamp: {value!r}") from exc
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp() * 1000.0
    raise FrameEnvelopeError(f"Unsupported timestamp value: {value!r}")


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


def parse_frame(
    record: Any,
    allowed_labels: Iterable[str],
    *,
    clock: Optional[Callable[[], float]] = None,
    normalized_coordinates: bool = False,
    min_confidence: float = 0.0,
) -> Frame:
    """Parse a frame record into a `Frame`.

    ``record`` may be a mapping or its JSON text. The returned frame may hold
    no objects; callers treat that as a dropped frame.

    Raises
    ------
    FrameEnvelopeError
        If the record is not a JSON object, its detection list is not a
        list, or its timestamp cannot be interpreted.
    """
    if isinstance(record, (bytes, bytearray)):
        record = record.decode("utf-8", errors="replace")
    if isinstance(record, str):
        try:
            record = json.loads(record)
        except json.JSONDecodeError as exc:
            raise FrameEnvelopeError(f"Frame is not valid JSON: {exc}") from exc
    if not isinstance(record, Mapping):
        raise FrameEnvelopeError(f"Frame must be a JSON object, got {type(record).__name__}")

    raw_detections = record.get("objects", record.get("detections"))
    if raw_detections is None:
        raw_detections = []
    if not isinstance(raw_detections, list):
        raise FrameEnvelopeError("Frame detections must be a list")

    resolution = record.get("resolution")
    if not isinstance(resolution, Mapping):
        resolution = {}
    width = int(_number(record.get("width", resolution.get("width"))))
    height = int(_number(record.get("height", resolution.get("height"))))
    timestamp_ms = _timestamp_ms(record.get("timestamp"), clock or _wall_clock_ms)

    objects = normalize_detections(
        raw_detections,
        allowed_labels,
        frame_width=width,
        frame_height=height,
        normalized_coordinates=normalized_coordinates,
        min_confidence=min_confidence,
    )
    return Frame(timestamp_ms=timestamp_ms, width=width, height=height, objects=objects)
