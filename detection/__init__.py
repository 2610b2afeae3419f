"""Detection package.

This package turns raw per-frame detection records, as published by an
upstream object detector, into normalized `DetectedObject` instances with
pixel-space corner boxes. Malformed envelopes raise `FrameEnvelopeError`;
incomplete individual detections are dropped.
"""

from .types import CornerBox, SizeBox, DetectedObject, Frame
from .normalizer import FrameEnvelopeError, normalize_detections, parse_box, parse_frame

__all__ = [
    "CornerBox",
    "SizeBox",
    "DetectedObject",
    "Frame",
    "FrameEnvelopeError",
    "normalize_detections",
    "parse_box",
    "parse_frame",
]
