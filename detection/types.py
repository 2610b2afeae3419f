"""Value types for normalized detections.

Bounding boxes arrive in two layouts: corner form (``x_min, y_min, x_max,
y_max``) and size form (``x, y, width, height`` measured from the top-left
corner). Both are represented explicitly here and converted once to
`CornerBox` by the normalizer, so every later stage works on a single
representation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple, Union


@dataclass(frozen=True)
class CornerBox:
    """Axis-aligned box given by its top-left and bottom-right corners."""

    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x_min + self.x_max) / 2.0, (self.y_min + self.y_max) / 2.0)

    def to_corners(self) -> "CornerBox":
        return self

    def to_tlbr(self) -> Tuple[float, float, float, float]:
        return (self.x_min, self.y_min, self.x_max, self.y_max)


@dataclass(frozen=True)
class SizeBox:
    """Box given by its top-left corner plus width and height."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def to_corners(self) -> CornerBox:
        return CornerBox(self.x, self.y, self.x + self.width, self.y + self.height)


BoundingBox = Union[CornerBox, SizeBox]


@dataclass(frozen=True)
class DetectedObject:
    """A single accepted detection in one frame."""

    identity: str
    label: str
    confidence: float
    box: CornerBox

    @property
    def center(self) -> Tuple[float, float]:
        return self.box.center

    @property
    def area(self) -> float:
        return self.box.area


@dataclass
class Frame:
    """Frame metadata together with its normalized detections."""

    timestamp_ms: float
    width: int = 0
    height: int = 0
    objects: List[DetectedObject] = field(default_factory=list)
