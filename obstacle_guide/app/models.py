"""Shared data models for obstacle guidance."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Label:
    """A ranked classification attached to a detected object."""

    text: str
    confidence: float
    index: int = 0


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in viewport pixels, top-left origin."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_xyxy(cls, bbox: Sequence[float]) -> "BoundingBox":
        x1, y1, x2, y2 = bbox
        return cls(left=float(x1), top=float(y1), right=float(x2), bottom=float(y2))

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass
class DetectedObject:
    """Represents a single detection delivered by the vision pipeline."""

    bounding_box: BoundingBox
    tracking_id: Optional[int] = None
    labels: Sequence[Label] = field(default_factory=list)

    @property
    def top_label(self) -> Optional[Label]:
        if not self.labels:
            return None
        return self.labels[0]


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass
class ObjectMeasurement:
    """Geometry derived for one qualifying detection."""

    detection: DetectedObject
    mid_x: float
    mid_y: float
    horizontal_offset: float
    ground_distance: float
    bearing_angle_degrees: float
    estimated_distance_feet: float
    box_height: float


@dataclass
class GuideLine:
    """Aggregate guide line from the target point to the viewport reference point."""

    start: Point
    end: Point
    contributions: List[ObjectMeasurement] = field(default_factory=list)

    @property
    def is_collapsed(self) -> bool:
        return self.start == self.end
