"""Aggregate bearing and distance estimation over detected objects."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, List, Optional

import yaml

from ..models import DetectedObject, GuideLine, ObjectMeasurement, Point
from ..utils.geometry import bbox_center, euclidean_distance, reference_point

LOGGER = logging.getLogger(__name__)

CM_PER_FOOT = 30.48


@dataclass(frozen=True)
class EstimatorConfig:
    viewport_width: int = 720
    viewport_height: int = 1280
    confidence_threshold: float = 0.1
    max_distance_feet: float = 10.0
    # Similar-triangles constants: reference object height (cm) and focal length (px).
    reference_height_cm: float = 165.0
    focal_length_px: float = 615.0

    def __post_init__(self) -> None:
        if self.viewport_width <= 0 or self.viewport_height <= 0:
            raise ValueError(f"Viewport must be positive, got {self.viewport_width}x{self.viewport_height}")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"Confidence threshold must lie in [0, 1], got {self.confidence_threshold}")
        if self.max_distance_feet <= 0:
            raise ValueError(f"max_distance_feet must be positive, got {self.max_distance_feet}")
        if self.reference_height_cm <= 0 or self.focal_length_px <= 0:
            raise ValueError("Calibration constants must be positive")

    @classmethod
    def from_yaml(cls, path: Path) -> "EstimatorConfig":
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
        viewport = payload.get("viewport", {}) or {}
        calibration = payload.get("calibration", {}) or {}
        return cls(
            viewport_width=int(viewport.get("width", cls.viewport_width)),
            viewport_height=int(viewport.get("height", cls.viewport_height)),
            confidence_threshold=float(payload.get("confidence_threshold", cls.confidence_threshold)),
            max_distance_feet=float(payload.get("max_distance_feet", cls.max_distance_feet)),
            reference_height_cm=float(calibration.get("reference_height_cm", cls.reference_height_cm)),
            focal_length_px=float(calibration.get("focal_length_px", cls.focal_length_px)),
        )

    def with_overrides(self, **overrides: object) -> "EstimatorConfig":
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)


def estimate_distance_feet(box_height: float, reference_height_cm: float = 165.0, focal_length_px: float = 615.0) -> float:
    """Approximate camera distance from the apparent box height using similar triangles."""

    if box_height <= 0:
        return math.inf
    return ((reference_height_cm * focal_length_px) / box_height) / CM_PER_FOOT


class BearingEstimator:
    """Reduces a frame's detections to a single guide line."""

    def __init__(self, config: Optional[EstimatorConfig] = None) -> None:
        self.config = config or EstimatorConfig()
        self._reference = reference_point(self.config.viewport_width, self.config.viewport_height)

    @property
    def reference(self) -> Point:
        return self._reference

    def qualifies(self, detection: DetectedObject) -> bool:
        """Return True when the top-ranked label meets the confidence threshold."""

        label = detection.top_label
        if label is None:
            return False
        return label.confidence >= self.config.confidence_threshold

    def measure(self, detection: DetectedObject) -> Optional[ObjectMeasurement]:
        """Compute bearing and distance for one detection, or None when it does not qualify."""

        if not self.qualifies(detection):
            return None

        mid_x, mid_y = bbox_center(detection.bounding_box)
        horizontal_offset = mid_x - self._reference.x
        ground_distance = euclidean_distance((mid_x, mid_y), self._reference.as_tuple())
        if ground_distance == 0:
            LOGGER.debug("Skipping detection %s centered on the reference point", detection.tracking_id)
            return None

        bearing = math.degrees(math.asin(horizontal_offset / ground_distance))
        box_height = detection.bounding_box.height
        distance = estimate_distance_feet(
            box_height,
            self.config.reference_height_cm,
            self.config.focal_length_px,
        )
        return ObjectMeasurement(
            detection=detection,
            mid_x=mid_x,
            mid_y=mid_y,
            horizontal_offset=horizontal_offset,
            ground_distance=ground_distance,
            bearing_angle_degrees=bearing,
            estimated_distance_feet=distance,
            box_height=box_height,
        )

    def estimate(self, detections: Iterable[DetectedObject]) -> GuideLine:
        """Return the inverse-distance weighted guide line for the given detections."""

        retained: List[ObjectMeasurement] = []
        for detection in detections:
            measurement = self.measure(detection)
            if measurement is None:
                continue
            if measurement.estimated_distance_feet >= self.config.max_distance_feet:
                continue
            retained.append(measurement)

        end = self._reference
        if not retained:
            return GuideLine(start=end, end=end, contributions=[])

        sum_x = sum(item.horizontal_offset / item.estimated_distance_feet for item in retained)
        sum_y = sum((item.mid_y - item.box_height) / item.estimated_distance_feet for item in retained)
        avg_x = -sum_x / len(retained)
        avg_y = -sum_y / len(retained)

        start = Point(x=avg_x + end.x, y=avg_y)
        return GuideLine(start=start, end=end, contributions=retained)


def estimate(
    detections: Iterable[DetectedObject],
    viewport_width: int = 720,
    viewport_height: int = 1280,
    confidence_threshold: float = 0.1,
) -> GuideLine:
    """Convenience wrapper building a one-off estimator for the given viewport."""

    config = EstimatorConfig(
        viewport_width=viewport_width,
        viewport_height=viewport_height,
        confidence_threshold=confidence_threshold,
    )
    return BearingEstimator(config).estimate(detections)
