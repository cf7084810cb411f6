"""Geometry helper utilities for bounding boxes and the viewport reference point."""
from __future__ import annotations

import math
from typing import Tuple

from ..models import BoundingBox, Point

Vector = Tuple[float, float]


def bbox_center(bbox: BoundingBox) -> Vector:
    """Return the center point of a bounding box."""

    return bbox.center


def reference_point(viewport_width: float, viewport_height: float) -> Point:
    """Return the bottom-center point of the viewport."""

    return Point(x=viewport_width / 2.0, y=float(viewport_height))


def euclidean_distance(first: Vector, second: Vector) -> float:
    return math.hypot(first[0] - second[0], first[1] - second[1])


def to_pixel(point: Point) -> Tuple[int, int]:
    """Round a point to integer pixel coordinates for drawing."""

    return (int(round(point.x)), int(round(point.y)))
