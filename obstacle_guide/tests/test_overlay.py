from __future__ import annotations

import numpy as np

from obstacle_guide.app.models import BoundingBox, DetectedObject, GuideLine, Label, Point
from obstacle_guide.app.services.bearing_estimator import BearingEstimator
from obstacle_guide.app.services.overlay import PALETTE, OverlayRenderer, label_lines
from obstacle_guide.app.services.session import DetectorSession, FrameGuidance


def blank_frame() -> np.ndarray:
    return np.zeros((1280, 720, 3), dtype=np.uint8)


def test_label_lines_format() -> None:
    detected = DetectedObject(
        bounding_box=BoundingBox(10, 10, 50, 50),
        tracking_id=7,
        labels=[Label("person", 0.875, 0), Label("chair", 0.1, 3)],
    )

    assert label_lines(detected) == [
        "Tracking ID: 7",
        "person",
        "87.50% confidence (index: 0)",
        "chair",
        "10.00% confidence (index: 3)",
    ]


def test_untracked_label_block() -> None:
    detected = DetectedObject(bounding_box=BoundingBox(10, 10, 50, 50))

    assert label_lines(detected) == ["Tracking ID: None"]


def test_collapsed_guide_line_draws_nothing() -> None:
    frame = blank_frame()
    reference = Point(360.0, 1280.0)
    guidance = FrameGuidance(frame_index=1, guide_line=GuideLine(start=reference, end=reference))

    output = OverlayRenderer().render(frame, guidance)

    assert not output.any()


def test_guide_line_is_painted_on_a_copy() -> None:
    frame = blank_frame()
    guide = GuideLine(start=Point(360.0, 90.0), end=Point(360.0, 1280.0))
    guidance = FrameGuidance(frame_index=1, guide_line=guide)

    output = OverlayRenderer().render(frame, guidance)

    assert not frame.any()
    assert output[640, 360].any()
    assert not output[640, 100].any()


def test_objects_use_session_palette() -> None:
    session = DetectorSession(BearingEstimator())
    detected = DetectedObject(
        bounding_box=BoundingBox(200, 400, 400, 600),
        tracking_id=3,
        labels=[Label("person", 0.9, 0)],
    )
    guidance = session.process_frame(1, [detected])

    output = OverlayRenderer().render(blank_frame(), guidance, session)

    _, background = PALETTE[3]
    # Bottom edge of the box is drawn in the tracking ID's background color.
    assert tuple(int(value) for value in output[600, 300]) == background
