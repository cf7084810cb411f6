"""Paint guide lines and detection annotations onto frames."""
from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..models import DetectedObject, GuideLine
from ..utils.geometry import to_pixel
from .session import DetectorSession, FrameGuidance


BGR = Tuple[int, int, int]

# (text color, background color)
PALETTE: List[Tuple[BGR, BGR]] = [
    ((0, 0, 0), (255, 255, 255)),
    ((255, 255, 255), (255, 0, 255)),
    ((0, 0, 0), (204, 204, 204)),
    ((255, 255, 255), (0, 0, 255)),
    ((255, 255, 255), (255, 0, 0)),
    ((255, 255, 255), (68, 68, 68)),
    ((0, 0, 0), (255, 255, 0)),
    ((0, 0, 0), (0, 255, 255)),
    ((255, 255, 255), (0, 0, 0)),
    ((0, 0, 0), (0, 255, 0)),
]

LABEL_FORMAT = "{confidence:.2f}% confidence (index: {index})"
GUIDE_COLOR: BGR = (0, 255, 255)
STROKE_WIDTH = 4


def label_lines(detected: DetectedObject) -> List[str]:
    """Text rows shown above a detection, top to bottom."""

    lines = [f"Tracking ID: {detected.tracking_id}"]
    for label in detected.labels:
        lines.append(label.text)
        lines.append(LABEL_FORMAT.format(confidence=label.confidence * 100, index=label.index))
    return lines


class OverlayRenderer:
    """Draws the per-frame guidance produced by a detector session."""

    def __init__(self, font_scale: float = 0.7, flipped: bool = False, guide_color: BGR = GUIDE_COLOR) -> None:
        self.font_scale = font_scale
        self.flipped = flipped
        self.guide_color = guide_color
        self._font = cv2.FONT_HERSHEY_SIMPLEX

    def draw_guide_line(self, frame: np.ndarray, guide_line: GuideLine) -> None:
        if guide_line.is_collapsed:
            return
        cv2.line(
            frame,
            to_pixel(guide_line.start),
            to_pixel(guide_line.end),
            self.guide_color,
            STROKE_WIDTH,
            lineType=cv2.LINE_AA,
        )

    def draw_object(self, frame: np.ndarray, detected: DetectedObject, color_index: int = 0) -> None:
        text_color, background = PALETTE[color_index % len(PALETTE)]
        left, top, right, bottom = map(int, detected.bounding_box.as_xyxy())
        cv2.rectangle(frame, (left, top), (right, bottom), background, STROKE_WIDTH)

        lines = label_lines(detected)
        sizes = [cv2.getTextSize(line, self._font, self.font_scale, 2)[0] for line in lines]
        text_width = max(width for width, _ in sizes)
        line_height = max(height for _, height in sizes) + 2 * STROKE_WIDTH
        block_height = line_height * len(lines)

        anchor_x = right if self.flipped else left
        block_top = max(0, top - block_height)
        cv2.rectangle(
            frame,
            (anchor_x - STROKE_WIDTH, block_top),
            (anchor_x + text_width + 2 * STROKE_WIDTH, block_top + block_height),
            background,
            thickness=-1,
        )
        y_offset = block_top
        for line in lines:
            y_offset += line_height
            cv2.putText(
                frame,
                line,
                (anchor_x, y_offset - STROKE_WIDTH),
                self._font,
                self.font_scale,
                text_color,
                2,
                lineType=cv2.LINE_AA,
            )

    def render(
        self,
        frame: np.ndarray,
        guidance: FrameGuidance,
        session: Optional[DetectorSession] = None,
    ) -> np.ndarray:
        """Return an annotated copy of the frame."""

        output = frame.copy()
        for detected in guidance.visible:
            color_index = session.color_index(detected.tracking_id) if session else 0
            self.draw_object(output, detected, color_index)
        self.draw_guide_line(output, guidance.guide_line)
        return output
