"""Video capture utilities for the guidance pipeline."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Iterable, Optional, Tuple, Union

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)


@dataclass
class Frame:
    index: int
    data: np.ndarray
    timestamp_ms: float


def parse_source(source: str) -> Union[int, str]:
    """Interpret numeric sources as camera indices and everything else as a path or URL."""

    try:
        return int(source)
    except ValueError:
        return source


def open_video_source(source: Union[int, str]) -> cv2.VideoCapture:
    """Open a video capture object from an integer index or file path."""

    capture = cv2.VideoCapture(source)
    if not capture.isOpened():
        raise RuntimeError(f"Unable to open video source: {source}")
    LOGGER.info("Video source %s opened successfully", source)
    return capture


@contextmanager
def managed_capture(source: Union[int, str]) -> Generator[cv2.VideoCapture, None, None]:
    """Context manager ensuring capture release."""

    capture = open_video_source(source)
    try:
        yield capture
    finally:
        LOGGER.info("Releasing video source")
        capture.release()


def fit_to_viewport(frame: np.ndarray, viewport: Optional[Tuple[int, int]]) -> np.ndarray:
    """Resize a frame to (width, height) so box coordinates share the viewport's pixel space."""

    if viewport is None:
        return frame
    width, height = viewport
    if frame.shape[1] == width and frame.shape[0] == height:
        return frame
    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_LINEAR)


def iter_frames(
    capture: cv2.VideoCapture,
    process_every: int = 1,
    viewport: Optional[Tuple[int, int]] = None,
) -> Iterable[Frame]:
    """Yield frames from capture, optionally skipping frames and resizing to the viewport."""

    frame_idx = 0
    processed_idx = 0
    fps = capture.get(cv2.CAP_PROP_FPS) or 0
    while True:
        success, frame = capture.read()
        if not success:
            LOGGER.info("End of stream reached after %d frames", frame_idx)
            break
        frame_idx += 1
        if process_every > 1 and frame_idx % process_every != 0:
            continue
        processed_idx += 1
        timestamp_ms = (frame_idx / fps * 1000) if fps else 0.0
        yield Frame(index=processed_idx, data=fit_to_viewport(frame, viewport), timestamp_ms=timestamp_ms)
