"""YOLOv8 tracking detector wrapper."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np

try:  # pragma: no cover - import guarded for environments without ultralytics
    from ultralytics import YOLO
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "ultralytics package is required for object detection. Install the project "
        "with `pip install -e .` before running detect.py."
    ) from exc

from ..models import BoundingBox, DetectedObject, Label

LOGGER = logging.getLogger(__name__)


class YOLOObjectDetector:
    """Encapsulates YOLOv8 inference with persistent tracking IDs."""

    def __init__(
        self,
        model_path: Path,
        confidence: float,
        iou: float,
        tracker: str = "bytetrack.yaml",
        classes: Optional[List[int]] = None,
    ) -> None:
        self.model_path = model_path
        self.confidence = confidence
        self.iou = iou
        self.tracker = tracker
        self.classes = classes
        LOGGER.info("Loading YOLO model from %s", model_path)
        self._model = YOLO(str(model_path))
        self._class_map = self._model.names

    def detect(self, frame: np.ndarray) -> List[DetectedObject]:
        """Run tracking inference on a frame and return detected objects."""

        results = self._model.track(
            frame,
            persist=True,
            tracker=self.tracker,
            conf=self.confidence,
            iou=self.iou,
            classes=self.classes,
            verbose=False,
        )
        detections: List[DetectedObject] = []
        for result in results:
            detections.extend(self._convert(result.boxes))
        LOGGER.debug("Detected %d objects", len(detections))
        return detections

    def _convert(self, boxes) -> List[DetectedObject]:
        if boxes is None or boxes.cls is None or len(boxes.cls) == 0:
            return []

        classes = boxes.cls.int().cpu().tolist()
        confidences = boxes.conf.cpu().tolist()
        xyxy = boxes.xyxy.cpu().numpy().tolist()
        # Tracker IDs are missing until a track is confirmed.
        track_ids = boxes.id.int().cpu().tolist() if boxes.id is not None else [None] * len(classes)

        objects: List[DetectedObject] = []
        for class_id, confidence, bbox, track_id in zip(classes, confidences, xyxy, track_ids):
            class_name = self._class_map.get(class_id, str(class_id))
            objects.append(
                DetectedObject(
                    bounding_box=BoundingBox.from_xyxy(bbox),
                    tracking_id=track_id,
                    labels=[Label(text=class_name, confidence=float(confidence), index=int(class_id))],
                )
            )
        return objects

    def close(self) -> None:
        """Release the model; failures are logged rather than raised."""

        try:
            predictor = getattr(self._model, "predictor", None)
            if predictor is not None and hasattr(predictor, "trackers"):
                predictor.trackers = []
            self._model = None
            LOGGER.info("Object detector closed")
        except Exception:
            LOGGER.exception("Exception thrown while trying to close object detector")

    @staticmethod
    def warm_up(model: "YOLOObjectDetector", frames: Iterable[np.ndarray], limit: int = 2) -> None:
        """Optionally warm up the model with a couple of frames to reduce latency spikes."""

        for idx, frame in enumerate(frames):
            if idx >= limit:
                break
            LOGGER.debug("Warming up model with frame %d", idx)
            _ = model.detect(frame)
