"""Per-frame orchestration of estimation, warnings and overlay selection."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from ..models import DetectedObject, GuideLine
from .bearing_estimator import BearingEstimator
from .speech import LoggingSpeaker, Speaker
from .warning_dispatcher import WarningDispatcher

LOGGER = logging.getLogger(__name__)

NUM_COLORS = 10


@dataclass
class FrameGuidance:
    frame_index: int
    guide_line: GuideLine
    warned: List[Optional[int]] = field(default_factory=list)
    visible: List[DetectedObject] = field(default_factory=list)


class DetectorSession:
    """Owns the keyed state of one detector run: warned IDs and tracking colors."""

    def __init__(
        self,
        estimator: BearingEstimator,
        dispatcher: Optional[WarningDispatcher] = None,
        speaker: Optional[Speaker] = None,
        warning_phrase: str = "Warning",
        hidden_labels: Iterable[str] = ("N/A",),
    ) -> None:
        self.estimator = estimator
        self.dispatcher = dispatcher or WarningDispatcher()
        self.speaker: Speaker = speaker or LoggingSpeaker()
        self.warning_phrase = warning_phrase
        self.hidden_labels: FrozenSet[str] = frozenset(hidden_labels)
        self._colors: Dict[int, int] = {}

    def process_frame(self, frame_index: int, detections: Sequence[DetectedObject]) -> FrameGuidance:
        self.dispatcher.prune(frame_index)
        guide_line = self.estimator.estimate(detections)

        warned: List[Optional[int]] = []
        for detection in detections:
            if not self.estimator.qualifies(detection):
                continue
            if self.dispatcher.maybe_warn(detection, frame_index):
                self.speaker.speak(self.warning_phrase)
                warned.append(detection.tracking_id)

        visible = [detection for detection in detections if self.is_visible(detection)]

        LOGGER.info(
            "Frame %d | guide start=(%.1f, %.1f) end=(%.1f, %.1f) | contributors=%d | warned=%s",
            frame_index,
            guide_line.start.x,
            guide_line.start.y,
            guide_line.end.x,
            guide_line.end.y,
            len(guide_line.contributions),
            warned,
        )
        return FrameGuidance(frame_index=frame_index, guide_line=guide_line, warned=warned, visible=visible)

    def is_visible(self, detection: DetectedObject) -> bool:
        """Objects are overlaid only when their top label is a real classification."""

        label = detection.top_label
        if label is None:
            return False
        return label.text not in self.hidden_labels

    def color_index(self, tracking_id: Optional[int]) -> int:
        if tracking_id is None:
            return 0
        index = self._colors.get(tracking_id)
        if index is None:
            index = abs(tracking_id) % NUM_COLORS
            self._colors[tracking_id] = index
        return index

    def reset(self) -> None:
        self.dispatcher.reset()
        self._colors.clear()
