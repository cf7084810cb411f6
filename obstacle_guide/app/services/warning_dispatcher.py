"""Once-per-object warning bookkeeping."""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, MutableSet, Optional, Set

from ..models import DetectedObject

LOGGER = logging.getLogger(__name__)


def maybe_warn(detected: DetectedObject, seen: MutableSet[int]) -> bool:
    """Return True when the object has not been warned about yet, recording its tracking ID."""

    tracking_id = detected.tracking_id
    if tracking_id is None:
        return True
    if tracking_id in seen:
        return False
    seen.add(tracking_id)
    return True


class WarningDispatcher:
    """Session-scoped set of warned tracking IDs with optional eviction of stale IDs."""

    def __init__(self, evict_after_frames: Optional[int] = None) -> None:
        if evict_after_frames is not None and evict_after_frames < 1:
            raise ValueError(f"evict_after_frames must be >= 1, got {evict_after_frames}")
        self.evict_after_frames = evict_after_frames
        self._seen: Set[int] = set()
        self._last_seen: Dict[int, int] = {}
        self._lock = threading.Lock()

    def maybe_warn(self, detected: DetectedObject, frame_index: int = 0) -> bool:
        with self._lock:
            warned = maybe_warn(detected, self._seen)
            if self.evict_after_frames is not None and detected.tracking_id is not None:
                self._last_seen[detected.tracking_id] = frame_index
        if warned:
            LOGGER.debug("New object %s at frame %d", detected.tracking_id, frame_index)
        return warned

    def prune(self, frame_index: int) -> List[int]:
        """Forget IDs not observed within the eviction window and return them."""

        if self.evict_after_frames is None:
            return []
        with self._lock:
            stale = [
                tracking_id
                for tracking_id, last_seen in self._last_seen.items()
                if frame_index - last_seen > self.evict_after_frames
            ]
            for tracking_id in stale:
                self._seen.discard(tracking_id)
                del self._last_seen[tracking_id]
        if stale:
            LOGGER.debug("Evicted %d stale tracking IDs at frame %d", len(stale), frame_index)
        return stale

    def reset(self) -> None:
        with self._lock:
            self._seen.clear()
            self._last_seen.clear()

    def seen_ids(self) -> Set[int]:
        with self._lock:
            return set(self._seen)

    def __contains__(self, tracking_id: object) -> bool:
        with self._lock:
            return tracking_id in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
