"""Per-frame guide line log and annotated snapshots."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Tuple

import cv2
import numpy as np

from .session import FrameGuidance

LOGGER = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass
class GuidanceRecord:
    """One line of the guide log: where the guide line pointed for a frame."""

    frame_id: int
    timestamp: str
    guide_start: Tuple[float, float]
    guide_end: Tuple[float, float]
    contributors: int
    latency_ms: float
    nearest_distance_feet: Optional[float] = None
    nearest_bearing_degrees: Optional[float] = None
    warned_ids: List[Optional[int]] = field(default_factory=list)

    @classmethod
    def from_guidance(cls, guidance: FrameGuidance, latency_ms: float) -> "GuidanceRecord":
        guide_line = guidance.guide_line
        nearest = min(
            guide_line.contributions,
            key=lambda item: item.estimated_distance_feet,
            default=None,
        )
        return cls(
            frame_id=guidance.frame_index,
            timestamp=_utc_now(),
            guide_start=guide_line.start.as_tuple(),
            guide_end=guide_line.end.as_tuple(),
            contributors=len(guide_line.contributions),
            latency_ms=round(latency_ms, 3),
            nearest_distance_feet=nearest.estimated_distance_feet if nearest else None,
            nearest_bearing_degrees=nearest.bearing_angle_degrees if nearest else None,
            warned_ids=list(guidance.warned),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "frame",
            "frame_id": self.frame_id,
            "timestamp": self.timestamp,
            "guide_start": list(self.guide_start),
            "guide_end": list(self.guide_end),
            "contributors": self.contributors,
            "latency_ms": self.latency_ms,
            "nearest_distance_feet": self.nearest_distance_feet,
            "nearest_bearing_degrees": self.nearest_bearing_degrees,
            "warned_ids": list(self.warned_ids),
        }


class GuideLineLog:
    """Append-only JSON-lines log of a detector session.

    The first line describes the session; each following line is a
    ``GuidanceRecord``. Lines are flushed to disk every ``flush_every`` frames
    so a crashed run still leaves a readable log.
    """

    def __init__(
        self,
        path: Path,
        snapshot_dir: Optional[Path] = None,
        flush_every: int = 30,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.path = path
        self.snapshot_dir = snapshot_dir
        self.flush_every = max(1, flush_every)
        self.frames_written = 0
        self._pending = 0
        path.parent.mkdir(parents=True, exist_ok=True)
        self._handle: Optional[TextIO] = path.open("w", encoding="utf-8")
        header = {"type": "session", "started_at": _utc_now(), **(metadata or {})}
        self._write_line(header)
        LOGGER.info("Writing guide log to %s", path)

    def __enter__(self) -> "GuideLineLog":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def append(self, record: GuidanceRecord) -> None:
        if self._handle is None:
            raise ValueError(f"Guide log {self.path} is closed")
        self._write_line(record.to_dict())
        self.frames_written += 1
        self._pending += 1
        if self._pending >= self.flush_every:
            self._handle.flush()
            self._pending = 0

    def save_snapshot(self, frame: np.ndarray, frame_id: int) -> Optional[Path]:
        """Write an annotated frame next to the log; returns None when snapshots are disabled."""

        if self.snapshot_dir is None:
            return None
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)
        target = self.snapshot_dir / f"frame_{frame_id:05d}.jpg"
        if not cv2.imwrite(str(target), frame):
            LOGGER.warning("Unable to write snapshot %s", target)
            return None
        LOGGER.debug("Saved annotated frame %s", target)
        return target

    def close(self) -> None:
        if self._handle is None:
            return
        self._handle.close()
        self._handle = None
        LOGGER.info("Guide log closed after %d frames", self.frames_written)

    def _write_line(self, payload: Dict[str, Any]) -> None:
        assert self._handle is not None
        self._handle.write(json.dumps(payload) + "\n")


def read_guide_log(path: Path) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Return the session header and frame records of a guide log."""

    header: Dict[str, Any] = {}
    frames: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{line_number} is not valid JSON") from exc
            if entry.get("type") == "session":
                header = entry
            else:
                frames.append(entry)
    return header, frames
