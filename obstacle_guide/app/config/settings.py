"""Configuration utilities for obstacle guidance."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables or defaults."""

    model_config = SettingsConfigDict(env_prefix="GUIDE_", case_sensitive=False, protected_namespaces=())

    model_path: Path = Field(default=Path("models/yolov8n.pt"), description="YOLO weights path")
    detector_confidence: float = Field(default=0.25, ge=0.0, le=1.0, description="Minimum YOLO box score.")
    iou_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    tracker: str = Field(default="bytetrack.yaml", description="Ultralytics tracker configuration.")
    calibration_path: Path = Field(
        default=Path(__file__).resolve().parent / "calibration.yaml",
        description="Viewport size and distance calibration constants.",
    )
    confidence_threshold: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Top-label confidence required to influence the guide line; calibration file value when unset.",
    )
    resize_to_viewport: bool = Field(default=True, description="Scale frames to the calibrated viewport before detection.")
    warning_phrase: str = Field(default="Warning")
    speech_enabled: bool = Field(default=True, description="Speak warnings through pyttsx3; log them when false.")
    speech_rate: Optional[int] = Field(default=None, gt=0, description="pyttsx3 words-per-minute rate.")
    speech_voice: Optional[str] = Field(default=None, description="pyttsx3 voice id.")
    warn_evict_after_frames: Optional[int] = Field(
        default=None,
        ge=1,
        description="Forget warned tracking IDs unseen for this many frames; never when unset.",
    )
    hidden_labels: list[str] = Field(default_factory=lambda: ["N/A"])
    session_id: str = Field(default="session_01")
    save_every_n_frames: int = Field(default=60, ge=1)
    flush_every_n_frames: int = Field(default=30, ge=1)
    process_every_n_frames: int = Field(default=1, ge=1)
    display: bool = Field(default=True, description="Render OpenCV window when true.")
    no_video_output: bool = Field(default=False, description="Disable video playback even if display flag true.")
    flip_overlay: bool = Field(default=False, description="Anchor label blocks to the right edge for mirrored previews.")
    log_format: str = Field(default="text")
    snapshot_dir: Path = Field(
        default=Path(__file__).resolve().parents[2] / "output_frames",
        description="Directory for annotated snapshot frames.",
    )
    data_dir: Path = Field(
        default=Path(__file__).resolve().parents[2] / "data",
        description="Directory for the guide line log.",
    )
    guide_log_filename: str = Field(default="guide_log.jsonl")
    overlay_font_scale: float = Field(default=0.7, gt=0.0)

    @field_validator("model_path", "calibration_path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("snapshot_dir", "data_dir", mode="before")
    @classmethod
    def _expand_dir(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {value!r}")
        return value


def load_settings(**overrides: object) -> AppSettings:
    """Return application settings, applying optional overrides."""

    return AppSettings(**overrides)
