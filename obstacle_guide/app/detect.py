"""Entry point for real-time obstacle guidance."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Iterable, Optional

import cv2
import numpy as np

from .config.settings import AppSettings, load_settings
from .services.bearing_estimator import BearingEstimator, EstimatorConfig
from .services.detector import YOLOObjectDetector
from .services.guide_log import GuidanceRecord, GuideLineLog
from .services.overlay import OverlayRenderer
from .services.session import DetectorSession
from .services.speech import build_speaker
from .services.warning_dispatcher import WarningDispatcher
from .utils.video import iter_frames, managed_capture, parse_source

LOGGER = logging.getLogger(__name__)

WINDOW_NAME = "Obstacle Guide"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Obstacle guidance from tracked object detections")
    parser.add_argument("--source", type=str, default="0", help="Video source path or device index")
    parser.add_argument("--model", type=str, default=None, help="Path to YOLO weights file")
    parser.add_argument("--conf", type=float, default=None, help="Detector box confidence threshold")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold")
    parser.add_argument("--label-conf", type=float, default=None, help="Top-label confidence required for the guide line")
    parser.add_argument("--calibration", type=str, default=None, help="Calibration YAML file")
    parser.add_argument("--mute", action="store_true", help="Log warnings instead of speaking them")
    parser.add_argument("--speech-rate", type=int, default=None, help="Speech rate in words per minute")
    parser.add_argument("--evict-after", type=int, default=None, help="Forget warned IDs unseen for N frames")
    parser.add_argument("--session", type=str, default=None, help="Session identifier for records")
    parser.add_argument("--save-every", type=int, default=None, help="Save annotated frames every N frames")
    parser.add_argument("--no-display", action="store_true", help="Disable OpenCV window display")
    parser.add_argument("--process-every", type=int, default=None, help="Process only every Nth frame")
    parser.add_argument("--flip", action="store_true", help="Anchor labels for a mirrored preview")
    parser.add_argument("--log-format", choices=["text", "json"], default=None, help="Logging format")
    parser.add_argument("--warmup", type=int, default=0, help="Number of warm-up frames")
    return parser


def setup_logging(settings: AppSettings) -> None:
    log_level = logging.INFO
    if settings.log_format == "json":
        formatter = logging.Formatter('{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}')
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=log_level, handlers=[handler])


def resolve_settings(args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if args.model:
        overrides["model_path"] = Path(args.model)
    if args.conf is not None:
        overrides["detector_confidence"] = args.conf
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if args.label_conf is not None:
        overrides["confidence_threshold"] = args.label_conf
    if args.calibration:
        overrides["calibration_path"] = Path(args.calibration)
    if args.mute:
        overrides["speech_enabled"] = False
    if args.speech_rate is not None:
        overrides["speech_rate"] = args.speech_rate
    if args.evict_after is not None:
        overrides["warn_evict_after_frames"] = args.evict_after
    if args.session:
        overrides["session_id"] = args.session
    if args.save_every:
        overrides["save_every_n_frames"] = args.save_every
    if args.no_display:
        overrides["display"] = False
    if args.process_every:
        overrides["process_every_n_frames"] = args.process_every
    if args.flip:
        overrides["flip_overlay"] = True
    if args.log_format:
        overrides["log_format"] = args.log_format

    return load_settings(**overrides)


def build_estimator_config(settings: AppSettings) -> EstimatorConfig:
    config = EstimatorConfig.from_yaml(settings.calibration_path)
    return config.with_overrides(confidence_threshold=settings.confidence_threshold)


def build_session(settings: AppSettings, config: EstimatorConfig) -> DetectorSession:
    return DetectorSession(
        estimator=BearingEstimator(config),
        dispatcher=WarningDispatcher(evict_after_frames=settings.warn_evict_after_frames),
        speaker=build_speaker(settings.speech_enabled, settings.speech_rate, settings.speech_voice),
        warning_phrase=settings.warning_phrase,
        hidden_labels=settings.hidden_labels,
    )


def warm_up_detector(detector: YOLOObjectDetector, capture_frames: Iterable[np.ndarray], count: int) -> None:
    if count <= 0:
        return
    LOGGER.info("Warming up detector with %d frames", count)
    YOLOObjectDetector.warm_up(detector, capture_frames, limit=count)


def process_video_stream(
    video_source: str | int,
    settings: AppSettings,
    session: DetectorSession,
    detector: YOLOObjectDetector,
    renderer: OverlayRenderer,
    guide_log: GuideLineLog,
    *,
    warmup_frames: int = 0,
) -> int:
    """Run the guidance loop and return the number of frames processed."""

    config = session.estimator.config
    viewport = (config.viewport_width, config.viewport_height) if settings.resize_to_viewport else None
    processed = 0
    with managed_capture(video_source) as capture:
        if warmup_frames:
            frames = (frame.data for frame in iter_frames(capture, process_every=1, viewport=viewport))
            warm_up_detector(detector, frames, warmup_frames)
            capture.set(cv2.CAP_PROP_POS_FRAMES, 0)

        for frame in iter_frames(capture, process_every=settings.process_every_n_frames, viewport=viewport):
            loop_start = time.perf_counter()
            try:
                detections = detector.detect(frame.data)
            except Exception:
                LOGGER.exception("Object detection failed on frame %d", frame.index)
                continue
            guidance = session.process_frame(frame.index, detections)
            latency_ms = (time.perf_counter() - loop_start) * 1000
            guide_log.append(GuidanceRecord.from_guidance(guidance, latency_ms))
            processed += 1

            annotated = renderer.render(frame.data, guidance, session)

            if settings.display and not settings.no_video_output:
                cv2.imshow(WINDOW_NAME, annotated)
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), 27):
                    LOGGER.info("Quit signal received from keyboard")
                    break
                if key == ord("p"):
                    LOGGER.info("Paused. Press any key to resume.")
                    cv2.waitKey(0)
                if key == ord("s"):
                    guide_log.save_snapshot(annotated, frame.index)

            if frame.index % settings.save_every_n_frames == 0:
                guide_log.save_snapshot(annotated, frame.index)
    return processed


def run_detection(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    setup_logging(settings)

    LOGGER.info("Starting obstacle guidance pipeline")

    config = build_estimator_config(settings)
    session = build_session(settings, config)
    renderer = OverlayRenderer(font_scale=settings.overlay_font_scale, flipped=settings.flip_overlay)
    detector = YOLOObjectDetector(
        settings.model_path,
        settings.detector_confidence,
        settings.iou_threshold,
        tracker=settings.tracker,
    )
    guide_log = GuideLineLog(
        settings.data_dir / settings.guide_log_filename,
        snapshot_dir=settings.snapshot_dir,
        flush_every=settings.flush_every_n_frames,
        metadata={
            "session_id": settings.session_id,
            "source": str(args.source),
            "viewport": [config.viewport_width, config.viewport_height],
            "confidence_threshold": config.confidence_threshold,
        },
    )

    try:
        processed = process_video_stream(
            parse_source(args.source),
            settings,
            session,
            detector,
            renderer,
            guide_log,
            warmup_frames=args.warmup,
        )
    finally:
        detector.close()
        session.speaker.close()
        guide_log.close()
        if settings.display and not settings.no_video_output:
            cv2.destroyAllWindows()

    LOGGER.info("Obstacle guidance completed after %d frames, %d objects warned", processed, len(session.dispatcher))
    return 0


def main() -> None:
    parser = build_arg_parser()
    args = parser.parse_args()

    def handle_interrupt(signum: int, frame: Optional[object]) -> None:  # pragma: no cover - signal handling
        LOGGER.warning("Received interrupt signal (%d), shutting down", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_interrupt)
    sys.exit(run_detection(args))


if __name__ == "__main__":  # pragma: no cover
    main()
