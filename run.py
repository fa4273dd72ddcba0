#!/usr/bin/env python3
"""
Imperfect Coach: pull-up and jump rep counting, offline (video) or live (webcam).
Usage:
  Offline: python run.py --video path/to/video.mp4 --exercise pullups
  Live:    python run.py --live --exercise jumps [--camera 0] [--record]
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from imperfect_coach.coach import CoachMode
from imperfect_coach.results import Exercise

LOG_LEVEL_ENV = "IMPERFECT_COACH_LOG_LEVEL"


def _configure_logging() -> None:
    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Imperfect Coach: pull-up and jump analysis from video or webcam")
    ap.add_argument("--video", type=str, default=None, help="Path to video file (offline mode)")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument(
        "--exercise",
        choices=[e.value for e in Exercise],
        default=Exercise.PULLUPS.value,
        help="Exercise to track (default pullups)",
    )
    ap.add_argument(
        "--mode",
        choices=[m.value for m in CoachMode],
        default=CoachMode.TRAINING.value,
        help="training shows form cues; assessment only counts and scores",
    )
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--record", action="store_true", help="Save live_recording.mp4 in live mode")
    ap.add_argument("--output-dir", type=str, default="outputs", help="Output directory")
    return ap


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    load_dotenv(Path(__file__).resolve().parent / ".env")
    _configure_logging()
    args = build_parser().parse_args(argv)

    if args.live and args.video:
        print("Error: provide exactly one of --video or --live", file=sys.stderr)
        sys.exit(1)
    if not args.live and not args.video:
        print("Error: provide --video PATH or --live", file=sys.stderr)
        sys.exit(1)

    # cv2 and mediapipe load only once a pipeline is actually requested.
    from imperfect_coach.live import run_live_pipeline, run_video_pipeline

    if args.live:
        report = run_live_pipeline(
            exercise=args.exercise,
            camera_id=args.camera,
            target_fps=20,
            record=args.record,
            output_dir=args.output_dir,
            mode=args.mode,
        )
    else:
        if not os.path.isfile(args.video):
            print(f"Error: video file not found: {args.video}", file=sys.stderr)
            sys.exit(1)
        report = run_video_pipeline(
            args.video,
            exercise=args.exercise,
            output_dir=args.output_dir,
            mode=args.mode,
        )
    print(f"Done. Report: {report}")


if __name__ == "__main__":
    main()
