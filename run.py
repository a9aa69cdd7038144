#!/usr/bin/env python3
"""
Rep counting: offline (video) or live (webcam).
Usage:
  Offline: python run.py --video path/to/video.mp4 [--exercise squat]
  Live:    python run.py --live [--camera 0] [--exercise press] [--record]
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from repcount.exercises import ExerciseType
from repcount.io_stream import video_frames
from repcount.live import SESSIONS_FILENAME, run_live_pipeline
from repcount.pose import create_pose_detector, process_frame
from repcount.session import RepCounterSession
from repcount.storage import RepSession, RepSessionRepository

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).resolve().parent


class _VideoClock:
    """Monotonic clock driven by video frame timestamps."""

    def __init__(self) -> None:
        self.t = 0.0

    def __call__(self) -> float:
        return self.t


def run_offline(
    video_path: str,
    exercise: ExerciseType | str = ExerciseType.PRESS,
    repository: Optional[RepSessionRepository] = None,
) -> RepSession:
    """Process video file: pose -> angle -> rep detection. Stores and returns the summary."""
    if repository is None:
        repository = RepSessionRepository()
    clock = _VideoClock()
    session = RepCounterSession(repository, exercise, clock=clock)
    pose = create_pose_detector()
    session.start()
    frames = 0
    for frame_bgr, frame_idx, t_frame in video_frames(video_path):
        clock.t = t_frame
        session.process_snapshot(process_frame(frame_bgr, pose))
        frames = frame_idx + 1
    summary = session.stop()
    logger.info("offline: %s frames, %s reps", frames, summary.total_reps)
    return summary


def main() -> None:
    load_dotenv()
    load_dotenv(_ROOT / ".env")
    logging.basicConfig(
        level=os.environ.get("REPCOUNT_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    ap = argparse.ArgumentParser(description="Rep counting: offline video or live webcam")
    ap.add_argument("--video", type=str, default=None, help="Path to video file (offline mode)")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument(
        "--exercise",
        type=str,
        default=ExerciseType.PRESS.value,
        choices=[t.value for t in ExerciseType],
        help="Exercise to count (default press)",
    )
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--record", action="store_true", help="Save live_recording.mp4 in live mode")
    ap.add_argument(
        "--output-dir",
        type=str,
        default=os.environ.get("REPCOUNT_OUTPUT_DIR", "outputs"),
        help="Output directory",
    )
    args = ap.parse_args()

    if args.live and args.video:
        print("Error: provide exactly one of --video or --live", file=sys.stderr)
        sys.exit(1)
    if not args.live and not args.video:
        print("Error: provide --video PATH or --live", file=sys.stderr)
        sys.exit(1)

    if args.live:
        run_live_pipeline(
            exercise=args.exercise,
            camera_id=args.camera,
            target_fps=20,
            record=args.record,
            output_dir=args.output_dir,
        )
        return

    if not os.path.isfile(args.video):
        print(f"Error: video file not found: {args.video}", file=sys.stderr)
        sys.exit(1)
    sessions_path = os.path.join(args.output_dir, SESSIONS_FILENAME)
    repository = RepSessionRepository.load_json(sessions_path)
    summary = run_offline(args.video, exercise=args.exercise, repository=repository)
    repository.save_json(sessions_path)
    print(
        f"Offline done. {summary.exercise_type}: {summary.total_reps} reps "
        f"in {summary.duration_seconds}s. Sessions: {sessions_path}"
    )


if __name__ == "__main__":
    main()
