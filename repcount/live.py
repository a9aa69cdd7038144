"""
Live webcam pipeline: capture, pose, angle extraction, rep counting, overlay window.
Saves the session summary on exit (q).
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import cv2

from .exercises import ExerciseType
from .io_stream import webcam_frames
from .overlay import draw_realtime_overlay
from .pose import PoseSnapshot, create_pose_detector, process_frame
from .session import RepCounterSession
from .storage import RepSessionRepository

logger = logging.getLogger(__name__)

# Target resize width for faster inference
LIVE_RESIZE_WIDTH = 960
# No-pose warning after this many seconds
NO_POSE_WARN_SEC = 2.0
SESSIONS_FILENAME = "sessions.json"


def run_live_pipeline(
    exercise: ExerciseType | str = ExerciseType.PRESS,
    camera_id: int = 0,
    target_fps: float = 20,
    record: bool = False,
    output_dir: str = "outputs",
) -> None:
    """
    Run live capture loop. q=quit, r=reset count, p=pause/resume, s=snapshot.
    On quit the session summary is appended to <output_dir>/sessions.json.
    """
    os.makedirs(output_dir, exist_ok=True)
    sessions_path = os.path.join(output_dir, SESSIONS_FILENAME)
    repository = RepSessionRepository.load_json(sessions_path)
    session = RepCounterSession(repository, exercise)
    pose = create_pose_detector()

    last_snapshot: Optional[PoseSnapshot] = None
    last_pose_time: Optional[float] = None
    message: Optional[str] = None
    video_writer: Optional[cv2.VideoWriter] = None
    win_name = f"{session.exercise.label} counter (q=quit, r=reset, p=pause, s=snapshot)"

    cv2.namedWindow(win_name, cv2.WINDOW_NORMAL)
    session.start()

    try:
        for frame_bgr, frame_idx, t_frame in webcam_frames(camera_id, target_fps=target_fps):
            h, w = frame_bgr.shape[:2]
            scale = LIVE_RESIZE_WIDTH / w if w > LIVE_RESIZE_WIDTH else 1.0
            if scale != 1.0:
                small = cv2.resize(frame_bgr, (LIVE_RESIZE_WIDTH, int(round(h * scale))))
            else:
                small = frame_bgr

            snapshot = None
            if not session.is_paused:
                snapshot = process_frame(small, pose)
                if snapshot is not None and scale != 1.0:
                    snapshot = snapshot.scaled(1.0 / scale)
            if snapshot is not None:
                last_snapshot = snapshot
                last_pose_time = t_frame
            if last_pose_time is None:
                last_pose_time = t_frame

            result = session.process_snapshot(snapshot, now=t_frame)

            if not session.is_paused and t_frame - last_pose_time > NO_POSE_WARN_SEC:
                message = "Move into frame"
            elif message == "Move into frame":
                message = None

            out_frame = frame_bgr.copy()
            draw_realtime_overlay(
                out_frame,
                last_snapshot,
                session.exercise,
                result.rep_count,
                result.smoothed_angle if result.smoothed_angle is not None else result.angle,
                result.phase.value,
                result.status,
                elapsed_seconds=session.elapsed_seconds,
                message=message,
            )

            if record and video_writer is None:
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                rec_path = os.path.join(output_dir, "live_recording.mp4")
                video_writer = cv2.VideoWriter(
                    rec_path,
                    fourcc,
                    max(1, int(target_fps)),
                    (out_frame.shape[1], out_frame.shape[0]),
                )
            if video_writer is not None:
                video_writer.write(out_frame)

            cv2.imshow(win_name, out_frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r") and session.detector is not None:
                session.detector.reset()
                message = None
            if key == ord("p"):
                if session.is_paused:
                    session.resume()
                    message = None
                else:
                    session.pause()
                    message = "Paused"
            if key == ord("s"):
                snap_path = os.path.join(output_dir, f"snapshot_{frame_idx}.jpg")
                cv2.imwrite(snap_path, out_frame)
                message = "Saved snapshot"
    finally:
        cv2.destroyAllWindows()
        if video_writer is not None:
            video_writer.release()
        summary = session.stop()
        repository.save_json(sessions_path)
        if summary is not None:
            logger.info("live: saved %s reps to %s", summary.total_reps, sessions_path)
