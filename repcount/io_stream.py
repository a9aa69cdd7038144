"""
Frame generators for a video file or webcam.
Yield (frame_bgr, frame_idx, timestamp_sec) in arrival order; timestamps are monotonic.
"""
from __future__ import annotations

import time
from typing import Generator

import cv2
import numpy as np

Frame = tuple[np.ndarray, int, float]


def video_frames(video_path: str) -> Generator[Frame, None, None]:
    """
    Yield frames from a video file.
    timestamp_sec is the frame's position in the video (frame_idx / fps).
    """
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise FileNotFoundError(f"Cannot open video: {video_path}")
    try:
        fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
        idx = 0
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield (frame, idx, idx / fps)
            idx += 1
    finally:
        cap.release()


def webcam_frames(
    camera_id: int = 0,
    target_fps: float = 20,
) -> Generator[Frame, None, None]:
    """
    Yield frames from webcam with graceful shutdown.
    timestamp_sec is time.monotonic() at capture.
    """
    cap = cv2.VideoCapture(camera_id)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open camera {camera_id}. Check permissions and that no other app is using it.")
    try:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)
        cap.set(cv2.CAP_PROP_FPS, target_fps)
        idx = 0
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield (frame, idx, time.monotonic())
            idx += 1
    finally:
        cap.release()
