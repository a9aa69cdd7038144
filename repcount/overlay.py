"""
Draw the tracked limb and rep state on frames (in-place).
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .exercises import ExerciseDefinition
from .pose import Landmark, PoseSnapshot, snapshot_pixels

# Skeleton connections between tracked landmarks
_POSE_CONNECTIONS = frozenset([
    (Landmark.LEFT_SHOULDER, Landmark.RIGHT_SHOULDER),
    (Landmark.LEFT_SHOULDER, Landmark.LEFT_ELBOW),
    (Landmark.LEFT_ELBOW, Landmark.LEFT_WRIST),
    (Landmark.RIGHT_SHOULDER, Landmark.RIGHT_ELBOW),
    (Landmark.RIGHT_ELBOW, Landmark.RIGHT_WRIST),
    (Landmark.LEFT_SHOULDER, Landmark.LEFT_HIP),
    (Landmark.RIGHT_SHOULDER, Landmark.RIGHT_HIP),
    (Landmark.LEFT_HIP, Landmark.RIGHT_HIP),
    (Landmark.LEFT_HIP, Landmark.LEFT_KNEE),
    (Landmark.LEFT_KNEE, Landmark.LEFT_ANKLE),
    (Landmark.RIGHT_HIP, Landmark.RIGHT_KNEE),
    (Landmark.RIGHT_KNEE, Landmark.RIGHT_ANKLE),
])


def _pt(p: tuple[float, float]) -> tuple[int, int]:
    return (int(round(p[0])), int(round(p[1])))


def draw_skeleton(
    frame: np.ndarray,
    snapshot: Optional[PoseSnapshot],
    color: tuple[int, int, int] = (0, 255, 0),
    thickness: int = 2,
) -> None:
    pixels = snapshot_pixels(snapshot)
    if not pixels:
        return
    for (i, j) in _POSE_CONNECTIONS:
        if i in pixels and j in pixels:
            cv2.line(frame, _pt(pixels[i]), _pt(pixels[j]), color, thickness)
    for p in pixels.values():
        cv2.circle(frame, _pt(p), 3, color, -1)


def draw_tracked_joint(
    frame: np.ndarray,
    snapshot: Optional[PoseSnapshot],
    definition: ExerciseDefinition,
    color: tuple[int, int, int] = (0, 200, 255),
) -> None:
    """Highlight the three landmarks whose angle drives rep counting."""
    pixels = snapshot_pixels(snapshot)
    a, b, c = (pixels.get(lm) for lm in definition.landmarks)
    if a is None or b is None or c is None:
        return
    cv2.line(frame, _pt(a), _pt(b), color, 4)
    cv2.line(frame, _pt(b), _pt(c), color, 4)
    cv2.circle(frame, _pt(b), 8, color, -1)


def draw_realtime_overlay(
    frame: np.ndarray,
    snapshot: Optional[PoseSnapshot],
    definition: ExerciseDefinition,
    rep_count: int,
    angle_deg: Optional[float],
    phase: str,
    status: str,
    elapsed_seconds: int = 0,
    message: Optional[str] = None,
) -> None:
    """
    Draw realtime overlay on frame (in-place):
    - Skeleton and tracked joint if a pose is present
    - Exercise, Reps, Angle, Phase, Time, Status
    - Optional message (e.g. "Move into frame")
    """
    h, w = frame.shape[:2]
    if snapshot is not None:
        draw_skeleton(frame, snapshot)
        draw_tracked_joint(frame, snapshot, definition)

    panel_h = 180
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, panel_h), (40, 40, 40), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    font = cv2.FONT_HERSHEY_SIMPLEX
    scale = 0.6
    thick = 2
    y0, dy = 28, 28
    color = (255, 255, 255)

    def put(line: str, y: int) -> None:
        cv2.putText(frame, line, (12, y), font, scale, color, thick, cv2.LINE_AA)

    angle_s = f"{angle_deg:.1f} deg" if angle_deg is not None else "--"
    minutes, seconds = divmod(max(0, int(elapsed_seconds)), 60)
    put(f"Exercise: {definition.label}", y0)
    put(f"Reps: {rep_count}", y0 + dy)
    put(f"Angle: {angle_s}", y0 + 2 * dy)
    put(f"Phase: {phase}", y0 + 3 * dy)
    put(f"Time: {minutes:02d}:{seconds:02d}", y0 + 4 * dy)
    put(f"Status: {status}", y0 + 5 * dy)

    if message:
        cv2.putText(
            frame, message, (w // 2 - 120, h // 2),
            font, 0.8, (0, 200, 255), 2, cv2.LINE_AA
        )
