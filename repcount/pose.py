"""
Pose snapshots and the MediaPipe Pose adapter.
Returns one PoseSnapshot per frame: 3D landmark positions plus per-landmark confidence.
"""
from __future__ import annotations

import enum
import os
import urllib.request
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

import cv2
import numpy as np


class Landmark(enum.IntEnum):
    """Tracked landmarks. Values are MediaPipe Pose landmark indices."""

    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


@dataclass(frozen=True)
class LandmarkPoint:
    x: float
    y: float
    z: float
    confidence: float

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class PoseSnapshot:
    """Immutable per-frame capture of landmark positions and confidences."""

    landmarks: Mapping[Landmark, LandmarkPoint] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "landmarks", MappingProxyType(dict(self.landmarks)))

    def get(self, landmark: Landmark) -> Optional[LandmarkPoint]:
        return self.landmarks.get(landmark)

    def scaled(self, factor: float) -> "PoseSnapshot":
        """Uniformly scaled copy (joint angles are unchanged)."""
        return PoseSnapshot({
            lm_id: LandmarkPoint(p.x * factor, p.y * factor, p.z * factor, p.confidence)
            for lm_id, p in self.landmarks.items()
        })

    def __contains__(self, landmark: object) -> bool:
        return landmark in self.landmarks

    def __len__(self) -> int:
        return len(self.landmarks)


# Pose Landmarker model URL (lite = faster, CPU-friendly)
_POSE_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
_POSE_MODEL_FILENAME = "pose_landmarker_lite.task"


def _get_model_path(cache_dir: Optional[str] = None) -> str:
    """Return path to pose landmarker model, downloading if needed."""
    if cache_dir is None:
        cache_dir = os.path.join(os.path.dirname(__file__), "..", "outputs")
    os.makedirs(cache_dir, exist_ok=True)
    path = os.path.join(cache_dir, _POSE_MODEL_FILENAME)
    if not os.path.isfile(path):
        urllib.request.urlretrieve(_POSE_MODEL_URL, path)
    return path


def create_pose_detector(
    min_detection_confidence: float = 0.5,
    min_tracking_confidence: float = 0.5,
    cache_dir: Optional[str] = None,
):
    """Create a single-person MediaPipe PoseLandmarker (tasks API, IMAGE mode)."""
    from mediapipe.tasks.python.core import base_options
    from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions
    from mediapipe.tasks.python.vision.core import vision_task_running_mode

    model_path = _get_model_path(cache_dir)
    base = base_options.BaseOptions(model_asset_path=model_path)
    options = PoseLandmarkerOptions(
        base_options=base,
        running_mode=vision_task_running_mode.VisionTaskRunningMode.IMAGE,
        num_poses=1,
        min_pose_detection_confidence=min_detection_confidence,
        min_pose_presence_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return PoseLandmarker.create_from_options(options)


def snapshot_from_landmarks(landmarks, width: int, height: int) -> PoseSnapshot:
    """
    Build a PoseSnapshot from a MediaPipe landmark list.
    x/y are scaled to pixels; z uses the x scale so the three axes stay comparable.
    Confidence is the landmark visibility score.
    """
    points: dict[Landmark, LandmarkPoint] = {}
    for lm_id in Landmark:
        if lm_id >= len(landmarks):
            continue
        lm = landmarks[lm_id]
        visibility = getattr(lm, "visibility", None)
        points[lm_id] = LandmarkPoint(
            x=float(lm.x) * width,
            y=float(lm.y) * height,
            z=float(lm.z) * width,
            confidence=float(visibility) if visibility is not None else 0.0,
        )
    return PoseSnapshot(points)


def process_frame(frame_bgr: np.ndarray, pose) -> Optional[PoseSnapshot]:
    """
    Run pose estimation on one BGR frame.
    Returns a PoseSnapshot, or None if no pose was detected.
    """
    from mediapipe.tasks.python.vision.core import image as mp_image

    h, w = frame_bgr.shape[:2]
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    mp_img = mp_image.Image(image_format=mp_image.ImageFormat.SRGB, data=rgb)
    result = pose.detect(mp_img)
    if not result.pose_landmarks:
        return None
    return snapshot_from_landmarks(result.pose_landmarks[0], w, h)


def snapshot_pixels(snapshot: Optional[PoseSnapshot]) -> dict[Landmark, tuple[float, float]]:
    """2D pixel coordinates of every landmark in the snapshot (for drawing)."""
    if snapshot is None:
        return {}
    return {lm_id: (p.x, p.y) for lm_id, p in snapshot.landmarks.items()}
