from types import SimpleNamespace

import numpy as np
import pytest

from repcount.angles import extract_angle
from repcount.exercises import PRESS
from repcount.overlay import draw_realtime_overlay
from repcount.pose import Landmark, LandmarkPoint, PoseSnapshot, snapshot_from_landmarks, snapshot_pixels

from conftest import make_snapshot


def _mp_landmarks(n=33, visibility=0.9):
    return [
        SimpleNamespace(x=i / 100.0, y=i / 50.0, z=-i / 200.0, visibility=visibility)
        for i in range(n)
    ]


def test_snapshot_from_landmarks_scales_to_pixels():
    snapshot = snapshot_from_landmarks(_mp_landmarks(), width=640, height=480)
    assert len(snapshot) == len(Landmark)
    elbow = snapshot.get(Landmark.RIGHT_ELBOW)
    assert elbow.x == pytest.approx(0.14 * 640)
    assert elbow.y == pytest.approx(0.28 * 480)
    assert elbow.z == pytest.approx(-0.07 * 640)
    assert elbow.confidence == pytest.approx(0.9)


def test_short_landmark_list_skips_missing():
    snapshot = snapshot_from_landmarks(_mp_landmarks(n=17), width=100, height=100)
    assert Landmark.RIGHT_WRIST in snapshot
    assert Landmark.LEFT_HIP not in snapshot


def test_missing_visibility_means_zero_confidence():
    lms = [SimpleNamespace(x=0.1, y=0.1, z=0.0) for _ in range(33)]
    snapshot = snapshot_from_landmarks(lms, 10, 10)
    assert snapshot.get(Landmark.LEFT_KNEE).confidence == 0.0


def test_snapshot_is_read_only():
    points = {Landmark.LEFT_HIP: LandmarkPoint(1.0, 2.0, 3.0, 0.8)}
    snapshot = PoseSnapshot(points)
    points.clear()
    assert snapshot.get(Landmark.LEFT_HIP).position == (1.0, 2.0, 3.0)
    with pytest.raises(TypeError):
        snapshot.landmarks[Landmark.LEFT_KNEE] = LandmarkPoint(0, 0, 0, 1)


def test_scaled_snapshot_keeps_angle():
    snapshot = make_snapshot(PRESS, 110.0)
    scaled = snapshot.scaled(3.5)
    assert extract_angle(scaled, PRESS) == pytest.approx(110.0)
    assert scaled.get(PRESS.proximal).x == pytest.approx(3.5)


def test_snapshot_pixels():
    snapshot = make_snapshot(PRESS, 90.0)
    assert snapshot_pixels(snapshot)[PRESS.vertex] == (0.0, 0.0)
    assert snapshot_pixels(None) == {}


def test_overlay_draws_in_place():
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    snapshot = make_snapshot(PRESS, 90.0).scaled(100.0)
    draw_realtime_overlay(frame, snapshot, PRESS, 3, 92.5, "DOWN", "Tracking", elapsed_seconds=75)
    assert frame.any()
