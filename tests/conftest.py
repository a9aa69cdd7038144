import math

import pytest

from repcount.exercises import PRESS, SQUAT
from repcount.pose import Landmark, LandmarkPoint, PoseSnapshot


class FakeClock:
    def __init__(self, t: float = 100.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def make_snapshot(definition, angle_deg: float, confidence: float = 0.9) -> PoseSnapshot:
    """Snapshot whose definition triple forms `angle_deg` at the vertex (unit-length limbs)."""
    rad = math.radians(angle_deg)
    return PoseSnapshot({
        definition.proximal: LandmarkPoint(1.0, 0.0, 0.0, confidence),
        definition.vertex: LandmarkPoint(0.0, 0.0, 0.0, confidence),
        definition.distal: LandmarkPoint(math.cos(rad), math.sin(rad), 0.0, confidence),
    })


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def press():
    return PRESS


@pytest.fixture
def squat():
    return SQUAT


@pytest.fixture
def right_angle_press_snapshot():
    return PoseSnapshot({
        Landmark.RIGHT_SHOULDER: LandmarkPoint(1.0, 0.0, 0.0, 0.9),
        Landmark.RIGHT_ELBOW: LandmarkPoint(0.0, 0.0, 0.0, 0.9),
        Landmark.RIGHT_WRIST: LandmarkPoint(0.0, 1.0, 0.0, 0.9),
    })
