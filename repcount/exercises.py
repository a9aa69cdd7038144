"""
Exercise definitions: which joint angle to track and the two thresholds
bounding the extended ("up") and flexed ("down") positions.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

from .pose import Landmark

# Press (push-up) elbow angle thresholds (deg).
PRESS_EXTENDED_DEG = 140.0
PRESS_FLEXED_DEG = 90.0
# Squat knee angle thresholds (deg).
SQUAT_EXTENDED_DEG = 160.0
SQUAT_FLEXED_DEG = 100.0


class ExerciseType(str, enum.Enum):
    PRESS = "press"
    SQUAT = "squat"


@dataclass(frozen=True)
class ExerciseDefinition:
    name: str
    label: str
    proximal: Landmark
    vertex: Landmark
    distal: Landmark
    extended_deg: float
    flexed_deg: float

    def __post_init__(self) -> None:
        if not self.flexed_deg < self.extended_deg:
            raise ValueError(
                f"{self.name}: flexed threshold ({self.flexed_deg}) must be below "
                f"extended threshold ({self.extended_deg})"
            )

    @property
    def landmarks(self) -> tuple[Landmark, Landmark, Landmark]:
        return (self.proximal, self.vertex, self.distal)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "label": self.label,
            "landmarks": [lm.name.lower() for lm in self.landmarks],
            "extended_deg": self.extended_deg,
            "flexed_deg": self.flexed_deg,
        }


PRESS = ExerciseDefinition(
    name=ExerciseType.PRESS.value,
    label="Push-ups",
    proximal=Landmark.RIGHT_SHOULDER,
    vertex=Landmark.RIGHT_ELBOW,
    distal=Landmark.RIGHT_WRIST,
    extended_deg=PRESS_EXTENDED_DEG,
    flexed_deg=PRESS_FLEXED_DEG,
)

SQUAT = ExerciseDefinition(
    name=ExerciseType.SQUAT.value,
    label="Squats",
    proximal=Landmark.RIGHT_HIP,
    vertex=Landmark.RIGHT_KNEE,
    distal=Landmark.RIGHT_ANKLE,
    extended_deg=SQUAT_EXTENDED_DEG,
    flexed_deg=SQUAT_FLEXED_DEG,
)

EXERCISES: dict[ExerciseType, ExerciseDefinition] = {
    ExerciseType.PRESS: PRESS,
    ExerciseType.SQUAT: SQUAT,
}

_ALIASES = {
    "press": ExerciseType.PRESS,
    "push_up": ExerciseType.PRESS,
    "push-up": ExerciseType.PRESS,
    "pushup": ExerciseType.PRESS,
    "push-ups": ExerciseType.PRESS,
    "squat": ExerciseType.SQUAT,
    "squats": ExerciseType.SQUAT,
}


def get_exercise(exercise: Union[ExerciseType, str]) -> ExerciseDefinition:
    """Resolve an ExerciseType or a (case-insensitive) name to its definition."""
    if isinstance(exercise, ExerciseType):
        return EXERCISES[exercise]
    key = exercise.strip().lower()
    if key not in _ALIASES:
        choices = ", ".join(t.value for t in ExerciseType)
        raise ValueError(f"Unknown exercise {exercise!r}; choose one of: {choices}")
    return EXERCISES[_ALIASES[key]]
