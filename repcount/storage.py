"""
In-memory history repositories: rep-counting sessions, runs and strength workouts.
Each repository owns its list; pass the instance to whatever needs to append or query.
"""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Optional

METERS_PER_MILE = 1609.344


@dataclass(frozen=True)
class RepSession:
    """Summary of one finished rep-counting session."""

    exercise_type: str
    total_reps: int
    timestamp_ms: int
    duration_seconds: int


@dataclass(frozen=True)
class RunEntry:
    timestamp_ms: int
    distance_meters: float
    elapsed_millis: int

    @property
    def miles(self) -> float:
        return self.distance_meters / METERS_PER_MILE

    @property
    def avg_pace_sec_per_mile(self) -> Optional[int]:
        if self.miles <= 0.0:
            return None
        # Stored history truncates; the live pace in running.pace_sec_per_mile rounds.
        return max(0, int((self.elapsed_millis / 1000.0) / self.miles))


@dataclass(frozen=True)
class StrengthExercise:
    name: str
    sets: int
    reps: int
    rest_sec: int
    weight_lbs: int = 0


@dataclass(frozen=True)
class StrengthWorkout:
    title: str
    timestamp_ms: int
    exercises: tuple[StrengthExercise, ...] = field(default_factory=tuple)


class RepSessionRepository:
    def __init__(self) -> None:
        self._sessions: list[RepSession] = []

    def add(self, session: RepSession) -> None:
        self._sessions.append(session)

    def all(self) -> list[RepSession]:
        return list(self._sessions)

    def by_type(self, exercise_type: str) -> list[RepSession]:
        return [s for s in self._sessions if s.exercise_type == exercise_type]

    def recent(self, exercise_type: str, count: int) -> list[RepSession]:
        """Most recent `count` sessions of one exercise type, newest first."""
        if count <= 0:
            return []
        matching = sorted(self.by_type(exercise_type), key=lambda s: s.timestamp_ms, reverse=True)
        return matching[:count]

    def save_json(self, path: str) -> None:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w") as f:
            json.dump({"sessions": [asdict(s) for s in self._sessions]}, f, indent=2)

    @classmethod
    def load_json(cls, path: str) -> "RepSessionRepository":
        repo = cls()
        if not os.path.isfile(path):
            return repo
        with open(path) as f:
            data = json.load(f)
        for item in data.get("sessions", []):
            repo.add(RepSession(**item))
        return repo

    def __len__(self) -> int:
        return len(self._sessions)


class RunHistoryRepository:
    def __init__(self) -> None:
        self._runs: list[RunEntry] = []

    def add(self, entry: RunEntry) -> None:
        self._runs.append(entry)

    def all(self) -> list[RunEntry]:
        return list(self._runs)

    def __len__(self) -> int:
        return len(self._runs)


class StrengthWorkoutRepository:
    def __init__(self) -> None:
        self._workouts: list[StrengthWorkout] = []

    def add(self, workout: StrengthWorkout) -> None:
        self._workouts.append(workout)

    def all(self) -> list[StrengthWorkout]:
        return list(self._workouts)

    def __len__(self) -> int:
        return len(self._workouts)
