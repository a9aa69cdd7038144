"""
Rep-counting session: owns one RepDetector per start/stop cycle, gates samples while
paused or stopped, tracks active time and stores a summary on stop.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .angles import extract_angle
from .exercises import ExerciseDefinition, ExerciseType, get_exercise
from .pose import PoseSnapshot
from .reps import CountListener, RepDetector, RepPhase
from .storage import RepSession, RepSessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameResult:
    angle: Optional[float]
    smoothed_angle: Optional[float]
    rep_count: int
    phase: RepPhase
    status: str

    def to_dict(self) -> dict[str, object]:
        return {
            "angle": self.angle,
            "smoothed_angle": self.smoothed_angle,
            "rep_count": self.rep_count,
            "phase": self.phase.value,
            "status": self.status,
        }


@dataclass(frozen=True)
class SessionState:
    is_running: bool
    is_paused: bool
    rep_count: int
    exercise: ExerciseDefinition
    elapsed_seconds: int


class RepCounterSession:
    """
    Coordinates a counting session for the selected exercise.

    Usage: set_exercise() -> start() -> process_snapshot() per frame (pause()/resume()
    as needed) -> stop(), which appends a RepSession to the repository and returns it.
    """

    def __init__(
        self,
        repository: RepSessionRepository,
        exercise: Union[ExerciseType, str] = ExerciseType.PRESS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.repository = repository
        self.exercise = get_exercise(exercise)
        self._clock = clock
        self._wall_clock = wall_clock
        self.detector: Optional[RepDetector] = None
        self._listeners: list[CountListener] = []
        self.is_running = False
        self.is_paused = False
        self._start_time = 0.0
        self._paused_accumulated = 0.0
        self._pause_started_at: Optional[float] = None
        self._stopped_at = 0.0

    def add_listener(self, listener: CountListener) -> None:
        self._listeners.append(listener)
        if self.detector is not None:
            self.detector.add_listener(listener)

    def set_exercise(self, exercise: Union[ExerciseType, str]) -> None:
        if self.is_running:
            logger.warning("session: cannot change exercise while counting")
            return
        self.exercise = get_exercise(exercise)
        logger.debug("session: exercise set to %s", self.exercise.name)

    @property
    def rep_count(self) -> int:
        return self.detector.count if self.detector is not None else 0

    @property
    def phase(self) -> RepPhase:
        return self.detector.phase if self.detector is not None else RepPhase.IDLE

    def _active_until(self) -> float:
        if self._pause_started_at is not None:
            return self._pause_started_at
        if not self.is_running:
            return self._stopped_at
        return self._clock()

    @property
    def elapsed_seconds(self) -> int:
        """Whole seconds of unpaused time in the current (or last) session."""
        if self.detector is None:
            return 0
        return max(0, int(self._active_until() - self._start_time - self._paused_accumulated))

    @property
    def state(self) -> SessionState:
        return SessionState(
            is_running=self.is_running,
            is_paused=self.is_paused,
            rep_count=self.rep_count,
            exercise=self.exercise,
            elapsed_seconds=self.elapsed_seconds,
        )

    def start(self) -> None:
        if self.is_running:
            logger.warning("session: already counting")
            return
        self.detector = RepDetector(self.exercise)
        for listener in self._listeners:
            self.detector.add_listener(listener)
        self._start_time = self._clock()
        self._paused_accumulated = 0.0
        self._pause_started_at = None
        self.is_running = True
        self.is_paused = False
        logger.info("session: started counting %s", self.exercise.label)

    def pause(self) -> None:
        if not self.is_running or self.is_paused:
            return
        self.is_paused = True
        self._pause_started_at = self._clock()
        logger.debug("session: paused")

    def resume(self) -> None:
        if not self.is_running or not self.is_paused:
            return
        self._paused_accumulated += self._clock() - self._pause_started_at
        self._pause_started_at = None
        self.is_paused = False
        logger.debug("session: resumed")

    def stop(self) -> Optional[RepSession]:
        """End the session and store its summary. Returns None if not running."""
        if not self.is_running:
            return None
        self._stopped_at = self._active_until()
        duration = self.elapsed_seconds
        session = RepSession(
            exercise_type=self.exercise.label,
            total_reps=self.rep_count,
            timestamp_ms=int(self._wall_clock() * 1000),
            duration_seconds=duration,
        )
        self.repository.add(session)
        self.is_running = False
        self.is_paused = False
        self._pause_started_at = None
        logger.info(
            "session: stopped, saved %s reps of %s in %ss",
            session.total_reps, session.exercise_type, session.duration_seconds,
        )
        return session

    def _inactive_result(self, angle: Optional[float]) -> Optional[FrameResult]:
        if not self.is_running:
            return FrameResult(angle, None, self.rep_count, self.phase, "Stopped")
        if self.is_paused:
            return FrameResult(angle, None, self.rep_count, self.phase, "Paused")
        return None

    def process_angle(self, angle: Optional[float], now: Optional[float] = None) -> FrameResult:
        inactive = self._inactive_result(angle)
        if inactive is not None:
            return inactive
        if angle is None:
            return FrameResult(None, None, self.rep_count, self.phase, "No pose")
        t = self._clock() if now is None else now
        smoothed = self.detector.on_angle_sample(angle, t)
        return FrameResult(angle, smoothed, self.rep_count, self.phase, "Tracking")

    def process_snapshot(
        self,
        snapshot: Optional[PoseSnapshot],
        now: Optional[float] = None,
    ) -> FrameResult:
        """Extract the exercise angle from one snapshot and feed it to the detector."""
        inactive = self._inactive_result(None)
        if inactive is not None:
            return inactive
        return self.process_angle(extract_angle(snapshot, self.exercise), now)
