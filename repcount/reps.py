"""
Rep detection from a stream of joint angles.
Median smoothing over the last few samples, then an IDLE/DOWN/UP hysteresis state
machine with a cooldown between counted reps.
"""
from __future__ import annotations

import enum
import logging
from typing import Callable, Optional

import numpy as np

from .exercises import ExerciseDefinition

logger = logging.getLogger(__name__)

# Median filter window for angle smoothing (odd number).
ANGLE_SMOOTH_WINDOW = 5
# Minimum time between counted reps (seconds).
REP_COOLDOWN_SEC = 0.5

CountListener = Callable[[int], None]


class RepPhase(str, enum.Enum):
    IDLE = "IDLE"
    DOWN = "DOWN"
    UP = "UP"


class SmoothingWindow:
    """Fixed-capacity FIFO of recent raw samples; median recomputed on every query."""

    def __init__(self, capacity: int = ANGLE_SMOOTH_WINDOW):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._values: list[float] = []

    def push(self, value: float) -> None:
        self._values.append(float(value))
        if len(self._values) > self.capacity:
            self._values.pop(0)

    def median(self) -> Optional[float]:
        """Median of current contents; upper middle element for even sizes."""
        if not self._values:
            return None
        ordered = np.sort(np.asarray(self._values, dtype=float))
        return float(ordered[len(ordered) // 2])

    def values(self) -> list[float]:
        return list(self._values)

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


class RepDetector:
    """
    Counts reps for one exercise definition.

    A rep is counted on the UP -> DOWN transition, i.e. after the limb has been
    flexed, fully extended, then flexed again. Thresholds are two-sided so one noisy
    crossing cannot flip the state back and forth, and the cooldown rejects a second
    count from residual jitter right after a counted rep.

    Feed samples in arrival order with monotonic timestamps (seconds). Frames without
    an angle are simply not passed in.
    """

    def __init__(
        self,
        definition: ExerciseDefinition,
        on_count_changed: Optional[CountListener] = None,
        window_size: int = ANGLE_SMOOTH_WINDOW,
        cooldown_sec: float = REP_COOLDOWN_SEC,
    ):
        if cooldown_sec < 0:
            raise ValueError(f"cooldown_sec must be >= 0, got {cooldown_sec}")
        self.definition = definition
        self.cooldown_sec = cooldown_sec
        self.window = SmoothingWindow(window_size)
        self._listeners: list[CountListener] = []
        if on_count_changed is not None:
            self._listeners.append(on_count_changed)
        self._phase = RepPhase.IDLE
        self._count = 0
        self.last_rep_timestamp: Optional[float] = None

    @property
    def phase(self) -> RepPhase:
        return self._phase

    @property
    def count(self) -> int:
        return self._count

    def get_count(self) -> int:
        return self._count

    def add_listener(self, listener: CountListener) -> None:
        self._listeners.append(listener)

    def reset(self) -> None:
        self._count = 0
        self._phase = RepPhase.IDLE
        self.window.clear()
        self.last_rep_timestamp = None
        logger.debug("rep_detector: reset (%s)", self.definition.name)

    def _cooldown_elapsed(self, now: float) -> bool:
        if self.last_rep_timestamp is None:
            return True
        return (now - self.last_rep_timestamp) >= self.cooldown_sec

    def on_angle_sample(self, angle: float, now: float) -> float:
        """
        Push one raw angle (deg) observed at `now` (monotonic seconds).
        Returns the smoothed angle the state machine evaluated.
        """
        self.window.push(angle)
        smoothed = self.window.median()
        extended = self.definition.extended_deg
        flexed = self.definition.flexed_deg

        if self._phase is RepPhase.IDLE:
            if smoothed < flexed:
                self._phase = RepPhase.DOWN
                logger.debug("rep_detector: IDLE -> DOWN (angle=%.1f)", smoothed)
        elif self._phase is RepPhase.DOWN:
            if smoothed > extended:
                self._phase = RepPhase.UP
                logger.debug("rep_detector: DOWN -> UP (angle=%.1f)", smoothed)
        elif self._phase is RepPhase.UP:
            if smoothed < flexed:
                if self._cooldown_elapsed(now):
                    self._count += 1
                    self.last_rep_timestamp = now
                    self._phase = RepPhase.DOWN
                    logger.info(
                        "rep_detector: rep %s (%s, angle=%.1f)",
                        self._count, self.definition.name, smoothed,
                    )
                    for listener in list(self._listeners):
                        listener(self._count)
                else:
                    logger.debug("rep_detector: bounce within cooldown (angle=%.1f)", smoothed)
        return smoothed
