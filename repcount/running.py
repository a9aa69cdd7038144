"""
Run tracking: accumulates distance from consecutive location fixes and derives pace.
"""
from __future__ import annotations

import logging
import math
import time
from typing import Callable, Optional

from .storage import METERS_PER_MILE, RunEntry, RunHistoryRepository

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371008.8
# Steps at or below this distance (m) are treated as GPS jitter.
MIN_STEP_METERS = 1.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS84 points in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lon2 - lon1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def pace_sec_per_mile(elapsed_millis: float, distance_meters: float) -> Optional[int]:
    miles = distance_meters / METERS_PER_MILE
    if miles <= 0.0:
        return None
    return max(0, int(round((elapsed_millis / 1000.0) / miles)))


class RunTracker:
    """Distance/pace accumulator for one run. Paused time and paused fixes are excluded."""

    def __init__(
        self,
        repository: Optional[RunHistoryRepository] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.repository = repository
        self._clock = clock
        self._wall_clock = wall_clock
        self.is_running = False
        self.is_paused = False
        self.distance_meters = 0.0
        self._last_fix: Optional[tuple[float, float]] = None
        self._start_time = 0.0
        self._paused_accumulated = 0.0
        self._pause_started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    def start(self) -> None:
        if self.is_running:
            return
        self._start_time = self._clock()
        self._paused_accumulated = 0.0
        self._pause_started_at = None
        self._stopped_at = None
        self._last_fix = None
        self.distance_meters = 0.0
        self.is_running = True
        self.is_paused = False
        logger.info("run: started")

    def pause(self) -> None:
        if not self.is_running or self.is_paused:
            return
        self.is_paused = True
        self._pause_started_at = self._clock()

    def resume(self) -> None:
        if not self.is_running or not self.is_paused:
            return
        self._paused_accumulated += self._clock() - self._pause_started_at
        self._pause_started_at = None
        self.is_paused = False
        # Location updates stop while paused; the next fix re-anchors the track.
        self._last_fix = None

    @property
    def elapsed_millis(self) -> int:
        if self._stopped_at is not None:
            now = self._stopped_at
        elif self._pause_started_at is not None:
            now = self._pause_started_at
        elif self.is_running:
            now = self._clock()
        else:
            return 0
        return max(0, int((now - self._start_time - self._paused_accumulated) * 1000))

    @property
    def pace_sec_per_mile(self) -> Optional[int]:
        return pace_sec_per_mile(self.elapsed_millis, self.distance_meters)

    def on_location(self, lat: float, lon: float) -> float:
        """Add one location fix. Returns the distance (m) added, 0.0 if ignored."""
        if not self.is_running or self.is_paused:
            return 0.0
        prev = self._last_fix
        self._last_fix = (lat, lon)
        if prev is None:
            return 0.0
        step = haversine_meters(prev[0], prev[1], lat, lon)
        if step <= MIN_STEP_METERS:
            return 0.0
        self.distance_meters += step
        return step

    def stop(self) -> Optional[RunEntry]:
        if not self.is_running:
            return None
        self._stopped_at = self._pause_started_at if self._pause_started_at is not None else self._clock()
        entry = RunEntry(
            timestamp_ms=int(self._wall_clock() * 1000),
            distance_meters=self.distance_meters,
            elapsed_millis=self.elapsed_millis,
        )
        self.is_running = False
        self.is_paused = False
        if self.repository is not None:
            self.repository.add(entry)
        logger.info("run: stopped, %.1f m in %s ms", entry.distance_meters, entry.elapsed_millis)
        return entry
