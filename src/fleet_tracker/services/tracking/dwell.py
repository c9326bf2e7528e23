"""Per-trip stop dwell state machine.

A trip is either not at a stop or occupying exactly one scheduled stop. Stop
positions along the path are estimated from each stop's rank among all
segments rather than from geometry, so unevenly spaced segments can place an
arrival window away from the real stop. The first unvisited stop (ascending
order) whose window contains the current progress is the one that is entered.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ...models.domain import Segment


@dataclass(slots=True, frozen=True)
class ScheduledStop:
    index: int
    rank: int
    segment: Segment

    @property
    def dwell_minutes(self) -> float:
        return self.segment.stop_duration_min

    @property
    def name(self) -> Optional[str]:
        return self.segment.location.name if self.segment.location else None


@dataclass(slots=True, frozen=True)
class DwellDecision:
    holding: bool
    stop: Optional[ScheduledStop] = None
    elapsed_minutes: float = 0.0


class StopDwellTracker:
    def __init__(self, segments: Sequence[Segment], window_percent: float = 2.0, tick_seconds: float = 20.0) -> None:
        ordered = sorted(segments, key=lambda segment: segment.order)
        self.segment_count = len(ordered)
        self.window_percent = window_percent
        self.tick_seconds = tick_seconds
        stops = [(rank, segment) for rank, segment in enumerate(ordered) if segment.is_stop]
        self.stops = [ScheduledStop(index=i, rank=rank, segment=segment) for i, (rank, segment) in enumerate(stops)]
        self.current: Optional[ScheduledStop] = None
        self.arrived_at: Optional[datetime] = None
        self._visited: set[int] = set()

    @property
    def total_dwell_minutes(self) -> float:
        return sum(stop.dwell_minutes for stop in self.stops)

    @property
    def at_stop(self) -> bool:
        return self.current is not None

    def stop_progress(self, stop: ScheduledStop, path_length: int) -> float:
        """Approximate completion fraction (0-100) at which ``stop`` is reached."""
        if self.segment_count < 2 or path_length < 2:
            return 0.0
        path_index = math.floor(stop.rank / (self.segment_count - 1) * (path_length - 1))
        return path_index / (path_length - 1) * 100.0

    def candidate(self, progress: float, path_length: int) -> Optional[ScheduledStop]:
        for stop in self.stops:
            if stop.index in self._visited:
                continue
            if abs(self.stop_progress(stop, path_length) - progress) <= self.window_percent:
                return stop
        return None

    def evaluate(self, progress: float, path_length: int, now: datetime) -> DwellDecision:
        """Advance the machine for one tick and report whether progress must hold."""
        if self.current is not None:
            elapsed = (now - self.arrived_at).total_seconds() / 60.0
            if elapsed < self.current.dwell_minutes:
                return DwellDecision(holding=True, stop=self.current, elapsed_minutes=elapsed)
            departed = self.current
            self._depart()
            return DwellDecision(holding=False, stop=departed, elapsed_minutes=elapsed)

        stop = self.candidate(progress, path_length)
        if stop is None:
            return DwellDecision(holding=False)

        self._visited.add(stop.index)
        # Dwells no longer than one tick are served on the arrival tick itself.
        if stop.dwell_minutes * 60.0 <= self.tick_seconds:
            return DwellDecision(holding=False, stop=stop)

        self.current = stop
        self.arrived_at = now
        return DwellDecision(holding=True, stop=stop)

    def _depart(self) -> None:
        self.current = None
        self.arrived_at = None
