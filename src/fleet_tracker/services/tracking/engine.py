"""Per-trip progression: one tick advances or holds progress and writes position."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from ...errors import TripNotActive, TripNotFound
from ...models.domain import GeoPoint, LiveLocation, Trip, TripStatus
from ...persistence.stores import LiveLocationStore, TripStore, VehicleStore
from ..outputs.formatter import format_elapsed
from .dwell import StopDwellTracker
from .speed import SpeedModel

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TickOutcome(str, Enum):
    CONTINUE = "continue"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    INACTIVE = "inactive"

    @property
    def finished(self) -> bool:
        return self is not TickOutcome.CONTINUE


def path_index(progress: float, path_length: int) -> int:
    if path_length <= 0:
        raise ValueError("path_length must be positive")
    index = math.floor(progress / 100.0 * (path_length - 1))
    return max(0, min(path_length - 1, index))


def position_on_path(path: Sequence[GeoPoint], progress: float) -> Optional[GeoPoint]:
    if not path:
        return None
    return path[path_index(progress, len(path))]


def progress_step(travel_minutes: float, tick_seconds: float) -> float:
    """Percentage points added per tick so that travel takes ``travel_minutes``."""
    total_ticks = max(1, math.ceil(travel_minutes * 60.0 / tick_seconds))
    return 100.0 / total_ticks


@dataclass(slots=True)
class TrackingSession:
    """Registry entry for one actively tracked trip."""

    trip_id: str
    vehicle_id: str
    display_name: str
    path: list[GeoPoint]
    distance_km: float
    travel_minutes: float
    estimated_minutes: float
    reference_speed: int
    step: float
    started_at: datetime
    dwell: StopDwellTracker
    current_speed: float = 0.0
    last_progress: float = 0.0

    def elapsed_minutes(self, now: datetime) -> float:
        return (now - self.started_at).total_seconds() / 60.0


class TripProgression:
    def __init__(
        self,
        session: TrackingSession,
        trips: TripStore,
        vehicles: VehicleStore,
        live_locations: LiveLocationStore,
        speed_model: SpeedModel,
        clock: Clock = utcnow,
    ) -> None:
        self.session = session
        self.trips = trips
        self.vehicles = vehicles
        self.live_locations = live_locations
        self.speed_model = speed_model
        self.clock = clock

    def _active_trip(self) -> Trip:
        trip = self.trips.get(self.session.trip_id)
        if trip is None:
            raise TripNotFound(self.session.trip_id)
        if trip.status is not TripStatus.IN_PROGRESS:
            raise TripNotActive(trip.id, trip.status.value)
        return trip

    def tick(self) -> TickOutcome:
        """Run one period of the trip; store errors propagate to the caller."""
        session = self.session
        try:
            trip = self._active_trip()
        except TripNotFound:
            logger.info(f"{session.display_name}: trip no longer exists, stopping tracking")
            return TickOutcome.INACTIVE
        except TripNotActive as e:
            if e.status == TripStatus.CANCELLED.value:
                logger.info(f"{session.display_name}: trip cancelled, clearing live location")
                self.live_locations.remove(session.vehicle_id)
                return TickOutcome.CANCELLED
            logger.info(f"{session.display_name}: trip not active ({e.status}), stopping tracking")
            return TickOutcome.INACTIVE

        now = self.clock()
        elapsed = session.elapsed_minutes(now)
        decision = session.dwell.evaluate(trip.progress, len(session.path), now)

        if decision.holding:
            progress = trip.progress
            speed = self.speed_model.tick_speed(session.reference_speed, holding=True)
        else:
            speed = self.speed_model.tick_speed(session.reference_speed)
            progress = min(100.0, trip.progress + session.step)

        position = position_on_path(session.path, progress) or trip.current_position
        updates: dict[str, Any] = {
            "progress": progress,
            "speed": round(speed),
        }
        if position is not None:
            updates["current_lat"] = position.lat
            updates["current_lng"] = position.lng

        completed = progress >= 100.0
        if completed:
            updates["status"] = TripStatus.COMPLETED.value
            updates["end_time"] = now.isoformat()
            # Vehicle stays parked at the destination.
            self.vehicles.set_active(session.vehicle_id, False)

        self.trips.update(session.trip_id, updates)
        if position is not None:
            self.live_locations.replace(
                LiveLocation(
                    vehicle_id=session.vehicle_id,
                    trip_id=session.trip_id,
                    lat=position.lat,
                    lng=position.lng,
                    progress=progress,
                    elapsed_minutes=elapsed,
                    captured_at=now,
                )
            )

        session.current_speed = speed
        session.last_progress = progress

        if decision.holding and decision.stop is not None:
            logger.info(
                f"{session.display_name}: waiting at stop {decision.stop.name or decision.stop.index} "
                f"({decision.elapsed_minutes:.1f}/{decision.stop.dwell_minutes:g} min)"
            )
        logger.info(f"{session.display_name}: {progress:.1f}% ({format_elapsed(elapsed)}) - {speed:.0f}km/h")

        if completed:
            logger.info(f"{session.display_name}: trip completed, vehicle parked at destination")
            return TickOutcome.COMPLETED
        return TickOutcome.CONTINUE
