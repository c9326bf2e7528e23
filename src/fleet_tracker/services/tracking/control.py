"""Trip start and cancel operations invoked by the HTTP layer."""

from __future__ import annotations

import logging

from ...errors import TripNotFound
from ...models.domain import Trip, TripStatus
from .engine import TrackingSession
from .supervisor import TrackingSupervisor

logger = logging.getLogger(__name__)


def _load_trip(supervisor: TrackingSupervisor, trip_id: str) -> Trip:
    trip = supervisor.trips.get(trip_id)
    if trip is None:
        raise TripNotFound(trip_id)
    return trip


def start_trip(supervisor: TrackingSupervisor, trip_id: str) -> TrackingSession:
    """Begin tracking a trip and mark it IN_PROGRESS with its vehicle active.

    Tracking is prepared first so a trip without any usable route data is
    rejected before its status changes.
    """
    trip = _load_trip(supervisor, trip_id)
    started_at = supervisor.clock().isoformat()
    trip.status = TripStatus.IN_PROGRESS
    trip.start_time = started_at

    session = supervisor.start_tracking(trip)
    try:
        supervisor.trips.update(trip_id, {"status": TripStatus.IN_PROGRESS.value, "start_time": started_at})
        supervisor.vehicles.set_active(trip.vehicle_id, True)
    except Exception:
        supervisor.stop_tracking(trip_id)
        raise
    logger.info(f"Trip {trip_id[:8]} started")
    return session


def cancel_trip(supervisor: TrackingSupervisor, trip_id: str) -> Trip:
    """Stop tracking, mark the trip CANCELLED and send the vehicle back to the garage."""
    trip = _load_trip(supervisor, trip_id)
    supervisor.stop_tracking(trip_id)

    ended_at = supervisor.clock().isoformat()
    supervisor.trips.update(trip_id, {"status": TripStatus.CANCELLED.value, "end_time": ended_at})
    supervisor.vehicles.set_active(trip.vehicle_id, False)
    supervisor.live_locations.remove(trip.vehicle_id)

    trip.status = TripStatus.CANCELLED
    trip.end_time = ended_at
    logger.info(f"Trip {trip_id[:8]} cancelled, vehicle returned to garage")
    return trip
