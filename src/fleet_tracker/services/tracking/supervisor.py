"""Registry of tracked trips and their periodic tasks."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...config import settings
from ...errors import DegenerateSegment, EmptySegmentList, InvalidCoordinate, PersistenceWriteFailure
from ...models.domain import GeoPoint, LiveLocation, Trip, TripStatus
from ...persistence.stores import LiveLocationStore, TripStore, VehicleStore
from ..geospatial import path_length_km
from ..routing.osrm_client import OSRMClient
from ..routing.synthesizer import RouteProvider, routed_dwell_minutes, synthesize_route
from .dwell import StopDwellTracker
from .engine import Clock, TickOutcome, TrackingSession, TripProgression, progress_step, utcnow
from .feed import RealtimeTripFeed, TripChangeEvent, TripChangeKind
from .scheduler import PeriodicTask
from .speed import SpeedModel

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ActiveTripSummary:
    trip_id: str
    vehicle_id: str
    display_name: str
    speed: int
    current_speed: float
    progress: float
    distance_km: float
    estimated_minutes: float
    started_at: datetime
    elapsed_minutes: float
    current_stop: Optional[str]
    total_dwell_minutes: float


class TrackingSupervisor:
    """
    Owns every tracking session and guarantees at most one live task per trip.

    Registry mutations happen under a single lock. Change-feed events are
    queued and handled one at a time by a dispatcher thread.
    """

    def __init__(
        self,
        trips: TripStore,
        vehicles: VehicleStore,
        live_locations: LiveLocationStore,
        route_provider: RouteProvider | None = None,
        speed_model: SpeedModel | None = None,
        feed: RealtimeTripFeed | None = None,
        clock: Clock = utcnow,
        tick_seconds: float | None = None,
        stop_window_percent: float | None = None,
        join_timeout: float = 5.0,
    ) -> None:
        self.trips = trips
        self.vehicles = vehicles
        self.live_locations = live_locations
        self.route_provider = route_provider
        self.speed_model = speed_model or SpeedModel()
        self.feed = feed
        self.clock = clock
        self.tick_seconds = tick_seconds if tick_seconds is not None else settings.tick_interval_seconds
        self.stop_window_percent = (
            stop_window_percent if stop_window_percent is not None else settings.stop_window_percent
        )
        self.join_timeout = join_timeout

        self._lock = threading.RLock()
        self._sessions: dict[str, TrackingSession] = {}
        self._tasks: dict[str, PeriodicTask] = {}
        self._events: "queue.Queue[TripChangeEvent | None]" = queue.Queue()
        self._dispatcher: Optional[threading.Thread] = None

    # Registry -----------------------------------------------------------

    def is_tracking(self, trip_id: str) -> bool:
        with self._lock:
            return trip_id in self._tasks

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def session(self, trip_id: str) -> Optional[TrackingSession]:
        with self._lock:
            return self._sessions.get(trip_id)

    def task(self, trip_id: str) -> Optional[PeriodicTask]:
        with self._lock:
            return self._tasks.get(trip_id)

    def start_tracking(self, trip: Trip) -> TrackingSession:
        """Prepare a session for ``trip`` and schedule its periodic task.

        An existing task for the same trip is cancelled and replaced. Raises
        EmptySegmentList when the trip has nothing to build a route from.
        """
        session = self._prepare_session(trip)
        engine = TripProgression(
            session,
            trips=self.trips,
            vehicles=self.vehicles,
            live_locations=self.live_locations,
            speed_model=self.speed_model,
            clock=self.clock,
        )
        task = PeriodicTask(trip.id, engine.tick, self.tick_seconds, on_finished=self._task_finished)

        with self._lock:
            previous = self._tasks.pop(trip.id, None)
            self._sessions[trip.id] = session
            self._tasks[trip.id] = task
            if previous is not None:
                previous.cancel()
            task.start()

        if previous is not None:
            logger.info(f"Superseded existing tracking for {session.display_name}")
            previous.join(self.join_timeout)

        logger.info(
            f"{session.display_name}: Distance: {session.distance_km:.1f}km, Speed: {session.reference_speed}km/h "
            f"({self.speed_model.classify(session.distance_km, trip.segments).value}), "
            f"Estimated time: {session.estimated_minutes:.0f} minutes, Route points: {len(session.path)}"
        )
        return session

    def stop_tracking(self, trip_id: str) -> bool:
        with self._lock:
            task = self._tasks.pop(trip_id, None)
            self._sessions.pop(trip_id, None)
            if task is not None:
                task.cancel()
        if task is None:
            return False
        task.join(self.join_timeout)
        logger.info(f"Stopped tracking trip: {trip_id[:8]}")
        return True

    def _task_finished(self, task: PeriodicTask, outcome: TickOutcome) -> None:
        with self._lock:
            if self._tasks.get(task.name) is task:
                del self._tasks[task.name]
                self._sessions.pop(task.name, None)
        logger.info(f"Tracking for trip {task.name[:8]} ended ({outcome.value})")

    # Session preparation ------------------------------------------------

    def _display_name(self, trip: Trip) -> str:
        try:
            vehicle = self.vehicles.get(trip.vehicle_id) if trip.vehicle_id else None
        except Exception as e:
            logger.warning(f"Could not read vehicle {trip.vehicle_id}: {e}")
            vehicle = None
        return (vehicle.nickname if vehicle and vehicle.nickname else None) or trip.id[:8]

    def _provider(self) -> RouteProvider:
        if self.route_provider is None:
            self.route_provider = OSRMClient()
        return self.route_provider

    def resolve_route(self, trip: Trip) -> tuple[list[GeoPoint], float, float, float]:
        """Return (path, distance_km, duration_min, dwell_min), reusing a persisted route when present.

        ``dwell_min`` is the stop time already counted in ``duration_min``.
        """
        if trip.route:
            logger.info(f"Using stored route with {len(trip.route)} points for trip {trip.id[:8]}")
            distance = trip.distance_km or path_length_km(trip.route)
            return list(trip.route), distance, trip.estimated_duration_min, routed_dwell_minutes(trip.segments)

        if trip.segments:
            logger.info(f"No route stored for trip {trip.id[:8]}, calculating from segments")
            try:
                synthesized = synthesize_route(trip.segments, self._provider())
            except (InvalidCoordinate, DegenerateSegment) as e:
                logger.error(f"Route calculation failed for trip {trip.id[:8]}: {e}")
            else:
                try:
                    self.trips.update(
                        trip.id,
                        {
                            "route": synthesized.route_records(),
                            "distance": synthesized.distance_km,
                            "estimated_duration": synthesized.duration_min,
                        },
                    )
                except PersistenceWriteFailure as e:
                    logger.warning(f"Route for trip {trip.id[:8]} not saved: {e}")
                return (
                    synthesized.coordinates,
                    synthesized.distance_km,
                    synthesized.duration_min,
                    synthesized.dwell_minutes,
                )

        if trip.departure is not None and trip.destination is not None:
            logger.warning(f"Routing trip {trip.id[:8]} from departure to destination")
            routed = self._provider().route(trip.departure, trip.destination)
            return routed.coordinates, routed.distance_km, float(round(routed.duration_min)), 0.0

        raise EmptySegmentList(f"Trip {trip.id} has no usable route, segments or endpoints")

    def _prepare_session(self, trip: Trip) -> TrackingSession:
        path, distance_km, duration_min, routed_dwell = self.resolve_route(trip)
        dwell = StopDwellTracker(trip.segments, window_percent=self.stop_window_percent, tick_seconds=self.tick_seconds)
        reference_speed = self.speed_model.reference_speed(distance_km, trip.segments)

        # Stop time is wall-clock time on top of the travel budget.
        travel_minutes = duration_min - routed_dwell if duration_min else 0.0
        if travel_minutes <= 0:
            travel_minutes = distance_km / reference_speed * 60.0

        return TrackingSession(
            trip_id=trip.id,
            vehicle_id=trip.vehicle_id,
            display_name=self._display_name(trip),
            path=path,
            distance_km=distance_km,
            travel_minutes=travel_minutes,
            estimated_minutes=travel_minutes + dwell.total_dwell_minutes,
            reference_speed=reference_speed,
            step=progress_step(travel_minutes, self.tick_seconds),
            started_at=self.clock(),
            dwell=dwell,
            current_speed=float(reference_speed),
            last_progress=trip.progress,
        )

    # Startup, change feed and shutdown ------------------------------------

    def preposition(self, trip: Trip) -> None:
        """Place the vehicle of a pending trip at its departure point."""
        if trip.departure is None or not trip.vehicle_id:
            return
        try:
            self.live_locations.replace(
                LiveLocation(
                    vehicle_id=trip.vehicle_id,
                    trip_id=trip.id,
                    lat=trip.departure.lat,
                    lng=trip.departure.lng,
                    progress=0.0,
                    elapsed_minutes=0.0,
                    captured_at=self.clock(),
                )
            )
            logger.info(f"Vehicle positioned at departure: {trip.departure.label}")
        except PersistenceWriteFailure as e:
            logger.error(f"Error positioning vehicle for trip {trip.id[:8]}: {e}")

    def start(self) -> None:
        """Resume in-progress trips, position pending vehicles and subscribe to changes."""
        try:
            in_progress = self.trips.list_by_status(TripStatus.IN_PROGRESS)
        except Exception:
            logger.exception("Error loading in-progress trips")
            in_progress = []
        logger.info(f"Found {len(in_progress)} in-progress trips")
        for trip in in_progress:
            try:
                self.start_tracking(trip)
            except Exception:
                logger.exception(f"Could not resume tracking for trip {trip.id[:8]}")

        try:
            pending = self.trips.list_by_status(TripStatus.PENDING)
        except Exception:
            logger.exception("Error loading pending trips")
            pending = []
        if pending:
            logger.info(f"Positioning {len(pending)} vehicles at departure locations")
        for trip in pending:
            self.preposition(trip)

        self._dispatcher = threading.Thread(target=self._dispatch, name="trip-changes", daemon=True)
        self._dispatcher.start()
        if self.feed is not None:
            self.feed.subscribe(self.publish)

    def publish(self, event: TripChangeEvent) -> None:
        self._events.put(event)

    def _dispatch(self) -> None:
        while True:
            event = self._events.get()
            if event is None:
                return
            try:
                self.handle_change(event)
            except Exception:
                logger.exception(f"Error handling {event.kind.value} for trip {event.trip.id[:8]}")

    def handle_change(self, event: TripChangeEvent) -> None:
        trip = event.trip
        if event.kind is TripChangeKind.UPDATE:
            if trip.status is TripStatus.IN_PROGRESS and not self.is_tracking(trip.id):
                # Progress writes echo back as updates; skip those the trip has since outlived.
                current = self.trips.get(trip.id)
                if current is None or current.status is not TripStatus.IN_PROGRESS:
                    logger.info(f"Ignoring stale update for trip {trip.id[:8]}")
                    return
                logger.info(f"New trip to track: {trip.id[:8]}")
                self.start_tracking(current)
            elif trip.status is not TripStatus.IN_PROGRESS and self.is_tracking(trip.id):
                logger.info(f"Trip no longer in progress: {trip.id[:8]}")
                self.stop_tracking(trip.id)
        elif event.kind is TripChangeKind.INSERT:
            if trip.status is TripStatus.PENDING:
                self.preposition(trip)
        elif event.kind is TripChangeKind.DELETE:
            self.stop_tracking(trip.id)

    def shutdown(self) -> None:
        """Close the feed and cancel every registered task."""
        if self.feed is not None:
            self.feed.close()
        if self._dispatcher is not None:
            self._events.put(None)
            self._dispatcher.join(self.join_timeout)
            self._dispatcher = None

        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
            self._sessions.clear()
            for task in tasks:
                task.cancel()
        for task in tasks:
            task.join(self.join_timeout)
        logger.info(f"Tracking supervisor stopped ({len(tasks)} tasks cancelled)")

    # Reporting ----------------------------------------------------------

    def snapshot(self) -> list[ActiveTripSummary]:
        now = self.clock()
        with self._lock:
            sessions = list(self._sessions.values())
        return [
            ActiveTripSummary(
                trip_id=session.trip_id,
                vehicle_id=session.vehicle_id,
                display_name=session.display_name,
                speed=session.reference_speed,
                current_speed=session.current_speed,
                progress=session.last_progress,
                distance_km=session.distance_km,
                estimated_minutes=session.estimated_minutes,
                started_at=session.started_at,
                elapsed_minutes=session.elapsed_minutes(now),
                current_stop=(
                    (session.dwell.current.name or str(session.dwell.current.index))
                    if session.dwell.current is not None
                    else None
                ),
                total_dwell_minutes=session.dwell.total_dwell_minutes,
            )
            for session in sessions
        ]
