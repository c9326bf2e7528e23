import copy
import random
from datetime import datetime, timedelta, timezone

import pytest

from src.fleet_tracker.models.domain import GeoPoint, LiveLocation, Trip, TripStatus, Vehicle
from src.fleet_tracker.services.geospatial import distance_between
from src.fleet_tracker.services.routing.models import RouteResult
from src.fleet_tracker.services.tracking.speed import SpeedModel
from src.fleet_tracker.services.tracking.supervisor import TrackingSupervisor


class InMemoryTripStore:
    def __init__(self, records=None):
        self.records = {record["id"]: dict(record) for record in records or []}
        self.updates = []

    def get(self, trip_id):
        record = self.records.get(trip_id)
        return Trip.from_record(copy.deepcopy(record)) if record else None

    def list_by_status(self, status):
        return [Trip.from_record(copy.deepcopy(r)) for r in self.records.values() if r.get("status") == status.value]

    def update(self, trip_id, fields):
        self.updates.append((trip_id, dict(fields)))
        if trip_id in self.records:
            self.records[trip_id].update(copy.deepcopy(fields))

    def insert(self, record):
        self.records[record["id"]] = dict(record)


class InMemoryVehicleStore:
    def __init__(self, vehicles=None):
        self.vehicles = {vehicle.id: vehicle for vehicle in vehicles or []}

    def get(self, vehicle_id):
        return self.vehicles.get(vehicle_id)

    def set_active(self, vehicle_id, active):
        vehicle = self.vehicles.setdefault(vehicle_id, Vehicle(id=vehicle_id))
        vehicle.is_active = active


class InMemoryLiveLocationStore:
    def __init__(self):
        self.locations: dict[str, LiveLocation] = {}
        self.removed: list[str] = []

    def remove(self, vehicle_id):
        self.removed.append(vehicle_id)
        self.locations.pop(vehicle_id, None)

    def insert(self, location):
        self.locations[location.vehicle_id] = location

    def replace(self, location):
        self.remove(location.vehicle_id)
        self.insert(location)


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class StraightLineProvider:
    """Route provider returning a straight line at 60 km/h, recording calls."""

    def __init__(self, points=11):
        self.points = points
        self.calls = []

    def route(self, start, end):
        self.calls.append((start, end))
        coordinates = [
            GeoPoint(
                lat=start.lat + (end.lat - start.lat) * i / (self.points - 1),
                lng=start.lng + (end.lng - start.lng) * i / (self.points - 1),
            )
            for i in range(self.points)
        ]
        distance = distance_between(start, end)
        return RouteResult(coordinates=coordinates, distance_km=distance, duration_min=distance)


def point_record(lat, lng, name=None):
    record = {"lat": lat, "lng": lng}
    if name:
        record["name"] = name
    return record


def segment_record(order, lat, lng, kind="waypoint", stop_duration=None, **gates):
    record = {"order": order, "type": kind, "location": point_record(lat, lng, f"P{order}")}
    if stop_duration is not None:
        record["stop_duration"] = stop_duration
    record.update(gates)
    return record


def trip_record(trip_id="trip-0001", status=TripStatus.IN_PROGRESS, **overrides):
    record = {
        "id": trip_id,
        "bus_id": "bus-1",
        "status": status.value,
        "departure": point_record(-6.2, 106.8, "Jakarta"),
        "destination": point_record(-6.9, 107.6, "Bandung"),
        "segments": [
            segment_record(0, -6.2, 106.8),
            segment_record(1, -6.9, 107.6),
        ],
        "route": [],
        "distance": 0,
        "estimated_duration": 0,
        "progress": 0,
    }
    record.update(overrides)
    return record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def trip_store():
    return InMemoryTripStore()


@pytest.fixture
def vehicle_store():
    return InMemoryVehicleStore([Vehicle(id="bus-1", nickname="Bus Satu", is_active=False)])


@pytest.fixture
def live_location_store():
    return InMemoryLiveLocationStore()


@pytest.fixture
def provider():
    return StraightLineProvider()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def supervisor(trip_store, vehicle_store, live_location_store, provider, clock, rng):
    sup = TrackingSupervisor(
        trips=trip_store,
        vehicles=vehicle_store,
        live_locations=live_location_store,
        route_provider=provider,
        speed_model=SpeedModel(rng=rng),
        clock=clock,
        tick_seconds=3600,
        join_timeout=1.0,
    )
    yield sup
    sup.shutdown()
