import pytest
from fastapi.testclient import TestClient

from conftest import trip_record
from src.fleet_tracker.main import create_app
from src.fleet_tracker.models.domain import TripStatus


@pytest.fixture
def client(supervisor):
    return TestClient(create_app(supervisor=supervisor))


def test_start_trip_marks_in_progress(client, supervisor, trip_store, vehicle_store):
    trip_store.insert(trip_record(status=TripStatus.PENDING))

    response = client.post("/api/trips/trip-0001/start")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["trip_id"] == "trip-0001"
    record = trip_store.records["trip-0001"]
    assert record["status"] == TripStatus.IN_PROGRESS.value
    assert record["start_time"]
    assert vehicle_store.get("bus-1").is_active is True
    assert supervisor.is_tracking("trip-0001")


def test_start_unknown_trip_returns_404(client):
    response = client.post("/api/trips/missing/start")

    assert response.status_code == 404


def test_start_without_route_data_leaves_trip_untouched(client, supervisor, trip_store):
    trip_store.insert(trip_record(status=TripStatus.PENDING, segments=[], departure=None, destination=None))

    response = client.post("/api/trips/trip-0001/start")

    assert response.status_code == 422
    assert trip_store.records["trip-0001"]["status"] == TripStatus.PENDING.value
    assert not supervisor.is_tracking("trip-0001")


def test_cancel_trip_returns_vehicle_to_garage(client, supervisor, trip_store, vehicle_store, live_location_store):
    trip_store.insert(trip_record(status=TripStatus.PENDING))
    client.post("/api/trips/trip-0001/start")

    response = client.post("/api/trips/trip-0001/cancel")

    assert response.status_code == 200
    record = trip_store.records["trip-0001"]
    assert record["status"] == TripStatus.CANCELLED.value
    assert record["end_time"]
    assert vehicle_store.get("bus-1").is_active is False
    assert "bus-1" not in live_location_store.locations
    assert not supervisor.is_tracking("trip-0001")


def test_active_trips_lists_sessions(client, trip_store, clock):
    trip_store.insert(trip_record(status=TripStatus.PENDING))
    client.post("/api/trips/trip-0001/start")
    clock.advance(65 * 60)

    response = client.get("/api/trips/active")

    assert response.status_code == 200
    (trip,) = response.json()
    assert trip["id"] == "trip-0001"
    assert trip["bus_id"] == "bus-1"
    assert trip["name"] == "Bus Satu"
    assert trip["elapsed_label"] == "1h5m"


def test_health_reports_active_trips(client, trip_store):
    trip_store.insert(trip_record(status=TripStatus.PENDING))
    client.post("/api/trips/trip-0001/start")

    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["active_trips"] == 1
    assert body["update_interval_seconds"] == 3600


def test_without_database_tracking_endpoints_are_unavailable():
    client = TestClient(create_app())

    assert client.get("/api/health").status_code == 200
    assert client.get("/api/trips/active").status_code == 503
    assert client.post("/api/trips/trip-0001/start").status_code == 503
