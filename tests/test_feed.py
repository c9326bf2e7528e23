import pytest

from conftest import trip_record
from src.fleet_tracker.models.domain import TripStatus
from src.fleet_tracker.services.tracking.feed import RealtimeTripFeed, TripChangeKind, parse_change_payload


def test_parses_realtime_server_shape():
    payload = {"data": {"type": "UPDATE", "record": trip_record(), "old_record": {"id": "trip-0001"}}}

    event = parse_change_payload(payload)

    assert event.kind is TripChangeKind.UPDATE
    assert event.trip.id == "trip-0001"
    assert event.trip.status is TripStatus.IN_PROGRESS
    assert event.trip.vehicle_id == "bus-1"


def test_parses_client_library_shape():
    payload = {"eventType": "insert", "new": trip_record(status=TripStatus.PENDING), "old": {}}

    event = parse_change_payload(payload)

    assert event.kind is TripChangeKind.INSERT
    assert event.trip.status is TripStatus.PENDING


def test_delete_uses_old_record():
    payload = {"data": {"type": "DELETE", "record": None, "old_record": {"id": "trip-0009"}}}

    event = parse_change_payload(payload)

    assert event.kind is TripChangeKind.DELETE
    assert event.trip.id == "trip-0009"


@pytest.mark.parametrize(
    "payload",
    [
        {"data": {"type": "TRUNCATE", "record": trip_record()}},
        {"eventType": "UPDATE", "new": {}},
        {"eventType": "UPDATE", "new": {"bus_id": "bus-1"}},
        {"eventType": "UPDATE", "new": {**trip_record(), "status": "parked"}},
    ],
)
def test_unusable_payloads_are_ignored(payload):
    assert parse_change_payload(payload) is None


def test_feed_requires_credentials(monkeypatch):
    from src.fleet_tracker.config import settings

    monkeypatch.setattr(settings, "supabase_url", None)
    monkeypatch.setattr(settings, "supabase_key", None)

    with pytest.raises(ValueError):
        RealtimeTripFeed()
