import pytest

from conftest import StraightLineProvider, point_record, segment_record
from src.fleet_tracker.errors import EmptySegmentList
from src.fleet_tracker.models.domain import GeoPoint, Segment
from src.fleet_tracker.services.geospatial import distance_between
from src.fleet_tracker.services.routing.models import RouteResult
from src.fleet_tracker.services.routing.synthesizer import routed_dwell_minutes, synthesize_route


def _segments(*records):
    return [Segment.from_record(record) for record in records]


def test_empty_segment_list_is_a_hard_failure(provider):
    with pytest.raises(EmptySegmentList):
        synthesize_route([], provider)


def test_single_segment_builds_preview_loop(provider):
    route = synthesize_route(_segments(segment_record(0, -6.2, 106.8)), provider)

    assert len(route.coordinates) == 3
    assert route.coordinates[0] == route.coordinates[-1]
    assert route.distance_km == 0.1
    assert route.duration_min == 1
    assert provider.calls == []


def test_segments_are_sorted_and_stitched_without_duplicates(provider):
    segments = _segments(
        segment_record(2, -6.9, 107.6),
        segment_record(0, -6.2, 106.8),
        segment_record(1, -6.5, 107.2),
    )

    route = synthesize_route(segments, provider)

    assert [call[0].name for call in provider.calls] == ["P0", "P1"]
    # 11 points per leg, shared joint counted once
    assert len(route.coordinates) == 21
    assert route.coordinates[0].lat == pytest.approx(-6.2)
    assert route.coordinates[-1].lat == pytest.approx(-6.9)


def test_invalid_coordinate_pair_is_skipped(provider):
    segments = _segments(
        segment_record(0, -6.2, 106.8),
        segment_record(1, 200.0, 106.9),
        segment_record(2, -6.5, 107.2),
        segment_record(3, -6.9, 107.6),
    )

    route = synthesize_route(segments, provider)

    assert route.skipped_pairs == [0, 1]
    assert len(provider.calls) == 1
    assert route.coordinates[0].lat == pytest.approx(-6.5)
    assert all(point.lat != 200.0 for point in route.coordinates)


def test_stop_dwell_is_added_to_duration(provider):
    segments = _segments(
        segment_record(0, 0.5, 10.0, kind="stop", stop_duration=15),
        segment_record(1, 1.5, 10.0),
    )

    route = synthesize_route(segments, provider)

    travel = distance_between(GeoPoint(0.5, 10.0), GeoPoint(1.5, 10.0))
    assert route.duration_min == round(travel + 15)
    assert route.distance_km == pytest.approx(travel)
    assert route.dwell_minutes == 15


def test_trailing_stop_adds_no_dwell(provider):
    segments = _segments(
        segment_record(0, 0.5, 10.0),
        segment_record(1, 1.5, 10.0, kind="stop", stop_duration=15),
    )

    route = synthesize_route(segments, provider)

    travel = distance_between(GeoPoint(0.5, 10.0), GeoPoint(1.5, 10.0))
    assert route.duration_min == round(travel)
    assert route.dwell_minutes == 0
    assert routed_dwell_minutes(segments) == 0


def test_routed_dwell_counts_every_stop_but_the_last_segment():
    segments = _segments(
        segment_record(2, 1.5, 10.0, kind="stop", stop_duration=20),
        segment_record(0, 0.5, 10.0, kind="stop", stop_duration=5),
        segment_record(1, 1.0, 10.0, kind="stop", stop_duration=10),
    )

    assert routed_dwell_minutes(segments) == 15


def test_toll_segments_route_through_gates(provider):
    segments = _segments(
        segment_record(0, -6.20, 106.80),
        segment_record(1, -6.25, 106.85, kind="toll_entry", toll_entry_gate=point_record(-6.26, 106.86, "Gate In")),
        segment_record(2, -6.80, 107.50, kind="toll_exit", toll_exit_gate=point_record(-6.81, 107.51, "Gate Out")),
        segment_record(3, -6.90, 107.60),
    )

    synthesize_route(segments, provider)

    endpoints = [(start.name, end.name) for start, end in provider.calls]
    assert endpoints == [("P0", "Gate In"), ("Gate In", "Gate Out"), ("P2", "P3")]


def test_degenerate_pair_is_skipped(provider):
    segments = _segments(
        segment_record(0, -6.2, 106.8),
        segment_record(1, -6.20001, 106.80001),
        segment_record(2, -6.5, 107.2),
    )

    route = synthesize_route(segments, provider)

    assert route.skipped_pairs == [0]
    assert len(provider.calls) == 1


def test_routing_gap_gets_connecting_point():
    class GappyProvider(StraightLineProvider):
        def route(self, start, end):
            result = super().route(start, end)
            if len(self.calls) == 2:
                # second leg starts roughly 1 km away from where the first ended
                shifted = GeoPoint(lat=start.lat + 0.01, lng=start.lng)
                result.coordinates[0] = shifted
            return result

    provider = GappyProvider(points=3)
    segments = _segments(
        segment_record(0, -6.2, 106.8),
        segment_record(1, -6.5, 107.2),
        segment_record(2, -6.9, 107.6),
    )

    route = synthesize_route(segments, provider)

    assert len(route.coordinates) == 6
    assert route.coordinates[3].lat == pytest.approx(-6.49)


def test_all_pairs_skipped_routes_first_to_last(provider):
    segments = _segments(
        segment_record(0, -6.2, 106.8),
        segment_record(1, -6.2, 106.8),
    )

    route = synthesize_route(segments, provider)

    assert len(provider.calls) == 1
    assert route.coordinates
    assert route.distance_km >= 0.1
    assert route.duration_min >= 1


def test_router_failure_is_retried_once():
    class FlakyProvider:
        def __init__(self):
            self.calls = 0

        def route(self, start, end):
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("connection reset")
            return RouteResult(coordinates=[start, end], distance_km=10.0, duration_min=12.0)

    provider = FlakyProvider()
    segments = _segments(segment_record(0, -6.2, 106.8), segment_record(1, -6.5, 107.2))

    route = synthesize_route(segments, provider, max_attempts=2)

    assert provider.calls == 2
    assert route.distance_km == 10.0
    assert route.duration_min == 12


def test_router_failing_twice_uses_direct_route():
    class BrokenProvider:
        def route(self, start, end):
            raise RuntimeError("down")

    segments = _segments(segment_record(0, -6.2, 106.8), segment_record(1, -6.5, 107.2))

    route = synthesize_route(segments, BrokenProvider(), max_attempts=2)

    assert len(route.coordinates) >= 21
    assert route.distance_km >= 0.1
