from datetime import timedelta

import pytest

from conftest import segment_record
from src.fleet_tracker.models.domain import Segment
from src.fleet_tracker.services.tracking.dwell import StopDwellTracker


def _tracker(*records, window=2.0, tick_seconds=20.0):
    return StopDwellTracker([Segment.from_record(r) for r in records], window_percent=window, tick_seconds=tick_seconds)


def _three_segments(stop_minutes=15):
    return (
        segment_record(0, -6.2, 106.8),
        segment_record(1, -6.5, 107.2, kind="stop", stop_duration=stop_minutes),
        segment_record(2, -6.9, 107.6),
    )


def test_stop_position_follows_segment_rank():
    tracker = _tracker(*_three_segments())
    stop = tracker.stops[0]

    assert tracker.stop_progress(stop, 101) == pytest.approx(50.0)
    # rank 1 of 3 on a 4-point path floors to index 1
    assert tracker.stop_progress(stop, 4) == pytest.approx(100 / 3)
    assert tracker.stop_progress(stop, 1) == 0.0


def test_no_stop_in_window_means_no_hold(clock):
    tracker = _tracker(*_three_segments())

    decision = tracker.evaluate(30.0, 101, clock())

    assert decision.holding is False
    assert tracker.at_stop is False


def test_holds_until_dwell_elapsed_then_resumes_same_tick(clock):
    tracker = _tracker(*_three_segments(stop_minutes=15))

    arrival = tracker.evaluate(49.0, 101, clock())
    assert arrival.holding is True
    assert tracker.at_stop is True
    assert tracker.arrived_at == clock()

    clock.advance(14 * 60 + 59)
    assert tracker.evaluate(49.0, 101, clock()).holding is True

    clock.advance(1)
    departure = tracker.evaluate(49.0, 101, clock())
    assert departure.holding is False
    assert departure.stop.index == 0
    assert tracker.at_stop is False


def test_departed_stop_is_not_entered_again(clock):
    tracker = _tracker(*_three_segments(stop_minutes=1))
    tracker.evaluate(49.5, 101, clock())
    clock.advance(60)
    tracker.evaluate(49.5, 101, clock())

    clock.advance(20)
    assert tracker.evaluate(50.5, 101, clock()).holding is False


def test_first_stop_in_window_wins(clock):
    records = (
        segment_record(0, -6.2, 106.8),
        segment_record(1, -6.3, 106.9, kind="stop", stop_duration=5),
        segment_record(2, -6.4, 107.0, kind="stop", stop_duration=10),
        segment_record(3, -6.9, 107.6),
    )
    # stops sit at roughly 33% and 67%; a wide window puts both in range
    tracker = _tracker(*records, window=40.0)

    decision = tracker.evaluate(50.0, 4, clock())

    assert decision.stop.index == 0
    assert decision.stop.dwell_minutes == 5


def test_short_dwell_is_served_on_arrival_tick(clock):
    tracker = _tracker(*_three_segments(stop_minutes=0.25), tick_seconds=20.0)

    decision = tracker.evaluate(50.0, 101, clock())

    assert decision.holding is False
    assert decision.stop is not None
    assert tracker.at_stop is False


def test_total_dwell_minutes():
    records = (
        segment_record(0, -6.2, 106.8, kind="stop", stop_duration=5),
        segment_record(1, -6.5, 107.2, kind="stop", stop_duration=10),
        segment_record(2, -6.9, 107.6),
    )
    assert _tracker(*records).total_dwell_minutes == 15
