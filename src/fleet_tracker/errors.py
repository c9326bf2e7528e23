"""Exception taxonomy shared by routing, tracking and persistence."""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for errors raised by the tracking backend."""


class RoutingUnavailable(TrackingError):
    """The routing service timed out, failed or returned no route."""


class InvalidCoordinate(TrackingError, ValueError):
    """A coordinate is not finite, out of range or sits on null island."""


class DegenerateSegment(TrackingError):
    """A segment pair resolves to endpoints that are practically identical."""


class EmptySegmentList(TrackingError, ValueError):
    """Route synthesis was asked to work on no segments at all."""


class TripNotFound(TrackingError):
    def __init__(self, trip_id: str) -> None:
        super().__init__(f"Trip '{trip_id}' not found")
        self.trip_id = trip_id


class TripNotActive(TrackingError):
    def __init__(self, trip_id: str, status: str) -> None:
        super().__init__(f"Trip '{trip_id}' is {status}, not IN_PROGRESS")
        self.trip_id = trip_id
        self.status = status


class PersistenceWriteFailure(TrackingError):
    """A store rejected or failed an insert, update or delete."""
