"""Domain models for trips, segments, vehicles and live locations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class TripStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SegmentKind(str, Enum):
    WAYPOINT = "waypoint"
    STOP = "stop"
    TOLL_ENTRY = "toll_entry"
    TOLL_EXIT = "toll_exit"

    @classmethod
    def parse(cls, value: Any) -> "SegmentKind":
        """Map a stored segment type to a kind; unknown types are waypoints."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.WAYPOINT

    @property
    def is_toll(self) -> bool:
        return self in (SegmentKind.TOLL_ENTRY, SegmentKind.TOLL_EXIT)


@dataclass(slots=True, frozen=True)
class GeoPoint:
    """A (optionally named) geographic coordinate."""

    lat: float
    lng: float
    name: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any) -> Optional["GeoPoint"]:
        if not isinstance(record, dict):
            return None
        try:
            return cls(lat=float(record["lat"]), lng=float(record["lng"]), name=record.get("name"))
        except (KeyError, TypeError, ValueError):
            return None

    def to_record(self) -> dict:
        record: dict[str, Any] = {"lat": self.lat, "lng": self.lng}
        if self.name is not None:
            record["name"] = self.name
        return record

    @property
    def label(self) -> str:
        return self.name or f"{self.lat:.5f},{self.lng:.5f}"


@dataclass(slots=True, frozen=True)
class Segment:
    """One ordered leg descriptor of a trip."""

    order: int
    kind: SegmentKind
    location: Optional[GeoPoint]
    stop_duration_min: float = 0.0
    toll_entry_gate: Optional[GeoPoint] = None
    toll_exit_gate: Optional[GeoPoint] = None

    @classmethod
    def from_record(cls, record: dict) -> "Segment":
        duration = record.get("stop_duration") or 0
        return cls(
            order=int(record.get("order") or 0),
            kind=SegmentKind.parse(record.get("type")),
            location=GeoPoint.from_record(record.get("location")),
            stop_duration_min=max(0.0, float(duration)),
            toll_entry_gate=GeoPoint.from_record(record.get("toll_entry_gate")),
            toll_exit_gate=GeoPoint.from_record(record.get("toll_exit_gate")),
        )

    @property
    def is_stop(self) -> bool:
        return self.kind is SegmentKind.STOP


@dataclass(slots=True)
class Trip:
    id: str
    vehicle_id: str
    status: TripStatus
    departure: Optional[GeoPoint] = None
    destination: Optional[GeoPoint] = None
    segments: list[Segment] = field(default_factory=list)
    route: list[GeoPoint] = field(default_factory=list)
    distance_km: float = 0.0
    estimated_duration_min: float = 0.0
    progress: float = 0.0
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    speed: float = 0.0
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> "Trip":
        route = [point for point in (GeoPoint.from_record(item) for item in record.get("route") or []) if point]
        return cls(
            id=str(record["id"]),
            vehicle_id=str(record.get("bus_id") or ""),
            status=TripStatus(record.get("status") or TripStatus.PENDING.value),
            departure=GeoPoint.from_record(record.get("departure")),
            destination=GeoPoint.from_record(record.get("destination")),
            segments=[Segment.from_record(item) for item in record.get("segments") or [] if isinstance(item, dict)],
            route=route,
            distance_km=float(record.get("distance") or 0.0),
            estimated_duration_min=float(record.get("estimated_duration") or 0.0),
            progress=float(record.get("progress") or 0.0),
            current_lat=record.get("current_lat"),
            current_lng=record.get("current_lng"),
            speed=float(record.get("speed") or 0.0),
            start_time=record.get("start_time"),
            end_time=record.get("end_time"),
        )

    @property
    def current_position(self) -> Optional[GeoPoint]:
        if self.current_lat is None or self.current_lng is None:
            return None
        return GeoPoint(lat=float(self.current_lat), lng=float(self.current_lng))


@dataclass(slots=True)
class Vehicle:
    id: str
    nickname: Optional[str] = None
    is_active: bool = False

    @classmethod
    def from_record(cls, record: dict) -> "Vehicle":
        return cls(
            id=str(record["id"]),
            nickname=record.get("nickname"),
            is_active=bool(record.get("is_active")),
        )


@dataclass(slots=True)
class LiveLocation:
    """Latest known position of a vehicle; one row per vehicle."""

    vehicle_id: str
    trip_id: str
    lat: float
    lng: float
    progress: float
    elapsed_minutes: float
    captured_at: datetime

    def to_record(self) -> dict:
        return {
            "bus_id": self.vehicle_id,
            "trip_id": self.trip_id,
            "lat": self.lat,
            "lng": self.lng,
            "progress": self.progress,
            "elapsed_time_minutes": self.elapsed_minutes,
            "timestamp": int(self.captured_at.timestamp() * 1000),
        }
