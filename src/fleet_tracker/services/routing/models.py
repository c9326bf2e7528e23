"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ...models.domain import GeoPoint


@dataclass(slots=True)
class RouteResult:
    coordinates: List[GeoPoint]
    distance_km: float
    duration_min: float
    source: str = "osrm"


@dataclass(slots=True)
class SynthesizedRoute:
    coordinates: List[GeoPoint]
    distance_km: float
    duration_min: float
    skipped_pairs: List[int] = field(default_factory=list)
    # Stop time already counted in duration_min.
    dwell_minutes: float = 0.0

    def route_records(self) -> list[dict]:
        return [{"lat": point.lat, "lng": point.lng} for point in self.coordinates]
