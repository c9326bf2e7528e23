"""Reference and per-tick speed sampling."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ...models.domain import Segment


class RouteClass(str, Enum):
    TOLL = "toll"
    URBAN = "urban"
    INTERCITY = "intercity"
    LONG_DISTANCE = "long_distance"


@dataclass(frozen=True, slots=True)
class SpeedProfile:
    """Every distance, speed and variation constant used by the speed model (km, km/h)."""

    toll_range: tuple[int, int] = (40, 100)
    urban_range: tuple[int, int] = (5, 50)
    intercity_range: tuple[int, int] = (20, 50)
    long_distance_range: tuple[int, int] = (20, 80)
    urban_limit_km: float = 50.0
    intercity_limit_km: float = 150.0
    variation_range: tuple[int, int] = (-10, 5)
    reference_bounds: tuple[int, int] = (20, 85)
    tick_jitter_kmh: float = 5.0
    tick_bounds: tuple[float, float] = (15.0, 90.0)

    def band(self, route_class: RouteClass) -> tuple[int, int]:
        return {
            RouteClass.TOLL: self.toll_range,
            RouteClass.URBAN: self.urban_range,
            RouteClass.INTERCITY: self.intercity_range,
            RouteClass.LONG_DISTANCE: self.long_distance_range,
        }[route_class]


DEFAULT_SPEED_PROFILE = SpeedProfile()


def _clamp(value, bounds):
    low, high = bounds
    return max(low, min(high, value))


class SpeedModel:
    def __init__(self, profile: SpeedProfile = DEFAULT_SPEED_PROFILE, rng: random.Random | None = None) -> None:
        self.profile = profile
        self.rng = rng or random.Random()

    def classify(self, distance_km: float, segments: Sequence[Segment] | None) -> RouteClass:
        if segments and any(segment.kind.is_toll for segment in segments):
            return RouteClass.TOLL
        if distance_km < self.profile.urban_limit_km:
            return RouteClass.URBAN
        if distance_km < self.profile.intercity_limit_km:
            return RouteClass.INTERCITY
        return RouteClass.LONG_DISTANCE

    def reference_speed(self, distance_km: float, segments: Sequence[Segment] | None) -> int:
        """Sample the fixed baseline speed for one tracking session."""
        low, high = self.profile.band(self.classify(distance_km, segments))
        base = self.rng.randint(low, high)
        variation = self.rng.randint(*self.profile.variation_range)
        return int(_clamp(base + variation, self.profile.reference_bounds))

    def tick_speed(self, reference_speed: float, holding: bool = False) -> float:
        if holding:
            return 0.0
        jitter = self.rng.uniform(-self.profile.tick_jitter_kmh, self.profile.tick_jitter_kmh)
        return float(_clamp(reference_speed + jitter, self.profile.tick_bounds))
