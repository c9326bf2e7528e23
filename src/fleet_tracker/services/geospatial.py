"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from ..models.domain import GeoPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(start: GeoPoint, end: GeoPoint) -> float:
    return haversine_km(start.lat, start.lng, end.lat, end.lng)


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """Return True for finite, in-range coordinates that are not null island (0, 0)."""

    try:
        lat_value, lng_value = float(lat), float(lng)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_value) and math.isfinite(lng_value)):
        return False
    if not (-90.0 <= lat_value <= 90.0 and -180.0 <= lng_value <= 180.0):
        return False
    return lat_value != 0.0 or lng_value != 0.0


def is_valid_point(point: GeoPoint | None) -> bool:
    return point is not None and is_valid_coordinate(point.lat, point.lng)


def path_length_km(path: Sequence[GeoPoint]) -> float:
    return sum(distance_between(a, b) for a, b in zip(path, path[1:]))
