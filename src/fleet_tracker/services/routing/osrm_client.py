"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import math

import httpx

from ...config import settings
from ...errors import RoutingUnavailable
from ...models.domain import GeoPoint
from ..geospatial import distance_between, is_valid_point
from .models import RouteResult

# Direct-route fallback shape and pace.
FALLBACK_SPEED_KMH = 50.0
FALLBACK_POINTS_PER_KM = 3
FALLBACK_MIN_POINTS = 20
FALLBACK_MAX_POINTS = 100
FALLBACK_CURVE_DEGREES = 0.0001

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self._transport)

    def _request_route(self, start: GeoPoint, end: GeoPoint) -> RouteResult:
        """Issue a single OSRM route request, raising RoutingUnavailable on any failure."""
        coordinate_str = f"{start.lng},{start.lat};{end.lng},{end.lat}"
        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"

        client = self._get_client()
        try:
            response = client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise RoutingUnavailable(f"OSRM route request timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise RoutingUnavailable(f"OSRM route request failed ({exc.response.status_code})") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise RoutingUnavailable(f"OSRM route request failed: {exc}") from exc
        finally:
            client.close()

        routes = data.get("routes") or []
        if not routes:
            raise RoutingUnavailable(data.get("message") or "OSRM returned no routes")

        route = routes[0]
        geometry = route.get("geometry") or {}
        # GeoJSON coordinates are [lng, lat]
        coordinates = [GeoPoint(lat=float(lat), lng=float(lng)) for lng, lat in geometry.get("coordinates") or []]
        if not coordinates:
            raise RoutingUnavailable("OSRM route has no geometry")

        return RouteResult(
            coordinates=coordinates,
            distance_km=float(route.get("distance", 0.0)) / 1000.0,
            duration_min=float(route.get("duration", 0.0)) / 60.0,
        )

    def route(self, start: GeoPoint, end: GeoPoint) -> RouteResult:
        """Get a road route between two points, falling back to a direct route.

        Invalid coordinates skip the request entirely. Timeouts, non-success
        responses and empty results are logged and answered by
        :func:`direct_route`.
        """
        if not (is_valid_point(start) and is_valid_point(end)):
            logger.warning(f"Invalid coordinates {start.label} -> {end.label}, falling back to direct route")
            return direct_route(start, end)

        try:
            result = self._request_route(start, end)
        except RoutingUnavailable as exc:
            logger.warning(f"{exc}; falling back to direct route for {start.label} -> {end.label}")
            return direct_route(start, end)

        logger.info(
            f"OSRM route {start.label} -> {end.label}: {result.distance_km:.1f}km, "
            f"{result.duration_min:.0f} minutes, {len(result.coordinates)} points"
        )
        return result


def direct_route(start: GeoPoint, end: GeoPoint) -> RouteResult:
    """Straight-line route with a slight curve so animated movement looks less robotic."""

    distance_km = distance_between(start, end)
    duration_min = (distance_km / FALLBACK_SPEED_KMH) * 60.0
    num_points = max(FALLBACK_MIN_POINTS, min(FALLBACK_MAX_POINTS, int(math.floor(distance_km * FALLBACK_POINTS_PER_KM))))

    coordinates = []
    for i in range(num_points + 1):
        ratio = i / num_points
        curve = math.sin(ratio * math.pi) * FALLBACK_CURVE_DEGREES
        coordinates.append(
            GeoPoint(
                lat=start.lat + (end.lat - start.lat) * ratio + curve,
                lng=start.lng + (end.lng - start.lng) * ratio,
            )
        )

    logger.info(f"Direct route fallback: {distance_km:.1f}km, {duration_min:.0f} minutes")
    return RouteResult(
        coordinates=coordinates,
        distance_km=distance_km,
        duration_min=duration_min,
        source="direct",
    )


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health with a minimal route request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        # Two points in central Berlin
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base.rstrip('/')}/route/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"overview": "false"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return data.get("code") == "Ok" and bool(data.get("routes"))
    except httpx.HTTPError:
        return False
    except ValueError:
        return False
