"""Stitch an ordered segment list into one continuous route."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ...config import settings
from ...errors import DegenerateSegment, EmptySegmentList, InvalidCoordinate
from ...models.domain import GeoPoint, Segment, SegmentKind
from ..geospatial import distance_between, is_valid_point
from .models import RouteResult, SynthesizedRoute
from .osrm_client import OSRMClient, direct_route

MIN_SEGMENT_DISTANCE_KM = 0.01
MAX_CONTINUITY_GAP_KM = 0.1
MIN_TOTAL_DISTANCE_KM = 0.1
MIN_TOTAL_DURATION_MIN = 1.0
PREVIEW_LOOP_OFFSET_DEGREES = 0.001

logger = logging.getLogger(__name__)


class RouteProvider(Protocol):
    def route(self, start: GeoPoint, end: GeoPoint) -> RouteResult: ...


def _single_segment_preview(segment: Segment) -> SynthesizedRoute:
    anchor = segment.location
    if anchor is None:
        raise InvalidCoordinate(f"Segment {segment.order} has no location")
    offset = GeoPoint(lat=anchor.lat + PREVIEW_LOOP_OFFSET_DEGREES, lng=anchor.lng + PREVIEW_LOOP_OFFSET_DEGREES)
    return SynthesizedRoute(
        coordinates=[anchor, offset, anchor],
        distance_km=MIN_TOTAL_DISTANCE_KM,
        duration_min=MIN_TOTAL_DURATION_MIN,
    )


def resolve_endpoints(current: Segment, following: Segment) -> tuple[GeoPoint, GeoPoint, str]:
    """Return (start, end, segment_type) for a consecutive pair of segments.

    Raises InvalidCoordinate when an anchor or gate is unusable and
    DegenerateSegment when the endpoints are practically the same place.
    """
    if not (is_valid_point(current.location) and is_valid_point(following.location)):
        raise InvalidCoordinate(f"Invalid anchor between segments {current.order} and {following.order}")

    segment_type = "direct"
    start = current.location
    if current.kind is SegmentKind.TOLL_ENTRY and current.toll_entry_gate is not None:
        start = current.toll_entry_gate

    end = following.location
    if following.kind is SegmentKind.TOLL_ENTRY and following.toll_entry_gate is not None:
        end = following.toll_entry_gate
    elif following.kind is SegmentKind.TOLL_EXIT and following.toll_exit_gate is not None:
        end = following.toll_exit_gate
        segment_type = "toll"

    if not (is_valid_point(start) and is_valid_point(end)):
        raise InvalidCoordinate(f"Invalid toll gate between segments {current.order} and {following.order}")

    gap = distance_between(start, end)
    if gap < MIN_SEGMENT_DISTANCE_KM:
        raise DegenerateSegment(
            f"Segments {current.order} -> {following.order} are {gap:.3f}km apart"
        )
    return start, end, segment_type


def _route_with_retry(provider: RouteProvider, start: GeoPoint, end: GeoPoint, max_attempts: int) -> RouteResult:
    for attempt in range(1, max_attempts + 1):
        try:
            result = provider.route(start, end)
        except Exception as exc:
            logger.warning(f"Route attempt {attempt} failed for {start.label} -> {end.label}: {exc}")
            continue
        if result.coordinates:
            return result
        logger.warning(f"No route data for {start.label} -> {end.label}, using direct route")
        break
    return direct_route(start, end)


def synthesize_route(
    segments: Sequence[Segment],
    provider: RouteProvider | None = None,
    max_attempts: int | None = None,
) -> SynthesizedRoute:
    """Build one distance- and duration-annotated path from ordered segments.

    The returned duration already includes the dwell time of every stop that
    starts a routed pair. Only an empty segment list is a hard failure.
    """
    if not segments:
        raise EmptySegmentList("No segments provided for route calculation")

    if len(segments) == 1:
        return _single_segment_preview(segments[0])

    provider = provider or OSRMClient()
    attempts = max_attempts if max_attempts is not None else settings.routing_max_attempts
    ordered = sorted(segments, key=lambda segment: segment.order)

    total_distance = 0.0
    total_duration = 0.0
    dwell_minutes = 0.0
    path: list[GeoPoint] = []
    skipped: list[int] = []

    for index, (current, following) in enumerate(zip(ordered, ordered[1:])):
        try:
            start, end, segment_type = resolve_endpoints(current, following)
        except (InvalidCoordinate, DegenerateSegment) as exc:
            logger.warning(f"Skipping segment pair {index + 1}: {exc}")
            skipped.append(index)
            continue

        routed = _route_with_retry(provider, start, end, attempts)
        total_distance += routed.distance_km
        total_duration += routed.duration_min

        if current.is_stop and current.stop_duration_min:
            total_duration += current.stop_duration_min
            dwell_minutes += current.stop_duration_min
            logger.info(f"Added {current.stop_duration_min:g} minutes stop time at {start.label}")

        if not path:
            path.extend(routed.coordinates)
        else:
            first_new = routed.coordinates[0]
            gap = distance_between(path[-1], first_new)
            if gap > MAX_CONTINUITY_GAP_KM:
                logger.info(f"Adding connection between segments (gap: {gap:.2f}km)")
                path.append(first_new)
            path.extend(routed.coordinates[1:])

        logger.info(
            f"Segment {index + 1}: {start.label} -> {end.label} ({routed.distance_km:.1f}km, "
            f"{routed.duration_min:.0f}min, {segment_type}, {len(routed.coordinates)} points)"
        )

    if not path:
        first, last = ordered[0], ordered[-1]
        if first.location is None or last.location is None:
            raise InvalidCoordinate("First or last segment has no location")
        logger.info("No routable segment pairs, routing first to last segment directly")
        fallback = provider.route(first.location, last.location)
        path.extend(fallback.coordinates)
        total_distance = fallback.distance_km
        total_duration = fallback.duration_min
        dwell_minutes = 0.0

    total_distance = max(MIN_TOTAL_DISTANCE_KM, total_distance)
    total_duration = float(round(max(MIN_TOTAL_DURATION_MIN, total_duration)))

    logger.info(f"Complete route: {total_distance:.1f}km, {total_duration:.0f} minutes, {len(path)} coordinate points")
    return SynthesizedRoute(
        coordinates=path,
        distance_km=total_distance,
        duration_min=total_duration,
        skipped_pairs=skipped,
        dwell_minutes=dwell_minutes,
    )


def routed_dwell_minutes(segments: Sequence[Segment]) -> float:
    """Stop time a synthesized duration carries: every stop except the final segment."""
    ordered = sorted(segments, key=lambda segment: segment.order)
    return sum(segment.stop_duration_min for segment in ordered[:-1] if segment.is_stop)
