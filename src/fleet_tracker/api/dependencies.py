"""Request dependencies shared by the route modules."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ..schemas.tracking import ActiveTripModel
from ..services.outputs.formatter import format_elapsed
from ..services.tracking.supervisor import ActiveTripSummary, TrackingSupervisor


def get_supervisor(request: Request) -> TrackingSupervisor:
    supervisor = getattr(request.app.state, "supervisor", None)
    if supervisor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tracking is unavailable: set FLEET_SUPABASE_URL and FLEET_SUPABASE_KEY.",
        )
    return supervisor


def to_active_trip_model(summary: ActiveTripSummary) -> ActiveTripModel:
    return ActiveTripModel(
        id=summary.trip_id,
        bus_id=summary.vehicle_id,
        name=summary.display_name,
        speed=summary.speed,
        current_speed=round(summary.current_speed, 1),
        progress=round(summary.progress, 2),
        total_distance=round(summary.distance_km, 2),
        estimated_time=round(summary.estimated_minutes, 1),
        start_time=summary.started_at,
        elapsed_minutes=summary.elapsed_minutes,
        elapsed_label=format_elapsed(summary.elapsed_minutes),
        current_stop=summary.current_stop,
        total_stop_minutes=summary.total_dwell_minutes,
    )
