"""Health endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request, status

from ...config import settings
from ...schemas.tracking import HealthResponse
from ..dependencies import to_active_trip_model

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
def health_root(request: Request) -> HealthResponse:
    """Report tracking activity; works even when the database is not configured."""
    supervisor = getattr(request.app.state, "supervisor", None)
    summaries = supervisor.snapshot() if supervisor is not None else []
    return HealthResponse(
        status="ok",
        active_trips=len(summaries),
        timestamp=datetime.now(timezone.utc),
        database_configured=settings.database_configured,
        update_interval_seconds=supervisor.tick_seconds if supervisor is not None else settings.tick_interval_seconds,
        trips=[to_active_trip_model(summary) for summary in summaries],
    )


def _get_osrm_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
def health_osrm() -> dict:
    """Check OSRM service health."""
    try:
        osrm_health_check = _get_osrm_health_check()
        status_flag = osrm_health_check()
        return {"service": "osrm", "healthy": status_flag}
    except Exception as e:
        return {"service": "osrm", "healthy": False, "error": str(e)}
