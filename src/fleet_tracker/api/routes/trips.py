"""Trip control endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import EmptySegmentList, TripNotFound
from ...schemas.tracking import ActiveTripModel, TripActionResponse
from ...services.tracking.control import cancel_trip, start_trip
from ...services.tracking.supervisor import TrackingSupervisor
from ..dependencies import get_supervisor, to_active_trip_model

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("/{trip_id}/start", response_model=TripActionResponse, status_code=status.HTTP_200_OK)
def start(trip_id: str, supervisor: TrackingSupervisor = Depends(get_supervisor)) -> TripActionResponse:
    try:
        session = start_trip(supervisor, trip_id)
    except TripNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except EmptySegmentList as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error starting trip {trip_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to start trip: {str(exc)}"
        ) from exc
    return TripActionResponse(
        trip_id=trip_id,
        message=f"Trip started with tracking along {len(session.path)} route points",
    )


@router.post("/{trip_id}/cancel", response_model=TripActionResponse, status_code=status.HTTP_200_OK)
def cancel(trip_id: str, supervisor: TrackingSupervisor = Depends(get_supervisor)) -> TripActionResponse:
    try:
        cancel_trip(supervisor, trip_id)
    except TripNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error cancelling trip {trip_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to cancel trip: {str(exc)}"
        ) from exc
    return TripActionResponse(trip_id=trip_id, message="Trip cancelled - vehicle returned to garage")


@router.get("/active", response_model=list[ActiveTripModel], status_code=status.HTTP_200_OK)
def list_active(supervisor: TrackingSupervisor = Depends(get_supervisor)) -> list[ActiveTripModel]:
    return [to_active_trip_model(summary) for summary in supervisor.snapshot()]
