"""Tracking request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ActiveTripModel(BaseModel):
    id: str
    bus_id: str
    name: str
    speed: int = Field(..., description="Reference speed sampled for this session (km/h).")
    current_speed: float
    progress: float
    total_distance: float = Field(..., description="Route distance in kilometres.")
    estimated_time: float = Field(..., description="Travel plus stop time in minutes.")
    start_time: datetime
    elapsed_minutes: float
    elapsed_label: str
    current_stop: Optional[str] = None
    total_stop_minutes: float = 0.0


class TripActionResponse(BaseModel):
    success: bool = True
    trip_id: str
    message: str


class HealthResponse(BaseModel):
    status: str
    active_trips: int
    timestamp: datetime
    database_configured: bool
    update_interval_seconds: float
    trips: List[ActiveTripModel]
