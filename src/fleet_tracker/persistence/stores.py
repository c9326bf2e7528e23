"""Trip, vehicle and live-location stores backed by Supabase tables."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from supabase import Client

from ..config import settings
from ..errors import PersistenceWriteFailure
from ..models.domain import LiveLocation, Trip, TripStatus, Vehicle

logger = logging.getLogger(__name__)


class TripStore(Protocol):
    def get(self, trip_id: str) -> Trip | None: ...

    def list_by_status(self, status: TripStatus) -> list[Trip]: ...

    def update(self, trip_id: str, fields: dict[str, Any]) -> None: ...

    def insert(self, record: dict[str, Any]) -> None: ...


class VehicleStore(Protocol):
    def get(self, vehicle_id: str) -> Vehicle | None: ...

    def set_active(self, vehicle_id: str, active: bool) -> None: ...


class LiveLocationStore(Protocol):
    def remove(self, vehicle_id: str) -> None: ...

    def insert(self, location: LiveLocation) -> None: ...

    def replace(self, location: LiveLocation) -> None: ...


class SupabaseTripStore:
    def __init__(self, client: Client, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.trips_table

    def get(self, trip_id: str) -> Trip | None:
        response = self.client.table(self.table).select("*").eq("id", trip_id).limit(1).execute()
        if not response.data:
            return None
        return Trip.from_record(response.data[0])

    def list_by_status(self, status: TripStatus) -> list[Trip]:
        response = self.client.table(self.table).select("*").eq("status", status.value).execute()
        trips = []
        for row in response.data or []:
            try:
                trips.append(Trip.from_record(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid trip row {row.get('id')}: {e}")
        return trips

    def update(self, trip_id: str, fields: dict[str, Any]) -> None:
        try:
            self.client.table(self.table).update(fields).eq("id", trip_id).execute()
        except Exception as e:
            raise PersistenceWriteFailure(f"Failed to update trip {trip_id}: {e}") from e

    def insert(self, record: dict[str, Any]) -> None:
        try:
            self.client.table(self.table).insert(record).execute()
        except Exception as e:
            raise PersistenceWriteFailure(f"Failed to insert trip: {e}") from e


class SupabaseVehicleStore:
    def __init__(self, client: Client, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.vehicles_table

    def get(self, vehicle_id: str) -> Vehicle | None:
        response = self.client.table(self.table).select("*").eq("id", vehicle_id).limit(1).execute()
        if not response.data:
            return None
        return Vehicle.from_record(response.data[0])

    def set_active(self, vehicle_id: str, active: bool) -> None:
        try:
            self.client.table(self.table).update({"is_active": active}).eq("id", vehicle_id).execute()
        except Exception as e:
            raise PersistenceWriteFailure(f"Failed to update vehicle {vehicle_id}: {e}") from e


class SupabaseLiveLocationStore:
    """Single row per vehicle, maintained by delete-then-insert."""

    def __init__(self, client: Client, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.live_locations_table

    def remove(self, vehicle_id: str) -> None:
        try:
            self.client.table(self.table).delete().eq("bus_id", vehicle_id).execute()
        except Exception as e:
            raise PersistenceWriteFailure(f"Failed to remove live location of {vehicle_id}: {e}") from e

    def insert(self, location: LiveLocation) -> None:
        try:
            self.client.table(self.table).insert(location.to_record()).execute()
        except Exception as e:
            raise PersistenceWriteFailure(f"Failed to insert live location of {location.vehicle_id}: {e}") from e

    def replace(self, location: LiveLocation) -> None:
        self.remove(location.vehicle_id)
        self.insert(location)
