"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEET_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Trip Tracking API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level for the service.")

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase key used by the tracking backend.",
    )
    trips_table: str = "trips"
    vehicles_table: str = "buses"
    live_locations_table: str = "bus_locations"
    realtime_schema: str = "public"
    realtime_enabled: bool = Field(
        default=True,
        description="Subscribe to trip changes so externally started trips are tracked.",
    )

    osrm_base_url: str = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service.",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing road geometry.",
    )
    osrm_timeout_seconds: float = Field(default=10.0, gt=0.0)
    routing_max_attempts: int = Field(default=2, ge=1)

    tick_interval_seconds: float = Field(default=20.0, gt=0.0)
    stop_window_percent: float = Field(
        default=2.0,
        ge=0.0,
        description="Half-width (percentage points) of the arrival window around a stop.",
    )

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @property
    def database_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


settings = Settings()
