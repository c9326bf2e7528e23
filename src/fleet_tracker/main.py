"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import health, trips
from .config import settings
from .db.supabase import get_supabase_client
from .persistence.stores import SupabaseLiveLocationStore, SupabaseTripStore, SupabaseVehicleStore
from .services.tracking.feed import RealtimeTripFeed
from .services.tracking.supervisor import TrackingSupervisor

logger = logging.getLogger(__name__)


def build_supervisor() -> TrackingSupervisor | None:
    """Wire the supervisor to Supabase, or return None when it is not configured."""
    client = get_supabase_client()
    if client is None:
        return None
    feed = RealtimeTripFeed() if settings.realtime_enabled else None
    return TrackingSupervisor(
        trips=SupabaseTripStore(client),
        vehicles=SupabaseVehicleStore(client),
        live_locations=SupabaseLiveLocationStore(client),
        feed=feed,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.supervisor is None:
        app.state.supervisor = build_supervisor()
    supervisor = app.state.supervisor
    if supervisor is None:
        logger.warning("Tracking disabled: Supabase is not configured")
    else:
        logger.info(f"Starting trip tracking (update interval {supervisor.tick_seconds:g}s)")
        supervisor.start()
    try:
        yield
    finally:
        if supervisor is not None:
            supervisor.shutdown()


def create_app(supervisor: TrackingSupervisor | None = None) -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.supervisor = supervisor
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(trips.router, prefix=settings.api_prefix)
    return app


app = create_app()
