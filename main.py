"""Meeting Room Reservations - FastAPI application.

Rooms, reservations with double-booking protection, configurable business
hours, usage reports and a WebSocket channel announcing every change.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from api import create_admin_router, create_router, create_updates_router
from clock import VenueClock
from config import Settings, get_settings
from models import BusinessHours, RoomIn
from notifications import WebSocketHub
from reports import ReportService
from repository import (
    InMemoryConfigurationRepository,
    InMemoryReservationRepository,
    InMemoryRoomRepository,
    RepositoryError,
)
from services import TECHNICAL_FAILURE_MESSAGE, BookingService, ConfigurationService, RoomService

logger = logging.getLogger(__name__)

SEED_ROOMS = [RoomIn(name=f"Room {i}", capacity=12 if i <= 3 else 8) for i in range(1, 7)]


def configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("uvicorn").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)


def create_app(settings: Optional[Settings] = None, clock: Optional[VenueClock] = None) -> FastAPI:
    """Create and wire the application. Each call gets its own empty stores."""
    settings = settings or get_settings()
    clock = clock or VenueClock(settings.venue_timezone)

    hub = WebSocketHub()
    reservation_repo = InMemoryReservationRepository()
    room_repo = InMemoryRoomRepository()
    configuration = ConfigurationService(
        InMemoryConfigurationRepository(),
        default=BusinessHours(settings.default_opening_hour, settings.default_closing_hour),
        notifier=hub,
    )
    booking = BookingService(
        reservation_repo,
        room_repo,
        configuration,
        clock,
        hub,
        max_duration=timedelta(minutes=settings.max_duration_minutes),
        past_grace=timedelta(seconds=settings.past_grace_seconds),
        default_color=settings.default_color,
    )
    rooms = RoomService(room_repo, reservation_repo, clock, hub)
    reports = ReportService(reservation_repo, room_repo, clock, window=timedelta(days=settings.report_window_days))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting reservation service (venue timezone %s)", clock.timezone_name)
        if settings.seed_rooms and not rooms.list_rooms():
            for room in SEED_ROOMS:
                rooms.add(room)
            logger.info("Seeded %d rooms", len(SEED_ROOMS))
        yield
        logger.info("Shutting down reservation service")

    app = FastAPI(title="Meeting Room Reservations API", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": TECHNICAL_FAILURE_MESSAGE},
        )

    @app.get("/health")
    def health():
        return {"status": "ok", "rooms": len(rooms.list_rooms())}

    app.include_router(create_router(booking, rooms, configuration), tags=["reservations"])
    app.include_router(create_admin_router(booking, rooms, configuration, reports), tags=["admin"])
    app.include_router(create_updates_router(hub), tags=["updates"])

    app.state.booking = booking
    app.state.rooms = rooms
    app.state.configuration = configuration
    app.state.reports = reports
    app.state.hub = hub
    return app


configure_logging(get_settings().log_level)
app = create_app()
