"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
lifespan events for database initialization, the meeting services on
app.state, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.app.api.errors import register_exception_handlers
from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1.router import router as v1_router
from src.app.config import Settings, get_settings
from src.app.core.database import close_db, get_session, init_db
from src.app.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.app.meetings.consensus import DeleteVoteEngine
from src.app.meetings.lifecycle import MeetingLifecycleService
from src.app.meetings.listing import MeetingListingService
from src.app.meetings.repository import MeetingRepository
from src.app.meetings.shortener import UrlShortenerClient


def install_meeting_services(app: FastAPI, repository: Any, settings: Settings) -> None:
    """Wire the lifecycle, consensus and listing services onto app.state.

    ``repository`` is a MeetingRepository in production and an in-memory
    double in tests.
    """
    shortener = None
    if settings.URL_SHORTENING_ENABLED:
        shortener = UrlShortenerClient(
            base_url=settings.URL_SHORTENER_BASE_URL,
            timeout=settings.URL_SHORTENER_TIMEOUT,
        )

    app.state.meeting_repository = repository
    app.state.meeting_lifecycle = MeetingLifecycleService(repository, shortener=shortener)
    app.state.delete_vote_engine = DeleteVoteEngine(
        repository, quorum=settings.DELETE_VOTE_QUORUM
    )
    app.state.meeting_listing = MeetingListingService(
        repository, window=timedelta(minutes=settings.LISTING_WINDOW_MINUTES)
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init logging, Sentry, DB and services; close DB on shutdown."""
    settings = get_settings()
    configure_structlog()
    log = structlog.get_logger(__name__)

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    await init_db()

    install_meeting_services(app, MeetingRepository(session_factory=get_session), settings)
    log.info(
        "meetings.services_initialized",
        quorum=settings.DELETE_VOTE_QUORUM,
        listing_window_minutes=settings.LISTING_WINDOW_MINUTES,
        url_shortening=settings.URL_SHORTENING_ENABLED,
    )

    yield

    await close_db()
    log.info("app.shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Meeting Board API",
        version="0.1.0",
        description="Shared scheduling board with quorum-based meeting deletion",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing, audits edits/votes)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    register_exception_handlers(app)

    app.include_router(v1_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
