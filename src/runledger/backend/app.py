"""FastAPI application for the runledger backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request

from runledger import __version__
from runledger.backend.config import get_settings
from runledger.backend.database import close_db, init_db
from runledger.backend.health import check_database_health, overall_status
from runledger.backend.middleware import RequestIDMiddleware
from runledger.backend.routers import duplicates
from runledger.backend.schemas import (
    DatabaseHealthStatus,
    DetailedHealthResponse,
    HealthResponse,
)
from runledger.logging import configure_logging, get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.log_json_format,
    )

    _, session_maker = init_db(settings)
    app.state.session_maker = session_maker
    logger.info("app_started", version=__version__)

    yield

    await close_db()
    logger.info("app_shutdown")


def create_app(api_prefix: str = "/api/v1") -> FastAPI:
    """Build the application with middleware, routers and health endpoints."""
    application = FastAPI(
        title="runledger API",
        description="Playwright test-run ingestion and duplicate detection",
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]
    application.include_router(duplicates.router, prefix=api_prefix)

    @application.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Liveness check."""
        return HealthResponse(status="healthy", version=__version__)

    @application.get("/health/detailed", response_model=DetailedHealthResponse, tags=["Health"])
    async def detailed_health_check(request: Request) -> DetailedHealthResponse:
        """
        Detailed health check endpoint with component status.

        Returns:
            Detailed health status including database connectivity.
        """
        session_maker = getattr(request.app.state, "session_maker", None)

        if session_maker is not None:
            db_connected, db_latency = await check_database_health(session_maker)
        else:
            db_connected, db_latency = False, 0.0

        return DetailedHealthResponse(
            status=overall_status(db_connected, db_latency),
            version=__version__,
            database=DatabaseHealthStatus(
                connected=db_connected,
                latency_ms=db_latency,
            ),
        )

    return application


app = create_app()
