"""
FastAPI application for Fantasy GM.

Serves the JSON presentation layer over stored snapshots:
- Refresh trigger (cron or manual)
- Waiver recommendations and weekly streaming plan
- Daily briefing
- Watchlist management and recent league transactions
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import msgspec
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from .errors import APIError, api_error_handler, fantasy_gm_error_handler
from .routers import briefing, refresh, setup_status, transactions, waivers, watchlist, weekly_plan
from ..core.config import get_settings
from ..core.errors import ConfigurationError, FantasyGMError

logger = logging.getLogger(__name__)


class MSGSpecResponse(Response):
    """Custom response class using msgspec for fast JSON serialization."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        if content is None:
            return b""
        return msgspec.json.encode(content)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle.

    Startup:
    - Start the refresh scheduler when SCHEDULER_ENABLED is set

    Shutdown:
    - Stop the scheduler
    - Close HTTP clients
    """
    from ..jobs import RefreshScheduler
    from .dependencies import close_clients, get_refresh_service

    logger.info("Starting Fantasy GM API...")
    settings = get_settings()
    scheduler: RefreshScheduler | None = None

    if settings.scheduler_enabled:
        try:
            scheduler = RefreshScheduler(get_refresh_service(), settings)
        except ConfigurationError as e:
            logger.warning("Scheduler not started: %s", e.message)
        else:
            await scheduler.start()

    yield

    logger.info("Shutting down Fantasy GM API...")
    if scheduler is not None:
        await scheduler.stop()
    await close_clients()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Fantasy basketball assistant: waivers, streaming plan, briefings and alerts",
        version=settings.app_version,
        default_response_class=MSGSpecResponse,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware - allows the dashboard to access the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        """Add processing time to all responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000
        response.headers["X-Process-Time"] = f"{process_time:.2f}ms"
        if request.url.path.startswith(settings.api_prefix):
            response.headers["Cache-Control"] = "no-store"
        return response

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(FantasyGMError, fantasy_gm_error_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with consistent format."""
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        show_detail = settings.debug and settings.environment != "production"
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                    "detail": str(exc) if show_detail else None,
                }
            },
        )

    @app.get("/health", tags=["health"])
    async def health_check():
        """Basic health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(tz=timezone.utc).isoformat()}

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": f"{settings.app_name} API",
            "version": settings.app_version,
            "status": "running",
            "docs": "/docs",
        }

    prefix = settings.api_prefix
    app.include_router(refresh.router, prefix=f"{prefix}/refresh", tags=["refresh"])
    app.include_router(waivers.router, prefix=f"{prefix}/waivers", tags=["waivers"])
    app.include_router(weekly_plan.router, prefix=f"{prefix}/weekly-plan", tags=["weekly-plan"])
    app.include_router(briefing.router, prefix=f"{prefix}/briefing", tags=["briefing"])
    app.include_router(watchlist.router, prefix=f"{prefix}/watchlist", tags=["watchlist"])
    app.include_router(transactions.router, prefix=f"{prefix}/transactions", tags=["transactions"])
    app.include_router(setup_status.router, prefix=f"{prefix}/setup", tags=["setup"])

    return app
