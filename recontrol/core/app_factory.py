"""Application factory for the REcontrol admin API.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns process-wide state: the admin write rate limiter is created here, stored
on ``app.state``, and its sweeper runs for the lifetime of the app.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from recontrol.adapters.rate_limit.sweeper import RateLimitSweeper
from recontrol.api.routes import admin_router, health_router, sense_router
from recontrol.core.config import settings
from recontrol.core.exception_handlers import setup_exception_handlers
from recontrol.core.logging import configure_logging
from recontrol.core.middleware import request_id_middleware
from recontrol.core.openapi import apply_openapi_customizations
from recontrol.core.rate_limit import build_write_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the rate limit sweeper while the app serves requests."""
    sweeper: RateLimitSweeper = app.state.rate_limit_sweeper
    sweeper.start()
    logger.info(
        "app.started",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "database_configured": bool(settings.supabase.url),
            "readvise_configured": bool(settings.readvise.internal_url),
        },
    )
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="REcontrol Admin API",
        description=(
            "Super-admin API for the RE ecosystem: inspect and change workspace "
            "entitlements, monitor Sense market ingestion, review the audit trail "
            "and surface usage/job anomalies. Writes are rate limited per operator."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    limiter = build_write_rate_limiter(settings.app)
    app.state.write_rate_limiter = limiter
    app.state.rate_limit_sweeper = RateLimitSweeper(
        limiter,
        interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(admin_router, prefix="/v1")
    app.include_router(sense_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
