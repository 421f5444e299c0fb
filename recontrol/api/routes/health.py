from __future__ import annotations

from fastapi import APIRouter, Request

from recontrol.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers."""

    return {"status": "ok"}


@router.get("/health/ready")
def readiness_check(request: Request) -> dict:
    """Report which upstreams are configured and whether the sweeper runs.

    Does not call the upstreams; a configured-but-down database still reports
    ready.
    """

    sweeper = getattr(request.app.state, "rate_limit_sweeper", None)
    database = bool(settings.supabase.url and settings.supabase.service_role_key)
    return {
        "status": "ok" if database else "degraded",
        "database_configured": database,
        "readvise_configured": bool(settings.readvise.internal_url),
        "rate_limit_enabled": settings.app.rate_limit_enabled,
        "rate_limit_sweeper_running": bool(sweeper and sweeper.running),
    }
