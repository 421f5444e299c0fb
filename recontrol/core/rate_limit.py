"""Admin write rate limiting for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer:
- ``build_write_rate_limiter`` creates the limiter from settings; the app
  factory calls it once and keeps the instance on ``app.state``.
- ``get_write_rate_limiter`` hands that instance to request handlers.
- ``enforce_write_rate_limit`` is the dependency mutating routes declare.

Strategy: fixed window per operator identity (``X-Admin-User-Id``).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status

from recontrol.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from recontrol.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from recontrol.core.auth import require_admin_identity
from recontrol.core.config import AppSettings, settings
from recontrol.core.logging import hash_for_log

logger = logging.getLogger(__name__)


def build_write_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Create the limiter for admin writes from configuration."""
    cfg = app_settings or settings.app
    return InMemoryFixedWindowRateLimiter(
        limit=cfg.rate_limit_requests,
        window_ms=cfg.rate_limit_window_ms,
    )


def get_write_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""
    return request.app.state.write_rate_limiter


def _rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


async def enforce_write_rate_limit(
    response: Response,
    identity: Annotated[str, Depends(require_admin_identity)],
    limiter: Annotated[AbstractRateLimiter, Depends(get_write_rate_limiter)],
) -> RateLimitResult | None:
    """FastAPI dependency enforcing the per-admin write limit.

    Consumes one write from the operator's budget. Allowed writes get
    informational ``X-RateLimit-*`` headers; denied writes raise HTTP 429 with
    ``Retry-After`` and the time left until the window resets.

    Returns:
        The limiter verdict, or None when rate limiting is disabled.

    Raises:
        HTTPException: 429 Too Many Requests when the budget is exhausted.
    """

    if not settings.app.rate_limit_enabled:
        return None

    result = limiter.check(identity)
    log_extra = {
        "admin_hash": hash_for_log(identity),
        "limit": result.limit,
        "remaining": result.remaining,
        "reset_at_ms": result.reset_at,
    }

    if result.allowed:
        logger.info("rate_limit.allowed", extra=log_extra)
        if settings.app.rate_limit_include_headers:
            response.headers.update(_rate_limit_headers(result))
        return result

    logger.warning(
        "rate_limit.exceeded",
        extra={**log_extra, "retry_after_s": result.retry_after_seconds},
    )

    headers = _rate_limit_headers(result) if settings.app.rate_limit_include_headers else None
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "message": "Rate limit exceeded. Please wait before making more changes.",
            "reset_in_seconds": result.retry_after_seconds or 0,
        },
        headers=headers,
    )
