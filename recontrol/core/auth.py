"""Operator authentication for the admin API.

Two dependencies guard every ``/v1/admin`` route:

- ``verify_api_key``: ``X-API-Key`` must match one of the comma-separated
  ``APP_API_KEYS``. Keys are compared in constant time.
- ``require_admin_identity``: the request must name the acting operator in
  ``X-Admin-User-Id`` (header name configurable). That identity keys the
  write rate limiter and is passed to the audited database procedures.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from recontrol.core.config import settings
from recontrol.core.errors import AuthenticationAppError
from recontrol.core.logging import hash_for_log

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Split ``APP_API_KEYS`` into a set of trimmed, non-empty keys.

    >>> sorted(parse_api_keys("k1, k2 ,,k1"))
    ['k1', 'k2']
    """
    return {key.strip() for key in (keys_string or "").split(",") if key.strip()}


def _matches_any(provided: str, valid_keys: set[str]) -> bool:
    provided_bytes = provided.encode()
    matched = False
    for key in valid_keys:
        matched |= hmac.compare_digest(provided_bytes, key.encode())
    return matched


def validate_api_key(provided_key: str) -> None:
    """Check ``provided_key`` against the configured keys.

    A no-op when ``APP_API_KEY_REQUIRED=false``.

    Raises:
        AuthenticationAppError: ``api_keys_not_configured`` when auth is on
            but no keys are set; ``invalid_api_key`` when the key is unknown.
    """
    if not settings.app.api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.api_keys)
    if not valid_keys:
        logger.error("auth.no_keys_configured")
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if not _matches_any(provided_key, valid_keys):
        logger.warning("auth.invalid_key", extra={"api_key_hash": hash_for_log(provided_key)})
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """Reject the request with 403 unless it carries a valid API key."""
    if not settings.app.api_key_required:
        return

    if not x_api_key:
        logger.warning("auth.missing_key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        validate_api_key(x_api_key)
    except AuthenticationAppError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message) from exc


async def require_admin_identity(request: Request) -> str:
    """Return the acting operator's id, or reject the request with 401.

    Whitespace-only values count as missing, so the limiter and the audit
    trail never see an empty key.
    """
    header_name = settings.app.admin_identity_header
    identity = (request.headers.get(header_name) or "").strip()
    if not identity:
        logger.warning("auth.missing_identity", extra={"header": header_name})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing operator identity. Provide {header_name} header.",
        )
    return identity
