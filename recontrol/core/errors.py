"""Domain errors raised by services and upstream adapters.

Each error class carries the HTTP status the API answers with, so handlers
never need to know which layer raised it. ``code`` values are stable and
documented for the dashboard client (e.g. ``workspace_not_found``,
``database_error``, ``readvise_not_configured``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Optional structured context attached to an error response."""

    hint: str
    field: str
    allowed: list[str]
    upstream: str
    upstream_status: int
    operation: str
    context: dict[str, Any]


@dataclass
class AppError(Exception):
    """Base class for failures the API reports to the caller.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details (see ``ErrorDetails``).
    """

    status_code: ClassVar[int] = 400

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_payload(self, request_id: str | None = None) -> dict[str, Any]:
        """Body of the ``{"error": ...}`` envelope."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "request_id": request_id,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class ValidationAppError(AppError):
    """Input rejected before reaching an upstream (unknown stage, bad filter)."""


class AuthenticationAppError(AppError):
    """API key missing, unknown, or not configured."""

    status_code = 403


class NotFoundAppError(AppError):
    """The database returned nothing for the requested record."""

    status_code = 404


class UpstreamAppError(AppError):
    """The database gateway or readvise failed or rejected the call."""

    status_code = 502


class ConfigurationAppError(AppError):
    """A required upstream (database, readvise) has no URL or key configured."""

    status_code = 503
