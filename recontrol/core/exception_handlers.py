"""Exception handlers producing the API's error envelope.

Every error body has the shape ``{"error": {"code", "message", "request_id",
"details"?}}``:

- ``AppError`` subclasses answer with their own ``status_code`` (400, 403,
  404, 502 or 503).
- Anything else is logged with its type and answered with a generic 500;
  exception text never reaches the client.

``HTTPException`` (401, 403, 429 from the auth and rate limit dependencies)
keeps FastAPI's default ``{"detail": ...}`` body.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from recontrol.core.errors import AppError
from recontrol.core.logging import get_request_id

logger = logging.getLogger(__name__)

_INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def status_for_error(exc: AppError) -> int:
    return exc.status_code


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error with its status code.

    Upstream and configuration failures are logged at error level since they
    need an operator; client-side errors only at warning.
    """
    status_code = status_for_error(exc)
    request_id = get_request_id()

    logger.log(
        logging.ERROR if status_code >= 500 else logging.WARNING,
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "upstream": (exc.details or {}).get("upstream"),
        },
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": exc.to_payload(request_id)},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net for unexpected errors; the response stays generic."""
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": _INTERNAL_ERROR_MESSAGE,
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the handlers on ``app``; safe to call more than once."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
