"""HTTP middleware: correlation ids and access logging.

The id from ``X-Request-ID`` (or a fresh UUID) is bound to the logging
context for the duration of the request, forwarded by the database and
readvise clients, and echoed on the response together with
``X-Request-Duration-ms``.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from recontrol.core.config import settings
from recontrol.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("recontrol.access")


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a correlation id, time the request and log one access line."""

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    started = time.perf_counter()

    try:
        response: Response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
