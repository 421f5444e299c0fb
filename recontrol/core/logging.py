"""Structured logging for the admin API.

Every record leaves the process as one JSON object carrying the service name,
environment and the correlation id of the request that produced it. Records
pass through two filters first:

- ``RequestIdFilter`` stamps the id held in a contextvar by the request
  middleware, so adapter logs (database gateway, readvise) can be joined with
  the HTTP access line.
- ``SensitiveDataFilter`` masks credential fields. The service role key
  travels as a bearer token on every upstream call, so bearer values are
  also scrubbed out of free-text fields such as upstream error bodies.

Operator ids are never logged raw; call sites log ``hash_for_log(identity)``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from recontrol.core.config import LogSettings, settings

SERVICE_NAME = "recontrol"
REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Field names masked wherever they appear, including nested mappings
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "api_key",
        "apikey",
        "x-api-key",
        "authorization",
        "token",
        "secret",
        "password",
        "service_role_key",
        "supabase_service_role_key",
        "app_api_keys",
        "cookie",
        "set-cookie",
        "actor_user_agent",
    }
)

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)

# Standard LogRecord attributes; everything else on a record is an ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def set_request_id(request_id: str | None) -> None:
    """Bind a correlation id to the current context."""

    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_for_log(value: str) -> str:
    """Short, stable digest of an identifier (API key, admin id) for logs."""

    return hashlib.sha256(value.encode()).hexdigest()[:16]


def _scrub(value: Any, sensitive_keys: frozenset[str]) -> Any:
    """Mask sensitive keys and bearer tokens anywhere inside ``value``."""

    if isinstance(value, str):
        return _BEARER_RE.sub(r"\1" + REDACTED, value)
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in sensitive_keys else _scrub(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(v, sensitive_keys) for v in value)
    return value


def _extras(record: LogRecord) -> dict[str, Any]:
    """Fields passed through ``extra=`` on a logging call."""

    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class RequestIdFilter(logging.Filter):
    """Attach the context request id when the record has none."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask credentials in a record's extras before any formatter sees them."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        keys = SENSITIVE_KEYS_DEFAULT if sensitive_keys is None else sensitive_keys
        self.sensitive_keys = frozenset(k.lower() for k in keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in _extras(record).items():
            if key.lower() in self.sensitive_keys:
                setattr(record, key, REDACTED)
            else:
                setattr(record, key, _scrub(value, self.sensitive_keys))
        return True


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    Layout: ``timestamp``, ``level``, ``service``, ``env``, ``logger``,
    ``message``, ``request_id`` (when known), the record's extras, and
    ``exc_type``/``exc`` when an exception is attached.
    """

    def __init__(self, *, app_env: str | None = None, ensure_ascii: bool = True) -> None:
        super().__init__()
        self.app_env = app_env or settings.app_env
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "service": SERVICE_NAME,
            "env": self.app_env,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(
            (k, v) for k, v in _extras(record).items() if k != "request_id" and v is not None
        )

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Stdout handler, or a (rotating) file handler when ``LOG_OUTPUT=file``."""

    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/recontrol.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install the JSON (or plain) handler on the root logger.

    ``APP_DEBUG=true`` forces DEBUG regardless of ``LOG_LEVEL``.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log
    level = logging.DEBUG if settings.app.debug else getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())

    if cfg.format.lower() == "plain":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(request_id)s] %(name)s %(message)s")
        )
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # httpx logs every upstream request line at INFO
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
