"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``recontrol`` import so the global
settings object is built from test values.
"""

import os

os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("SUPABASE_URL", "https://db.test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-test")
os.environ.setdefault("READVISE_INTERNAL_URL", "https://readvise.test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any  # noqa: E402

import pytest  # noqa: E402

from recontrol.adapters.rpc.base import AbstractDatabaseGateway  # noqa: E402


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Headers of an authenticated operator."""
    return {"X-API-Key": "test-api-key-123", "X-Admin-User-Id": "admin-1"}


class FakeGateway(AbstractDatabaseGateway):
    """In-memory gateway recording every call.

    ``rpc_results`` maps procedure names to return values and ``tables`` maps
    table names to the rows ``select`` returns. A value that is an exception
    instance is raised instead.
    """

    def __init__(self) -> None:
        self.rpc_results: dict[str, Any] = {}
        self.tables: dict[str, Any] = {}
        self.calls: list[tuple] = []

    @staticmethod
    def _resolve(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    async def rpc(self, function, params=None):
        self.calls.append(("rpc", function, dict(params or {})))
        return self._resolve(self.rpc_results.get(function))

    async def select(self, table, *, columns="*", filters=None, order=None, limit=None):
        self.calls.append(
            ("select", table, {"columns": columns, "filters": filters, "order": order, "limit": limit})
        )
        return self._resolve(self.tables.get(table, []))

    async def update(self, table, values, *, filters):
        self.calls.append(("update", table, {"values": dict(values), "filters": dict(filters)}))

    async def upsert(self, table, values, *, on_conflict):
        self.calls.append(("upsert", table, {"values": dict(values), "on_conflict": on_conflict}))


@pytest.fixture
def fake_db() -> FakeGateway:
    return FakeGateway()
