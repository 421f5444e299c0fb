"""Database gateway client speaking the PostgREST dialect over httpx."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from recontrol.adapters.rpc.base import AbstractDatabaseGateway
from recontrol.core.errors import UpstreamAppError
from recontrol.core.logging import get_request_id

logger = logging.getLogger(__name__)


class PostgrestClient(AbstractDatabaseGateway):
    """Calls stored procedures and tables through the REST gateway.

    Every request authenticates with the service role key and targets the
    configured schema via the ``Accept-Profile`` / ``Content-Profile`` headers.
    A fresh ``httpx.AsyncClient`` is opened per call.
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        *,
        schema: str = "core",
        timeout_seconds: float = 15.0,
    ) -> None:
        """Initialize the gateway client.

        Args:
            base_url: Project URL, e.g. ``https://xyz.supabase.co``.
            service_role_key: Key sent as ``apikey`` and bearer token.
            schema: Schema holding the admin procedures and tables.
            timeout_seconds: Per-request timeout.
        """
        self.rest_url = base_url.rstrip("/") + "/rest/v1"
        self.schema = schema
        self.timeout_seconds = timeout_seconds
        self._service_role_key = service_role_key

    def _headers(self, *, write: bool = False, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Accept-Profile": self.schema,
        }
        if write:
            headers["Content-Profile"] = self.schema
        if prefer:
            headers["Prefer"] = prefer
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str],
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                resp = await client.request(
                    method,
                    f"{self.rest_url}/{path}",
                    params=params,
                    json=json,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.error(
                "rpc.unreachable",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="database_unreachable",
                message=f"Database gateway request failed: {operation}",
                details={"operation": operation, "upstream": "database"},
            ) from exc

        if resp.is_error:
            message = _error_message(resp)
            logger.error(
                "rpc.call_failed",
                extra={
                    "operation": operation,
                    "status_code": resp.status_code,
                    "error_message": message,
                },
            )
            raise UpstreamAppError(
                code="database_error",
                message=message or f"Database gateway returned {resp.status_code}",
                details={
                    "operation": operation,
                    "upstream": "database",
                    "upstream_status": resp.status_code,
                },
            )

        return resp

    async def rpc(self, function: str, params: Mapping[str, Any] | None = None) -> Any:
        resp = await self._send(
            "POST",
            f"rpc/{function}",
            function,
            json=dict(params or {}),
            headers=self._headers(write=True),
        )
        logger.debug("rpc.call_ok", extra={"operation": function})
        if not resp.content:
            return None
        return resp.json()

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Mapping[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"select": columns, **(filters or {})}
        if order:
            query["order"] = order
        if limit is not None:
            query["limit"] = limit

        resp = await self._send(
            "GET", table, f"select:{table}", params=query, headers=self._headers()
        )
        return resp.json() or []

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, str],
    ) -> None:
        if not filters:
            # PostgREST would apply an unfiltered PATCH to every row.
            raise ValueError("update requires at least one filter")
        await self._send(
            "PATCH",
            table,
            f"update:{table}",
            params=dict(filters),
            json=dict(values),
            headers=self._headers(write=True, prefer="return=minimal"),
        )

    async def upsert(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        on_conflict: str,
    ) -> None:
        await self._send(
            "POST",
            table,
            f"upsert:{table}",
            params={"on_conflict": on_conflict},
            json=dict(values),
            headers=self._headers(
                write=True, prefer="resolution=merge-duplicates,return=minimal"
            ),
        )


def _error_message(resp: httpx.Response) -> str:
    """Extract the gateway's error message, falling back to the raw body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip()
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or "")
    return str(body)
