"""Client for the readvise internal API that runs Sense market pipelines.

REcontrol only triggers pipeline work; the runs themselves are tracked by
readvise in ``sense_ingest_runs_market_bootstrap``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from recontrol.core.config import ReadviseSettings, SupabaseSettings, settings
from recontrol.core.errors import ConfigurationAppError, UpstreamAppError, ValidationAppError
from recontrol.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Bootstrap pipeline stages, in execution order.
PIPELINE_STAGES: tuple[str, ...] = (
    "tracts",
    "crosswalk",
    "acs",
    "zillow_hpi",
    "safmr",
    "snapshots",
    "neighborhoods",
    "validate",
    "publish",
)


class ReadviseClient:
    """Fires bootstrap, validation and single-stage requests at readvise."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._service_key = service_key

    @classmethod
    def from_settings(
        cls,
        readvise: ReadviseSettings | None = None,
        supabase: SupabaseSettings | None = None,
    ) -> "ReadviseClient":
        """Build the client; readvise accepts the database service role key.

        Raises:
            ConfigurationAppError: If the base URL or service key is missing.
        """
        readvise = readvise or settings.readvise
        supabase = supabase or settings.supabase

        if not readvise.internal_url:
            raise ConfigurationAppError(
                code="readvise_not_configured",
                message="READVISE_INTERNAL_URL is not configured",
            )
        if not supabase.service_role_key:
            raise ConfigurationAppError(
                code="readvise_not_configured",
                message="SUPABASE_SERVICE_ROLE_KEY is not configured",
            )
        return cls(
            readvise.internal_url,
            supabase.service_role_key,
            timeout_seconds=readvise.timeout_seconds,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._service_key}"}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                resp = await client.post(
                    f"{self.base_url}/api/internal/sense/{path}",
                    json=payload,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.error(
                "sense.request_failed",
                extra={"path": path, "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="readvise_unreachable",
                message=f"Sense {path} request failed",
                details={"operation": path, "upstream": "readvise"},
            ) from exc

        if resp.is_error:
            logger.error(
                "sense.request_rejected",
                extra={"path": path, "status_code": resp.status_code},
            )
            raise UpstreamAppError(
                code="readvise_error",
                message=f"Sense {path} API returned {resp.status_code}: {resp.text.strip()}",
                details={
                    "operation": path,
                    "upstream": "readvise",
                    "upstream_status": resp.status_code,
                },
            )
        return resp

    async def trigger_bootstrap(self, market_key: str) -> str | None:
        """Queue the full bootstrap pipeline for a market.

        Returns:
            The run id when readvise reports one.
        """
        resp = await self._post("bootstrap", {"marketKey": market_key})
        logger.info("sense.bootstrap_triggered", extra={"market_key": market_key})
        return _json_or_empty(resp).get("runId")

    async def validate_market(self, market_key: str) -> dict[str, Any]:
        """Run readvise's data checks for a market and return its report."""
        resp = await self._post("validate", {"marketKey": market_key})
        return _json_or_empty(resp)

    async def run_stage(self, market_key: str, stage: str) -> str | None:
        """Re-run a single pipeline stage for a market.

        Raises:
            ValidationAppError: If ``stage`` is not a known pipeline stage.
        """
        if stage not in PIPELINE_STAGES:
            raise ValidationAppError(
                code="unknown_stage",
                message=f"Unknown pipeline stage: {stage}",
                details={"field": "stage", "allowed": list(PIPELINE_STAGES)},
            )
        resp = await self._post("run-stage", {"marketKey": market_key, "stage": stage})
        logger.info(
            "sense.stage_triggered",
            extra={"market_key": market_key, "stage": stage},
        )
        return _json_or_empty(resp).get("runId")


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
