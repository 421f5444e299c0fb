"""Sense market operations: catalogue reads, request triage, pipeline triggers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from recontrol.adapters.rpc.base import AbstractDatabaseGateway, eq, in_
from recontrol.adapters.sense.readvise_client import ReadviseClient
from recontrol.core.errors import ConfigurationAppError
from recontrol.schemas.sense import (
    MarketRequest,
    PipelineTriggerResponse,
    SenseMarket,
    ValidateMarketResponse,
)

logger = logging.getLogger(__name__)

_MARKET_COLUMNS = "id,market_key,name,cbsa_code,created_at"
_AVAILABILITY_COLUMNS = (
    "market_id,status,has_tracts,has_geometry,has_projections,has_hpi,"
    "has_neighborhoods,has_safmr,notes,updated_at"
)
_REQUEST_COLUMNS = (
    "id,workspace_id,requested_by,raw_input,resolved_market_key,status,note,"
    "created_at,updated_at"
)
MARKET_REQUEST_LIMIT = 200


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SenseService:
    """Coordinates Sense reads/writes in the database and readvise triggers.

    Attributes:
        db: Database gateway.
        readvise: Pipeline client, or None when readvise is not configured.
    """

    def __init__(self, db: AbstractDatabaseGateway, readvise: ReadviseClient | None = None) -> None:
        self.db = db
        self.readvise = readvise

    def _require_readvise(self) -> ReadviseClient:
        if self.readvise is None:
            raise ConfigurationAppError(
                code="readvise_not_configured",
                message="READVISE_INTERNAL_URL is not configured",
            )
        return self.readvise

    async def list_markets(self) -> list[SenseMarket]:
        markets = await self.db.select("sense_markets", columns=_MARKET_COLUMNS, order="name")
        if not markets:
            return []

        availability = await self.db.select(
            "sense_market_availability", columns=_AVAILABILITY_COLUMNS
        )
        by_market = {row["market_id"]: row for row in availability}

        result = []
        for market in markets:
            avail = dict(by_market.get(market["id"], {}))
            avail.pop("market_id", None)
            avail["availability_updated_at"] = avail.pop("updated_at", None)
            result.append(SenseMarket.model_validate({**avail, **market}))
        return result

    async def list_market_requests(self, status: str | None = None) -> list[MarketRequest]:
        """Newest market requests first, with workspace names attached."""
        filters = {"status": eq(status)} if status else None
        requests = await self.db.select(
            "market_requests",
            columns=_REQUEST_COLUMNS,
            filters=filters,
            order="created_at.desc",
            limit=MARKET_REQUEST_LIMIT,
        )
        if not requests:
            return []

        workspace_ids = sorted({row["workspace_id"] for row in requests})
        workspaces = await self.db.select(
            "workspaces",
            columns="id,name",
            filters={"id": in_(workspace_ids)},
        )
        names = {row["id"]: row["name"] for row in workspaces}

        return [
            MarketRequest.model_validate({**row, "workspace_name": names.get(row["workspace_id"])})
            for row in requests
        ]

    async def approve_request(self, request_id: str, resolved_market_key: str | None = None) -> None:
        update: dict[str, Any] = {"status": "planned", "updated_at": _utcnow_iso()}
        if resolved_market_key:
            update["resolved_market_key"] = resolved_market_key
        await self.db.update("market_requests", update, filters={"id": eq(request_id)})
        logger.info("sense.request_approved", extra={"market_request_id": request_id})

    async def reject_request(self, request_id: str, note: str | None = None) -> None:
        await self.db.update(
            "market_requests",
            {"status": "closed", "note": note, "updated_at": _utcnow_iso()},
            filters={"id": eq(request_id)},
        )
        logger.info("sense.request_rejected", extra={"market_request_id": request_id})

    async def publish_market(self, market_id: str) -> None:
        """Mark a market's data as available to workspaces."""
        await self.db.upsert(
            "sense_market_availability",
            {"market_id": market_id, "status": "available", "updated_at": _utcnow_iso()},
            on_conflict="market_id",
        )
        logger.info("sense.market_published", extra={"market_id": market_id})

    async def trigger_bootstrap(self, market_key: str) -> PipelineTriggerResponse:
        run_id = await self._require_readvise().trigger_bootstrap(market_key)
        return PipelineTriggerResponse(market_key=market_key, run_id=run_id)

    async def validate_market(self, market_key: str) -> ValidateMarketResponse:
        result = await self._require_readvise().validate_market(market_key)
        return ValidateMarketResponse(market_key=market_key, result=result)

    async def run_stage(self, market_key: str, stage: str) -> PipelineTriggerResponse:
        run_id = await self._require_readvise().run_stage(market_key, stage)
        return PipelineTriggerResponse(market_key=market_key, stage=stage, run_id=run_id)
