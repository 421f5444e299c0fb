"""Pydantic schemas for Sense market operations."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from recontrol.schemas.anomaly import MarketOpsSnapshot

MarketRequestStatus = Literal["new", "planned", "shipped", "closed"]


class SenseRun(BaseModel):
    id: str
    status: str
    total_tasks: int = 0
    successful_tasks: int = 0
    failed_tasks: int = 0
    started_at: str | None = None
    completed_at: str | None = None
    error_summary: str | None = None


class SenseMarketOps(MarketOpsSnapshot):
    """Row of the Sense ops summary; doubles as an anomaly snapshot."""

    market_code: str | None = None
    enabled: bool = True
    last_run_at: str | None = None
    recent_runs: list[SenseRun] = Field(default_factory=list)


class SenseMarket(BaseModel):
    """Market definition merged with its availability flags.

    Availability fields are None when no availability row exists yet.
    """

    id: str
    market_key: str
    name: str
    cbsa_code: str | None = None
    created_at: str | None = None
    status: str | None = None
    has_tracts: bool | None = None
    has_geometry: bool | None = None
    has_projections: bool | None = None
    has_hpi: bool | None = None
    has_neighborhoods: bool | None = None
    has_safmr: bool | None = None
    notes: str | None = None
    availability_updated_at: str | None = None


class MarketRequest(BaseModel):
    id: str
    workspace_id: str
    workspace_name: str | None = None
    requested_by: str
    raw_input: str
    resolved_market_key: str | None = None
    status: str
    note: str | None = None
    created_at: str
    updated_at: str


class ApproveMarketRequest(BaseModel):
    resolved_market_key: str | None = Field(
        default=None,
        description="Market key the request maps to, when known.",
    )


class RejectMarketRequest(BaseModel):
    note: str | None = Field(default=None, description="Reason shown to the requester.")


class PipelineTriggerResponse(BaseModel):
    market_key: str
    accepted: bool = True
    stage: str | None = None
    run_id: str | None = None


class ValidateMarketResponse(BaseModel):
    market_key: str
    result: dict[str, Any]
