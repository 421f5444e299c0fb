"""Pydantic schemas for workspace administration and the dashboard."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from recontrol.schemas.anomaly import AnomalyReport

Tier = Literal["solo", "team", "pro"]
AppName = Literal["readvise", "rebuild", "redeal"]
UsageEventType = Literal["advisor_tokens", "property_fresh_pull", "sense_run"]


class WorkspaceSummary(BaseModel):
    workspace_id: str
    workspace_name: str
    owner_email: str | None = None
    created_at: str | None = None
    member_count: int = 0
    tier_readvise: str | None = None
    tier_rebuild: str | None = None
    tier_redeal: str | None = None


class WorkspaceActivity(BaseModel):
    """Presence data for a workspace, overall and per app."""

    workspace_id: str
    workspace_name: str
    created_at: str | None = None
    last_active_at_overall: str | None = None
    active_users_now_overall: int = 0
    last_active_at_readvise: str | None = None
    last_active_at_rebuild: str | None = None
    last_active_at_redeal: str | None = None
    last_active_at_recontrol: str | None = None
    active_users_now_readvise: int = 0
    active_users_now_rebuild: int = 0
    active_users_now_redeal: int = 0
    active_users_now_recontrol: int = 0


class WorkspaceMemberActivity(BaseModel):
    user_id: str
    primary_email: str
    display_name: str | None = None
    platform_role: str | None = None
    workspace_role: str | None = None
    last_login_at: str | None = None
    last_seen_at_overall: str | None = None
    last_seen_at_readvise: str | None = None
    last_seen_at_rebuild: str | None = None
    last_seen_at_redeal: str | None = None
    last_seen_at_recontrol: str | None = None
    active_now: bool = False


class WorkspaceDetailResponse(BaseModel):
    """Workspace record, members and entitlements plus month-to-date usage.

    Both payloads are passed through as returned by the database procedures.
    """

    detail: dict[str, Any]
    usage: dict[str, Any] | None = None


class TierChangeRequest(BaseModel):
    tier: Tier
    reason: str = Field(..., min_length=1, description="Why the tier is changed (stored in the audit log).")


class AppToggleRequest(BaseModel):
    app: AppName
    enabled: bool
    reason: str = Field(..., min_length=1, description="Why the app is toggled (stored in the audit log).")


class MutationResponse(BaseModel):
    success: bool = True
    data: Any = None


class TopUsage(BaseModel):
    workspace_id: str
    workspace_name: str
    total_quantity: float


class MTDTotals(BaseModel):
    advisor_tokens: float = 0
    property_fresh_pull: float = 0
    sense_run: float = 0


class AuditLogEntry(BaseModel):
    id: str
    actor_user_id: str
    actor_email: str | None = None
    workspace_id: str | None = None
    workspace_name: str | None = None
    action: str
    resource_type: str
    resource_id: str | None = None
    before_state: dict[str, Any] | None = None
    after_state: dict[str, Any] | None = None
    reason: str
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: str


class DashboardResponse(BaseModel):
    """Operator dashboard: month-to-date totals, top consumers, alerts."""

    month_start: str
    mtd_totals: MTDTotals
    top_workspaces: list[TopUsage]
    anomalies: AnomalyReport
