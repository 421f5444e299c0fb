"""Workspace administration backed by the database's admin procedures.

All business rules (tier presets, entitlement writes, audit rows) live in the
stored procedures; this service shapes their inputs and outputs and feeds the
dashboard's anomaly detection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from recontrol.adapters.rpc.base import AbstractDatabaseGateway, eq
from recontrol.core.errors import NotFoundAppError, UpstreamAppError
from recontrol.core.logging import hash_for_log
from recontrol.schemas.admin import (
    AppToggleRequest,
    AuditLogEntry,
    DashboardResponse,
    MTDTotals,
    TierChangeRequest,
    TopUsage,
    UsageEventType,
    WorkspaceActivity,
    WorkspaceDetailResponse,
    WorkspaceMemberActivity,
    WorkspaceSummary,
)
from recontrol.schemas.sense import SenseMarketOps
from recontrol.services.anomaly_service import (
    DEFAULT_THRESHOLDS,
    AnomalyThresholds,
    build_report,
    detect_sense_anomalies,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorContext:
    """Who performs an admin write, as recorded in the audit log."""

    user_id: str
    ip_address: str = "unknown"
    user_agent: str = "unknown"


def current_month_start(now: datetime | None = None) -> str:
    """First day of the current UTC month as ``YYYY-MM-01``."""
    now = now or datetime.now(timezone.utc)
    return now.date().replace(day=1).isoformat()


class AdminService:
    """Read and mutate workspace entitlements through the database gateway.

    Attributes:
        db: Gateway used for procedure calls and table reads.
    """

    def __init__(self, db: AbstractDatabaseGateway) -> None:
        self.db = db

    async def list_workspaces(
        self,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WorkspaceSummary]:
        rows = await self.db.rpc(
            "admin_list_workspaces",
            {"p_search": search or None, "p_limit": limit, "p_offset": offset},
        )
        return [WorkspaceSummary.model_validate(row) for row in rows or []]

    async def list_workspaces_activity(
        self,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WorkspaceActivity]:
        rows = await self.db.rpc(
            "admin_list_workspaces_activity",
            {"p_search": search or None, "p_limit": limit, "p_offset": offset},
        )
        return [WorkspaceActivity.model_validate(row) for row in rows or []]

    async def get_workspace(
        self,
        workspace_id: str,
        month_start: str | None = None,
    ) -> WorkspaceDetailResponse:
        """Fetch workspace detail and month-to-date usage.

        Raises:
            NotFoundAppError: If the procedure returns no workspace.
        """
        detail = await self.db.rpc(
            "admin_get_workspace_detail", {"p_workspace_id": workspace_id}
        )
        if not detail:
            raise NotFoundAppError(
                code="workspace_not_found",
                message=f"Workspace {workspace_id} not found",
            )

        usage = await self.db.rpc(
            "admin_get_usage_summary",
            {"p_workspace_id": workspace_id, "p_month_start": month_start},
        )
        return WorkspaceDetailResponse(detail=detail, usage=usage)

    async def list_members_activity(self, workspace_id: str) -> list[WorkspaceMemberActivity]:
        rows = await self.db.rpc(
            "admin_list_workspace_members_activity", {"p_workspace_id": workspace_id}
        )
        return [WorkspaceMemberActivity.model_validate(row) for row in rows or []]

    async def set_tier(
        self,
        workspace_id: str,
        change: TierChangeRequest,
        actor: ActorContext,
    ):
        """Apply a tier preset to every app of a workspace (audited upstream)."""
        result = await self.db.rpc(
            "admin_set_workspace_tier",
            {
                "p_workspace_id": workspace_id,
                "p_tier": change.tier,
                "p_reason": change.reason,
                "p_actor_user_id": actor.user_id,
                "p_actor_ip": actor.ip_address,
                "p_actor_user_agent": actor.user_agent,
            },
        )
        logger.info(
            "admin.tier_changed",
            extra={
                "workspace_id": workspace_id,
                "tier": change.tier,
                "admin_hash": hash_for_log(actor.user_id),
            },
        )
        return result

    async def set_app_enabled(
        self,
        workspace_id: str,
        toggle: AppToggleRequest,
        actor: ActorContext,
    ):
        result = await self.db.rpc(
            "admin_set_app_enabled",
            {
                "p_workspace_id": workspace_id,
                "p_app": toggle.app,
                "p_enabled": toggle.enabled,
                "p_reason": toggle.reason,
                "p_actor_user_id": actor.user_id,
                "p_actor_ip": actor.ip_address,
                "p_actor_user_agent": actor.user_agent,
            },
        )
        logger.info(
            "admin.app_toggled",
            extra={
                "workspace_id": workspace_id,
                "app_name": toggle.app,
                "enabled": toggle.enabled,
                "admin_hash": hash_for_log(actor.user_id),
            },
        )
        return result

    async def get_audit_log(
        self,
        workspace_id: str | None = None,
        action: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        rows = await self.db.rpc(
            "admin_get_audit_log",
            {
                "p_workspace_id": workspace_id or None,
                "p_action": action or None,
                "p_limit": limit,
                "p_offset": offset,
            },
        )
        return [AuditLogEntry.model_validate(row) for row in rows or []]

    async def list_top_usage(
        self,
        event_type: UsageEventType,
        month_start: str | None = None,
        limit: int = 10,
    ) -> list[TopUsage]:
        rows = await self.db.rpc(
            "admin_list_top_usage",
            {"p_event_type": event_type, "p_month_start": month_start, "p_limit": limit},
        )
        return [TopUsage.model_validate(row) for row in rows or []]

    async def get_sense_ops_summary(self) -> list[SenseMarketOps]:
        rows = await self.db.rpc("admin_get_sense_ops_summary")
        return [SenseMarketOps.model_validate(row) for row in rows or []]

    async def get_mtd_totals(self, month_start: str) -> MTDTotals:
        """Sum monthly usage rollups per event type.

        The totals are informational, so a failed read yields zeros instead of
        failing the whole dashboard.
        """
        try:
            rows = await self.db.select(
                "usage_monthly_rollups",
                columns="event_type,total_quantity",
                filters={"month_start": eq(month_start)},
            )
        except UpstreamAppError as exc:
            logger.warning(
                "admin.mtd_totals_unavailable",
                extra={"error_code": exc.code, "month_start": month_start},
            )
            return MTDTotals()

        sums = dict.fromkeys(MTDTotals.model_fields, 0)
        for row in rows:
            event_type = row.get("event_type")
            if event_type in sums:
                sums[event_type] += row.get("total_quantity") or 0
        return MTDTotals(**sums)

    async def get_dashboard(
        self,
        thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS,
        month_start: str | None = None,
    ) -> DashboardResponse:
        """Assemble the operator dashboard and run Sense anomaly detection."""
        month_start = month_start or current_month_start()

        mtd_totals = await self.get_mtd_totals(month_start)
        top_workspaces = await self.list_top_usage("advisor_tokens", month_start, limit=5)
        markets = await self.get_sense_ops_summary()

        report = build_report(detect_sense_anomalies(markets, thresholds))
        if report.anomalies:
            logger.info(
                "anomaly.detected",
                extra={
                    "critical": report.critical_count,
                    "warning": report.warning_count,
                    "source": "dashboard",
                },
            )

        return DashboardResponse(
            month_start=month_start,
            mtd_totals=mtd_totals,
            top_workspaces=top_workspaces,
            anomalies=report,
        )
