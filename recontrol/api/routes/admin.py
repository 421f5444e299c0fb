from typing import Annotated

from fastapi import APIRouter, Depends, Query

from recontrol.api.deps import (
    get_actor_context,
    get_admin_service,
    get_anomaly_thresholds,
)
from recontrol.core.auth import require_admin_identity, verify_api_key
from recontrol.core.rate_limit import enforce_write_rate_limit
from recontrol.schemas.admin import (
    AppToggleRequest,
    AuditLogEntry,
    DashboardResponse,
    MutationResponse,
    TierChangeRequest,
    WorkspaceActivity,
    WorkspaceDetailResponse,
    WorkspaceMemberActivity,
    WorkspaceSummary,
)
from recontrol.schemas.anomaly import AnomalyDetectRequest, AnomalyReport
from recontrol.services.admin_service import ActorContext, AdminService
from recontrol.services.anomaly_service import (
    AnomalyThresholds,
    build_report,
    detect_sense_anomalies,
    detect_usage_spikes,
)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_api_key), Depends(require_admin_identity)],
)

AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]
ActorDep = Annotated[ActorContext, Depends(get_actor_context)]


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    service: AdminServiceDep,
    thresholds: Annotated[AnomalyThresholds, Depends(get_anomaly_thresholds)],
) -> DashboardResponse:
    """Month-to-date totals, top token consumers and Sense alerts."""
    return await service.get_dashboard(thresholds)


@router.post("/anomalies/detect", response_model=AnomalyReport)
def detect_anomalies(
    payload: AnomalyDetectRequest,
    thresholds: Annotated[AnomalyThresholds, Depends(get_anomaly_thresholds)],
) -> AnomalyReport:
    """Run both detectors over caller-supplied snapshots.

    Usage spikes come first, then Sense failures, each in input order.
    """
    anomalies = detect_usage_spikes(payload.workspaces, thresholds)
    anomalies.extend(detect_sense_anomalies(payload.markets, thresholds))
    return build_report(anomalies)


@router.get("/workspaces", response_model=list[WorkspaceSummary])
async def list_workspaces(
    service: AdminServiceDep,
    search: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[WorkspaceSummary]:
    return await service.list_workspaces(search, limit, offset)


@router.get("/workspaces/activity", response_model=list[WorkspaceActivity])
async def list_workspaces_activity(
    service: AdminServiceDep,
    search: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[WorkspaceActivity]:
    return await service.list_workspaces_activity(search, limit, offset)


@router.get("/workspaces/{workspace_id}", response_model=WorkspaceDetailResponse)
async def get_workspace(
    workspace_id: str,
    service: AdminServiceDep,
    month_start: str | None = None,
) -> WorkspaceDetailResponse:
    return await service.get_workspace(workspace_id, month_start)


@router.get(
    "/workspaces/{workspace_id}/members/activity",
    response_model=list[WorkspaceMemberActivity],
)
async def list_members_activity(
    workspace_id: str,
    service: AdminServiceDep,
) -> list[WorkspaceMemberActivity]:
    return await service.list_members_activity(workspace_id)


@router.post(
    "/workspaces/{workspace_id}/tier",
    response_model=MutationResponse,
    dependencies=[Depends(enforce_write_rate_limit)],
)
async def set_workspace_tier(
    workspace_id: str,
    payload: TierChangeRequest,
    service: AdminServiceDep,
    actor: ActorDep,
) -> MutationResponse:
    """Apply a tier preset (solo, team, pro) to a workspace.

    Rate limited per operator; the change and its reason are audited by the
    database procedure.
    """
    data = await service.set_tier(workspace_id, payload, actor)
    return MutationResponse(data=data)


@router.post(
    "/workspaces/{workspace_id}/app",
    response_model=MutationResponse,
    dependencies=[Depends(enforce_write_rate_limit)],
)
async def set_app_enabled(
    workspace_id: str,
    payload: AppToggleRequest,
    service: AdminServiceDep,
    actor: ActorDep,
) -> MutationResponse:
    """Enable or disable one app for a workspace."""
    data = await service.set_app_enabled(workspace_id, payload, actor)
    return MutationResponse(data=data)


@router.get("/audit", response_model=list[AuditLogEntry])
async def audit_log(
    service: AdminServiceDep,
    workspace_id: str | None = None,
    action: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[AuditLogEntry]:
    return await service.get_audit_log(workspace_id, action, limit, offset)
