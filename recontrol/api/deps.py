"""FastAPI dependencies shared by the admin routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from recontrol.adapters.rpc.base import AbstractDatabaseGateway
from recontrol.adapters.rpc.factory import create_database_gateway
from recontrol.adapters.sense.readvise_client import PIPELINE_STAGES, ReadviseClient
from recontrol.core.auth import require_admin_identity
from recontrol.core.config import settings
from recontrol.core.errors import ConfigurationAppError, ValidationAppError
from recontrol.services.admin_service import ActorContext, AdminService
from recontrol.services.anomaly_service import AnomalyThresholds
from recontrol.services.sense_service import SenseService


def get_database_gateway() -> AbstractDatabaseGateway:
    return create_database_gateway(settings.supabase)


def get_admin_service(
    db: Annotated[AbstractDatabaseGateway, Depends(get_database_gateway)],
) -> AdminService:
    return AdminService(db)


def get_sense_service(
    db: Annotated[AbstractDatabaseGateway, Depends(get_database_gateway)],
) -> SenseService:
    try:
        readvise = ReadviseClient.from_settings(settings.readvise, settings.supabase)
    except ConfigurationAppError:
        # Catalogue and request triage still work without readvise.
        readvise = None
    return SenseService(db, readvise)


def get_anomaly_thresholds() -> AnomalyThresholds:
    return AnomalyThresholds.from_settings(settings.anomaly)


def client_ip(request: Request) -> str:
    """Forwarded client address for the audit trail."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded
    return request.headers.get("x-real-ip") or "unknown"


async def get_actor_context(
    request: Request,
    identity: Annotated[str, Depends(require_admin_identity)],
) -> ActorContext:
    return ActorContext(
        user_id=identity,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") or "unknown",
    )


def require_known_stage(stage: str) -> str:
    """Reject unknown pipeline stages before the write limiter runs."""
    if stage not in PIPELINE_STAGES:
        raise ValidationAppError(
            code="unknown_stage",
            message=f"Unknown pipeline stage: {stage}",
            details={"field": "stage", "allowed": list(PIPELINE_STAGES)},
        )
    return stage
