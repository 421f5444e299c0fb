from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi import status as http_status

from recontrol.api.deps import get_sense_service, require_known_stage
from recontrol.core.auth import require_admin_identity, verify_api_key
from recontrol.core.rate_limit import enforce_write_rate_limit
from recontrol.schemas.admin import MutationResponse
from recontrol.schemas.sense import (
    ApproveMarketRequest,
    MarketRequest,
    MarketRequestStatus,
    PipelineTriggerResponse,
    RejectMarketRequest,
    SenseMarket,
    ValidateMarketResponse,
)
from recontrol.services.sense_service import SenseService

router = APIRouter(
    prefix="/admin/sense",
    tags=["Sense"],
    dependencies=[Depends(verify_api_key), Depends(require_admin_identity)],
)

SenseServiceDep = Annotated[SenseService, Depends(get_sense_service)]
_write_limited = [Depends(enforce_write_rate_limit)]


@router.get("/markets", response_model=list[SenseMarket])
async def list_markets(service: SenseServiceDep) -> list[SenseMarket]:
    return await service.list_markets()


@router.get("/markets/requests", response_model=list[MarketRequest])
async def list_market_requests(
    service: SenseServiceDep,
    status: MarketRequestStatus | None = None,
) -> list[MarketRequest]:
    return await service.list_market_requests(status)


@router.post(
    "/markets/requests/{request_id}/approve",
    response_model=MutationResponse,
    dependencies=_write_limited,
)
async def approve_market_request(
    request_id: str,
    service: SenseServiceDep,
    payload: ApproveMarketRequest | None = None,
) -> MutationResponse:
    """Move a market request to ``planned``."""
    await service.approve_request(request_id, payload.resolved_market_key if payload else None)
    return MutationResponse()


@router.post(
    "/markets/requests/{request_id}/reject",
    response_model=MutationResponse,
    dependencies=_write_limited,
)
async def reject_market_request(
    request_id: str,
    service: SenseServiceDep,
    payload: RejectMarketRequest | None = None,
) -> MutationResponse:
    """Close a market request with an optional note."""
    await service.reject_request(request_id, payload.note if payload else None)
    return MutationResponse()


@router.post(
    "/markets/{market_key}/bootstrap",
    response_model=PipelineTriggerResponse,
    status_code=http_status.HTTP_202_ACCEPTED,
    dependencies=_write_limited,
)
async def trigger_bootstrap(market_key: str, service: SenseServiceDep) -> PipelineTriggerResponse:
    """Queue the full bootstrap pipeline; progress is tracked by readvise."""
    return await service.trigger_bootstrap(market_key)


@router.post("/markets/{market_key}/validate", response_model=ValidateMarketResponse)
async def validate_market(market_key: str, service: SenseServiceDep) -> ValidateMarketResponse:
    return await service.validate_market(market_key)


@router.post(
    "/markets/{market_key}/stages/{stage}",
    response_model=PipelineTriggerResponse,
    status_code=http_status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_known_stage), *_write_limited],
)
async def run_stage(
    market_key: str,
    stage: str,
    service: SenseServiceDep,
) -> PipelineTriggerResponse:
    """Re-run one pipeline stage (tracts, crosswalk, acs, ...)."""
    return await service.run_stage(market_key, stage)


@router.post(
    "/markets/{market_id}/publish",
    response_model=MutationResponse,
    dependencies=_write_limited,
)
async def publish_market(market_id: str, service: SenseServiceDep) -> MutationResponse:
    """Mark a market as available once validation passed."""
    await service.publish_market(market_id)
    return MutationResponse()
