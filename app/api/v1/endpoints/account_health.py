from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.api.deps import (
    OrgContext,
    get_health_dashboard_service,
    get_health_recalculation_service,
    get_org_context,
)
from app.core.config import settings
from app.core.constants import AT_RISK_SEARCH_MAX_LIMIT
from app.core.exceptions import InvalidRecalculationRequestError
from app.core.rate_limit import limiter
from app.schemas.account_health import (
    AccountHealthDetailResponse,
    AccountHealthListResponse,
    AccountHealthOut,
    AtRiskSearchResponse,
    HealthSummaryResponse,
    RecalculateAllResponse,
    RecalculateRequest,
    RecalculateSingleResponse,
    RecalculationFailureOut,
)
from app.schemas.common import RiskLevel
from app.services.health_dashboard_service import HealthDashboardService
from app.services.health_recalculation import HealthRecalculationService

router = APIRouter(prefix="/cs/health", tags=["Account Health"])


@router.get("", response_model=AccountHealthListResponse)
async def list_account_health(
    risk_level: Optional[RiskLevel] = Query(None),
    at_risk: bool = Query(False, description="Only HIGH and CRITICAL accounts"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: OrgContext = Depends(get_org_context),
    service: HealthDashboardService = Depends(get_health_dashboard_service),
) -> AccountHealthListResponse:
    """List health rows for the tenant, lowest score first."""
    return await service.list_health(
        ctx.org_id,
        risk_level=risk_level,
        at_risk_only=at_risk,
        limit=limit,
        offset=offset,
    )


@router.get("/summary", response_model=HealthSummaryResponse)
async def get_health_summary(
    ctx: OrgContext = Depends(get_org_context),
    service: HealthDashboardService = Depends(get_health_dashboard_service),
) -> HealthSummaryResponse:
    return await service.get_summary(ctx.org_id)


@router.get("/at-risk", response_model=AtRiskSearchResponse)
async def search_at_risk_accounts(
    risk_level: Optional[RiskLevel] = Query(None),
    limit: int = Query(10, ge=1, le=AT_RISK_SEARCH_MAX_LIMIT),
    ctx: OrgContext = Depends(get_org_context),
    service: HealthDashboardService = Depends(get_health_dashboard_service),
) -> AtRiskSearchResponse:
    return await service.search_at_risk(ctx.org_id, risk_level=risk_level, limit=limit)


@router.get("/{account_id}", response_model=AccountHealthDetailResponse)
async def get_account_health(
    account_id: UUID,
    ctx: OrgContext = Depends(get_org_context),
    service: HealthDashboardService = Depends(get_health_dashboard_service),
) -> AccountHealthDetailResponse:
    """Return one account's health; ``health`` is null if never scored."""
    return await service.get_account_health(ctx.org_id, account_id)


@router.post(
    "/recalculate",
    response_model=RecalculateSingleResponse | RecalculateAllResponse,
)
@limiter.limit(settings.RECALCULATE_RATE_LIMIT)
async def recalculate_health(
    request: Request,
    request_body: Optional[RecalculateRequest] = None,
    ctx: OrgContext = Depends(get_org_context),
    service: HealthRecalculationService = Depends(get_health_recalculation_service),
) -> RecalculateSingleResponse | RecalculateAllResponse:
    """Recalculate one account (``account_id``) or the whole tenant (``all``)."""
    if request_body is None:
        request_body = RecalculateRequest()
    if request_body.all:
        summary = await service.recalculate_all_health(
            ctx.org_id, actor_id=ctx.user_id
        )
        return RecalculateAllResponse(
            message=f"Recalculated health for {summary.updated_count} accounts",
            updated_count=summary.updated_count,
            newly_scored_count=summary.newly_scored_count,
            failed_count=summary.failed_count,
            failures=[
                RecalculationFailureOut(account_id=f.account_id, error=f.error)
                for f in summary.failures
            ],
        )

    if request_body.account_id is None:
        raise InvalidRecalculationRequestError()

    health = await service.recalculate_health(
        ctx.org_id, request_body.account_id, actor_id=ctx.user_id
    )
    return RecalculateSingleResponse(health=AccountHealthOut.model_validate(health))
