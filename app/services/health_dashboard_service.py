import logging
from typing import Optional
from uuid import UUID

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import AT_RISK_SEARCH_MAX_LIMIT, HEALTH_SUMMARY_CACHE_KEY
from app.core.exceptions import AccountNotFoundError
from app.repositories.account_repository import AccountRepository
from app.repositories.health_repository import AccountHealthRepository
from app.schemas.account_health import (
    AccountHealthDetailResponse,
    AccountHealthListResponse,
    AccountHealthOut,
    AtRiskAccountOut,
    AtRiskSearchResponse,
    HealthSummaryResponse,
)
from app.schemas.common import RiskLevel

logger = logging.getLogger(__name__)


class HealthDashboardService:
    """Read side of account health: listings, summary and at-risk search.

    The per-tenant summary is cached in Redis for ``REDIS_CACHE_TTL``
    seconds and invalidated by every recalculation.
    """

    def __init__(
        self,
        health_repo: AccountHealthRepository,
        account_repo: AccountRepository,
        cache: Optional[CacheService] = None,
    ) -> None:
        self._health_repo = health_repo
        self._account_repo = account_repo
        self._cache: CacheService = cache or CacheService()

    async def list_health(
        self,
        org_id: str,
        risk_level: Optional[RiskLevel] = None,
        at_risk_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> AccountHealthListResponse:
        """Return health rows lowest score first, with the unpaged total."""
        level = risk_level.value if risk_level else None
        rows = await self._health_repo.list_with_accounts(
            org_id, level, at_risk_only, limit=limit, offset=offset
        )
        total = await self._health_repo.count(org_id, level, at_risk_only)
        return AccountHealthListResponse(
            health_scores=[AccountHealthOut.model_validate(h) for h, _ in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def get_account_health(
        self, org_id: str, account_id: UUID
    ) -> AccountHealthDetailResponse:
        account = await self._account_repo.get_by_id(org_id, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")

        health = await self._health_repo.get_by_account(org_id, account_id)
        return AccountHealthDetailResponse(
            account_id=account.account_id,
            account_name=account.name,
            health=AccountHealthOut.model_validate(health) if health else None,
        )

    async def get_summary(self, org_id: str) -> HealthSummaryResponse:
        cache_key = HEALTH_SUMMARY_CACHE_KEY.format(org_id=org_id)
        cached = await self._cache.get_json(cache_key)
        if cached is not None:
            try:
                return HealthSummaryResponse.model_validate(cached)
            except ValueError:
                logger.warning("Discarding malformed cached summary %s", cache_key)

        counts = await self._health_repo.risk_level_counts(org_id)
        average = await self._health_repo.average_score(org_id)
        without_health = await self._account_repo.count_without_health(org_id)

        summary = HealthSummaryResponse(
            total=sum(counts.values()),
            critical=counts.get(RiskLevel.CRITICAL.value, 0),
            high=counts.get(RiskLevel.HIGH.value, 0),
            medium=counts.get(RiskLevel.MEDIUM.value, 0),
            low=counts.get(RiskLevel.LOW.value, 0),
            average_score=round(average) if average is not None else 0,
            accounts_without_health=without_health,
        )
        await self._cache.set_json(
            cache_key, summary.model_dump(mode="json"), ttl=settings.REDIS_CACHE_TTL
        )
        return summary

    async def search_at_risk(
        self,
        org_id: str,
        risk_level: Optional[RiskLevel] = None,
        limit: int = 10,
    ) -> AtRiskSearchResponse:
        """At-risk accounts (HIGH or CRITICAL), lowest score first."""
        limit = max(1, min(limit, AT_RISK_SEARCH_MAX_LIMIT))
        rows = await self._health_repo.list_at_risk(
            org_id, risk_level.value if risk_level else None, limit=limit
        )
        accounts = [
            AtRiskAccountOut(
                account_id=health.account_id,
                account_name=name,
                score=health.score,
                risk_level=health.risk_level,
                risk_reasons=health.risk_reasons or [],
            )
            for health, name in rows
        ]
        return AtRiskSearchResponse(count=len(accounts), accounts=accounts)
