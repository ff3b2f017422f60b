import json
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.core.config import settings
from app.core.exceptions import AccountNotFoundError
from app.schemas.common import RiskLevel
from app.services.health_dashboard_service import HealthDashboardService

ORG_ID = "org_test"


def health_row(score, risk_level, reasons=None):
    return SimpleNamespace(
        health_id=uuid4(),
        account_id=uuid4(),
        score=score,
        previous_score=None,
        risk_level=risk_level,
        is_at_risk=risk_level in ("HIGH", "CRITICAL"),
        risk_reasons=reasons or [],
        degraded_dimensions=[],
        engagement_score=score,
        support_score=score,
        relationship_score=score,
        financial_score=score,
        adoption_score=score,
        open_ticket_count=0,
        last_login_at=None,
        last_contact_at=None,
        last_meeting_at=None,
        calculated_at=datetime(2026, 6, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def summary_repos(repo_factory):
    health_repo = repo_factory(
        risk_level_counts={"LOW": 2, "MEDIUM": 1, "CRITICAL": 1},
        average_score=57.5,
    )
    account_repo = repo_factory(count_without_health=3)
    return health_repo, account_repo


class TestHealthSummary:
    @pytest.mark.asyncio
    async def test_summary_is_computed_and_cached(
        self, summary_repos, mock_cache, mock_redis
    ):
        health_repo, account_repo = summary_repos
        service = HealthDashboardService(health_repo, account_repo, cache=mock_cache)

        summary = await service.get_summary(ORG_ID)

        assert summary.total == 4
        assert (summary.low, summary.medium, summary.high, summary.critical) == (
            2,
            1,
            0,
            1,
        )
        assert summary.average_score == 58
        assert summary.accounts_without_health == 3

        key, ttl, payload = mock_redis.setex.await_args.args
        assert key == f"health_summary:{ORG_ID}"
        assert ttl == settings.REDIS_CACHE_TTL
        assert json.loads(payload)["total"] == 4

    @pytest.mark.asyncio
    async def test_cache_hit_skips_the_database(
        self, summary_repos, mock_cache, mock_redis
    ):
        health_repo, account_repo = summary_repos
        mock_redis.get.return_value = json.dumps(
            {
                "total": 1,
                "critical": 0,
                "high": 0,
                "medium": 0,
                "low": 1,
                "average_score": 90,
                "accounts_without_health": 0,
            }
        )
        service = HealthDashboardService(health_repo, account_repo, cache=mock_cache)

        summary = await service.get_summary(ORG_ID)

        assert summary.average_score == 90
        health_repo.risk_level_counts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_tenant_without_redis(self, repo_factory):
        health_repo = repo_factory(risk_level_counts={}, average_score=None)
        account_repo = repo_factory(count_without_health=0)
        service = HealthDashboardService(health_repo, account_repo)

        summary = await service.get_summary(ORG_ID)

        assert summary.total == 0
        assert summary.average_score == 0


class TestHealthListing:
    @pytest.mark.asyncio
    async def test_list_passes_filter_values(self, repo_factory):
        rows = [(health_row(20, "CRITICAL"), "Acme"), (health_row(35, "HIGH"), "Globex")]
        health_repo = repo_factory(list_with_accounts=rows, count=7)
        service = HealthDashboardService(health_repo, repo_factory())

        result = await service.list_health(
            ORG_ID, risk_level=RiskLevel.HIGH, at_risk_only=True, limit=2, offset=4
        )

        assert [h.score for h in result.health_scores] == [20, 35]
        assert result.total == 7
        health_repo.list_with_accounts.assert_awaited_once_with(
            ORG_ID, "HIGH", True, limit=2, offset=4
        )

    @pytest.mark.asyncio
    async def test_account_never_scored_has_null_health(self, repo_factory):
        account = SimpleNamespace(account_id=uuid4(), name="Initech")
        service = HealthDashboardService(
            repo_factory(get_by_account=None), repo_factory(get_by_id=account)
        )

        detail = await service.get_account_health(ORG_ID, account.account_id)

        assert detail.account_name == "Initech"
        assert detail.health is None

    @pytest.mark.asyncio
    async def test_unknown_account(self, repo_factory):
        service = HealthDashboardService(repo_factory(), repo_factory(get_by_id=None))

        with pytest.raises(AccountNotFoundError):
            await service.get_account_health(ORG_ID, uuid4())


class TestAtRiskSearch:
    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, repo_factory):
        health_repo = repo_factory(list_at_risk=[])
        service = HealthDashboardService(health_repo, repo_factory())

        await service.search_at_risk(ORG_ID, limit=500)
        assert health_repo.list_at_risk.await_args.kwargs["limit"] == 20

        await service.search_at_risk(ORG_ID, limit=0)
        assert health_repo.list_at_risk.await_args.kwargs["limit"] == 1

    @pytest.mark.asyncio
    async def test_results_carry_reasons(self, repo_factory):
        reasons = [
            {
                "code": "CRITICAL_SCORE",
                "dimension": None,
                "message": "Health score critically low",
            }
        ]
        health = health_row(12, "CRITICAL", reasons)
        health_repo = repo_factory(list_at_risk=[(health, "Acme")])
        service = HealthDashboardService(health_repo, repo_factory())

        result = await service.search_at_risk(ORG_ID, risk_level=RiskLevel.CRITICAL)

        assert result.count == 1
        assert result.accounts[0].account_name == "Acme"
        assert result.accounts[0].risk_reasons[0].code == "CRITICAL_SCORE"
        assert health_repo.list_at_risk.await_args.args == (ORG_ID, "CRITICAL")
