import contextlib
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DataUnavailableError
from app.repositories.base import BaseRepository
from app.schemas.common import HealthDimension
from app.services.health_metrics import HealthMetricAggregator

ORG_ID = "org_test"
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repos(repo_factory):
    return {
        "activity_repo": repo_factory(
            count_since=4, get_last_performed_at=NOW - timedelta(days=3)
        ),
        "note_repo": repo_factory(count_since=2),
        "ticket_repo": repo_factory(
            open_counts_by_priority={"URGENT": 1, "HIGH": 2, "LOW": 1},
            satisfaction_scores_since=[4, 5],
        ),
        "contact_repo": repo_factory(count_with_primary=(3, True)),
        "task_repo": repo_factory(count_created_since=1),
        "financial_repo": repo_factory(
            get_active_renewal_probability=70,
            count_churned_renewals=0,
            count_overdue_invoices=1,
            count_paid_invoices_since=2,
        ),
        "usage_repo": repo_factory(
            has_any_events=True,
            get_last_login_at=NOW - timedelta(days=1),
            usage_since=(42, 4),
        ),
    }


class TestHealthMetricAggregator:
    @pytest.mark.asyncio
    async def test_collects_every_dimension(self, repos):
        account_id = uuid4()
        metrics = await HealthMetricAggregator(**repos).collect(ORG_ID, account_id, NOW)

        assert metrics.unavailable == []
        assert metrics.engagement.recent_activity_count == 4
        assert metrics.engagement.note_count == 2
        assert metrics.support.open_ticket_count == 4
        assert metrics.support.urgent_open_count == 1
        assert metrics.support.high_open_count == 2
        assert metrics.support.average_csat == 4.5
        assert metrics.relationship.contact_count == 3
        assert metrics.relationship.has_primary_contact is True
        assert metrics.financial.active_renewal_probability == 70
        assert metrics.financial.overdue_invoice_count == 1
        assert metrics.adoption.has_usage_data is True
        assert metrics.adoption.usage_event_count == 42
        assert metrics.adoption.active_feature_count == 4
        assert metrics.open_ticket_count == 4

    @pytest.mark.asyncio
    async def test_queries_are_scoped_to_tenant(self, repos):
        account_id = uuid4()
        await HealthMetricAggregator(**repos).collect(ORG_ID, account_id, NOW)

        for repo in repos.values():
            for call in repo.method_calls:
                if call[0] in ("savepoint", "source_savepoint", "flush", "commit", "rollback"):
                    continue
                assert call.args[:2] == (ORG_ID, account_id)

    @pytest.mark.asyncio
    async def test_failed_source_degrades_only_its_dimension(self, repos, repo_factory):
        repos["ticket_repo"] = repo_factory(
            open_counts_by_priority=OperationalError("SELECT", {}, Exception("down")),
        )
        metrics = await HealthMetricAggregator(**repos).collect(ORG_ID, uuid4(), NOW)

        assert metrics.unavailable == [HealthDimension.support]
        assert metrics.support is None
        assert metrics.open_ticket_count == 0
        assert metrics.engagement is not None
        assert metrics.adoption is not None

    @pytest.mark.asyncio
    async def test_bug_in_collector_is_not_masked(self, repos, repo_factory):
        repos["activity_repo"] = repo_factory(
            count_since=TypeError("unsupported operand")
        )

        with pytest.raises(TypeError):
            await HealthMetricAggregator(**repos).collect(ORG_ID, uuid4(), NOW)

    @pytest.mark.asyncio
    async def test_data_unavailable_error_degrades_dimension(self, repos, repo_factory):
        repos["usage_repo"] = repo_factory(
            has_any_events=DataUnavailableError("usage feed offline", "adoption")
        )
        metrics = await HealthMetricAggregator(**repos).collect(ORG_ID, uuid4(), NOW)

        assert metrics.unavailable == [HealthDimension.adoption]
        assert metrics.adoption is None
        assert metrics.last_login_at is None

    @pytest.mark.asyncio
    async def test_each_dimension_runs_in_its_own_savepoint(self, repos):
        await HealthMetricAggregator(**repos).collect(ORG_ID, uuid4(), NOW)

        for name, dimension in (
            ("activity_repo", "engagement"),
            ("ticket_repo", "support"),
            ("contact_repo", "relationship"),
            ("financial_repo", "financial"),
            ("usage_repo", "adoption"),
        ):
            repos[name].source_savepoint.assert_called_once_with(dimension)

    @pytest.mark.asyncio
    async def test_account_without_usage_feed(self, repos, repo_factory):
        repos["usage_repo"] = repo_factory(has_any_events=False)
        metrics = await HealthMetricAggregator(**repos).collect(ORG_ID, uuid4(), NOW)

        assert metrics.unavailable == []
        assert metrics.adoption.has_usage_data is False
        repos["usage_repo"].get_last_login_at.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_resolved_tickets_means_no_csat(self, repos, repo_factory):
        repos["ticket_repo"] = repo_factory(
            open_counts_by_priority={}, satisfaction_scores_since=[]
        )
        metrics = await HealthMetricAggregator(**repos).collect(ORG_ID, uuid4(), NOW)

        assert metrics.support.open_ticket_count == 0
        assert metrics.support.average_csat is None


class TestSourceSavepoint:
    @pytest.mark.asyncio
    async def test_database_error_becomes_data_unavailable(self):
        session = MagicMock()
        session.begin_nested = MagicMock(return_value=contextlib.nullcontext())
        repo = BaseRepository(session)

        with pytest.raises(DataUnavailableError) as exc_info:
            async with repo.source_savepoint("support"):
                raise OperationalError("SELECT", {}, Exception("down"))

        assert exc_info.value.dimension == "support"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        session.begin_nested.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(self):
        session = MagicMock()
        session.begin_nested = MagicMock(return_value=contextlib.nullcontext())

        with pytest.raises(KeyError):
            async with BaseRepository(session).source_savepoint("engagement"):
                raise KeyError("missing")
