import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.cache import CacheService
from app.core.config import settings
from app.main import app, lifespan
from app.schemas.common import ActorType
from app.services.health_recalculation import RecalculationSummary
from app.services.scheduled_health import recalculate_all_tenants


def _make_session_factory():
    mock_session = AsyncMock()
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=mock_session), mock_session


class TestRecalculateAllTenants:
    """Verify the scheduled one-shot recalculation across tenants."""

    @pytest.mark.asyncio
    async def test_no_tenants_returns_empty(self):
        session_factory, _ = _make_session_factory()

        with (
            patch("app.services.scheduled_health.AccountRepository") as MockRepo,
            patch(
                "app.services.scheduled_health.build_recalculation_service"
            ) as mock_build,
        ):
            MockRepo.return_value.list_org_ids = AsyncMock(return_value=[])
            summaries = await recalculate_all_tenants(session_factory)

        assert summaries == {}
        mock_build.assert_not_called()

    @pytest.mark.asyncio
    async def test_each_tenant_gets_its_own_session(self):
        session_factory, _ = _make_session_factory()
        summary = RecalculationSummary(updated_count=3, newly_scored_count=1)

        with (
            patch("app.services.scheduled_health.AccountRepository") as MockRepo,
            patch(
                "app.services.scheduled_health.build_recalculation_service"
            ) as mock_build,
        ):
            MockRepo.return_value.list_org_ids = AsyncMock(
                return_value=["org_a", "org_b"]
            )
            service = mock_build.return_value
            service.recalculate_all_health = AsyncMock(return_value=summary)

            summaries = await recalculate_all_tenants(session_factory)

        assert summaries == {"org_a": summary, "org_b": summary}
        # one session to list tenants plus one per tenant
        assert session_factory.call_count == 3
        calls = service.recalculate_all_health.await_args_list
        assert [c.args[0] for c in calls] == ["org_a", "org_b"]
        assert all(c.kwargs["actor_type"] is ActorType.SYSTEM for c in calls)

    @pytest.mark.asyncio
    async def test_failed_tenant_does_not_stop_the_others(self):
        session_factory, _ = _make_session_factory()
        summary = RecalculationSummary(updated_count=2, newly_scored_count=0)

        with (
            patch("app.services.scheduled_health.AccountRepository") as MockRepo,
            patch(
                "app.services.scheduled_health.build_recalculation_service"
            ) as mock_build,
        ):
            MockRepo.return_value.list_org_ids = AsyncMock(
                return_value=["org_broken", "org_ok"]
            )
            mock_build.return_value.recalculate_all_health = AsyncMock(
                side_effect=[RuntimeError("connection reset"), summary]
            )

            summaries = await recalculate_all_tenants(session_factory)

        assert summaries == {"org_ok": summary}

    @pytest.mark.asyncio
    async def test_cache_is_passed_to_each_tenant_service(self, mock_cache):
        session_factory, mock_session = _make_session_factory()

        with (
            patch("app.services.scheduled_health.AccountRepository") as MockRepo,
            patch(
                "app.services.scheduled_health.build_recalculation_service"
            ) as mock_build,
        ):
            MockRepo.return_value.list_org_ids = AsyncMock(return_value=["org_a"])
            mock_build.return_value.recalculate_all_health = AsyncMock(
                return_value=RecalculationSummary()
            )

            await recalculate_all_tenants(session_factory, cache=mock_cache)

        mock_build.assert_called_once_with(mock_session, cache=mock_cache)


class TestLifespan:
    @pytest.mark.asyncio
    async def test_background_loop_invalidates_through_redis(self, mock_redis):
        loop = AsyncMock()

        with (
            patch.object(settings, "HEALTH_AUTO_RECALC_ENABLED", True),
            patch("app.main.get_redis_client", AsyncMock(return_value=mock_redis)),
            patch("app.main.start_health_recalc_loop", loop),
        ):
            async with lifespan(app):
                await asyncio.sleep(0)

        cache = loop.call_args.kwargs["cache"]
        assert isinstance(cache, CacheService)
        await cache.delete("health_summary:org_a")
        mock_redis.delete.assert_awaited_once_with("health_summary:org_a")
        mock_redis.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_loop_not_started_when_disabled(self):
        loop = AsyncMock()

        with (
            patch.object(settings, "HEALTH_AUTO_RECALC_ENABLED", False),
            patch("app.main.start_health_recalc_loop", loop),
        ):
            async with lifespan(app):
                pass

        loop.assert_not_called()
