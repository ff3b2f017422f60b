from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import (
    get_health_dashboard_service,
    get_health_recalculation_service,
)
from app.core.exceptions import AccountNotFoundError, PersistenceError
from app.main import app
from app.schemas.account_health import (
    AccountHealthListResponse,
    AtRiskSearchResponse,
    HealthSummaryResponse,
)
from app.services.health_recalculation import (
    RecalculationFailure,
    RecalculationSummary,
)

HEADERS = {"X-Org-Id": "org_test", "X-User-Id": "user_1"}


def health_row(account_id=None, score=35, risk_level="HIGH"):
    return SimpleNamespace(
        health_id=uuid4(),
        account_id=account_id or uuid4(),
        score=score,
        previous_score=52,
        risk_level=risk_level,
        is_at_risk=risk_level in ("HIGH", "CRITICAL"),
        risk_reasons=[
            {
                "code": "LOW_ENGAGEMENT",
                "dimension": "engagement",
                "message": "Low engagement activity",
            }
        ],
        degraded_dimensions=["adoption"],
        engagement_score=20,
        support_score=40,
        relationship_score=45,
        financial_score=30,
        adoption_score=50,
        open_ticket_count=2,
        last_login_at=None,
        last_contact_at=datetime(2026, 4, 1, tzinfo=timezone.utc),
        last_meeting_at=None,
        calculated_at=datetime(2026, 6, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def dashboard_service():
    service = MagicMock()
    app.dependency_overrides[get_health_dashboard_service] = lambda: service
    return service


@pytest.fixture
def recalculation_service():
    service = MagicMock()
    app.dependency_overrides[get_health_recalculation_service] = lambda: service
    return service


class TestLiveness:
    @pytest.mark.asyncio
    async def test_health_returns_ok(self, async_client):
        response = await async_client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_cors_headers_on_get(self, async_client):
        response = await async_client.get(
            "/api/v1/health", headers={"Origin": "http://localhost:3000"}
        )
        assert (
            response.headers.get("access-control-allow-origin")
            == "http://localhost:3000"
        )


class TestTenantHeader:
    @pytest.mark.asyncio
    async def test_missing_org_header_is_rejected(self, async_client, dashboard_service):
        response = await async_client.get("/api/v1/cs/health")

        assert response.status_code == 422
        assert response.json()["type"] == "validation_error"

    @pytest.mark.asyncio
    async def test_org_header_scopes_the_query(self, async_client, dashboard_service):
        dashboard_service.list_health = AsyncMock(
            return_value=AccountHealthListResponse(
                health_scores=[], total=0, limit=50, offset=0
            )
        )

        await async_client.get("/api/v1/cs/health", headers={"X-Org-Id": "org_other"})

        assert dashboard_service.list_health.await_args.args[0] == "org_other"


class TestReadEndpoints:
    @pytest.mark.asyncio
    async def test_list_passes_filters(self, async_client, dashboard_service):
        dashboard_service.list_health = AsyncMock(
            return_value=AccountHealthListResponse(
                health_scores=[], total=0, limit=10, offset=20
            )
        )

        response = await async_client.get(
            "/api/v1/cs/health",
            params={"risk_level": "HIGH", "at_risk": "true", "limit": 10, "offset": 20},
            headers=HEADERS,
        )

        assert response.status_code == 200
        kwargs = dashboard_service.list_health.await_args.kwargs
        assert kwargs["risk_level"].value == "HIGH"
        assert kwargs["at_risk_only"] is True
        assert (kwargs["limit"], kwargs["offset"]) == (10, 20)

    @pytest.mark.asyncio
    async def test_list_rejects_unknown_risk_level(self, async_client, dashboard_service):
        response = await async_client.get(
            "/api/v1/cs/health", params={"risk_level": "SEVERE"}, headers=HEADERS
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_summary(self, async_client, dashboard_service):
        dashboard_service.get_summary = AsyncMock(
            return_value=HealthSummaryResponse(
                total=4,
                critical=1,
                high=1,
                medium=1,
                low=1,
                average_score=52,
                accounts_without_health=2,
            )
        )

        response = await async_client.get("/api/v1/cs/health/summary", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["accounts_without_health"] == 2

    @pytest.mark.asyncio
    async def test_at_risk_limit_is_bounded(self, async_client, dashboard_service):
        dashboard_service.search_at_risk = AsyncMock(
            return_value=AtRiskSearchResponse(count=0, accounts=[])
        )

        response = await async_client.get(
            "/api/v1/cs/health/at-risk", params={"limit": 21}, headers=HEADERS
        )
        assert response.status_code == 422

        response = await async_client.get(
            "/api/v1/cs/health/at-risk", params={"limit": 20}, headers=HEADERS
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_account_returns_404(self, async_client, dashboard_service):
        dashboard_service.get_account_health = AsyncMock(
            side_effect=AccountNotFoundError("Account not found")
        )

        response = await async_client.get(
            f"/api/v1/cs/health/{uuid4()}", headers=HEADERS
        )

        assert response.status_code == 404
        assert response.json() == {
            "detail": "Account not found",
            "type": "account_not_found",
        }

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_generic_500(self, dashboard_service):
        dashboard_service.get_summary = AsyncMock(side_effect=RuntimeError("boom"))
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/v1/cs/health/summary", headers=HEADERS)
        app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["type"] == "internal_server_error"
        assert "boom" not in response.text


class TestRecalculateEndpoint:
    @pytest.mark.asyncio
    async def test_single_account(self, async_client, recalculation_service):
        account_id = uuid4()
        recalculation_service.recalculate_health = AsyncMock(
            return_value=health_row(account_id)
        )

        response = await async_client.post(
            "/api/v1/cs/health/recalculate",
            json={"account_id": str(account_id)},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["health"]["account_id"] == str(account_id)
        assert body["health"]["previous_score"] == 52
        assert body["health"]["degraded_dimensions"] == ["adoption"]
        recalculation_service.recalculate_health.assert_awaited_once_with(
            "org_test", account_id, actor_id="user_1"
        )

    @pytest.mark.asyncio
    async def test_all_accounts(self, async_client, recalculation_service):
        failed_id = uuid4()
        recalculation_service.recalculate_all_health = AsyncMock(
            return_value=RecalculationSummary(
                updated_count=4,
                newly_scored_count=1,
                failures=[RecalculationFailure(account_id=failed_id, error="boom")],
            )
        )

        response = await async_client.post(
            "/api/v1/cs/health/recalculate", json={"all": True}, headers=HEADERS
        )

        assert response.status_code == 200
        body = response.json()
        assert body["updated_count"] == 4
        assert body["newly_scored_count"] == 1
        assert body["failed_count"] == 1
        assert body["failures"] == [{"account_id": str(failed_id), "error": "boom"}]

    @pytest.mark.asyncio
    async def test_empty_body_is_bad_request(self, async_client, recalculation_service):
        response = await async_client.post(
            "/api/v1/cs/health/recalculate", json={}, headers=HEADERS
        )

        assert response.status_code == 400
        assert response.json()["type"] == "invalid_recalculation_request"

    @pytest.mark.asyncio
    async def test_missing_body_is_bad_request(self, async_client, recalculation_service):
        response = await async_client.post(
            "/api/v1/cs/health/recalculate", headers=HEADERS
        )

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Provide account_id or set all=true",
            "type": "invalid_recalculation_request",
        }
        recalculation_service.recalculate_health.assert_not_called()

    @pytest.mark.asyncio
    async def test_both_targets_fail_validation(self, async_client, recalculation_service):
        response = await async_client.post(
            "/api/v1/cs/health/recalculate",
            json={"account_id": str(uuid4()), "all": True},
            headers=HEADERS,
        )

        assert response.status_code == 422
        assert response.json()["type"] == "validation_error"

    @pytest.mark.asyncio
    async def test_persistence_failure_returns_503(
        self, async_client, recalculation_service
    ):
        recalculation_service.recalculate_health = AsyncMock(
            side_effect=PersistenceError()
        )

        response = await async_client.post(
            "/api/v1/cs/health/recalculate",
            json={"account_id": str(uuid4())},
            headers=HEADERS,
        )

        assert response.status_code == 503
        assert response.json()["type"] == "persistence_failure"
