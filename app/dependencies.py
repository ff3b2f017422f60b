import logging
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from redis.asyncio import Redis

from app.core.config import settings
from app.core.database import get_db
from app.repositories.account_repository import AccountRepository
from app.repositories.activity_repository import ActivityRepository
from app.repositories.audit_repository import AuditLogRepository
from app.repositories.contact_repository import ContactRepository
from app.repositories.financial_repository import FinancialRepository
from app.repositories.health_repository import AccountHealthRepository
from app.repositories.note_repository import NoteRepository
from app.repositories.playbook_repository import PlaybookRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.ticket_repository import TicketRepository
from app.repositories.usage_repository import UsageRepository
from app.services.health_metrics import HealthMetricAggregator
from app.services.health_scoring import AccountHealthScorer
from app.services.playbook_triggers import PlaybookTriggerService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> Redis:
    """Get an async Redis client instance using connection pooling."""
    try:
        client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        return client
    except Exception:
        logger.warning("Redis unavailable – caching disabled for this request")
        return None  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_account_repo(db: AsyncSession = Depends(get_db)) -> AccountRepository:
    return AccountRepository(db)


async def get_health_repo(
    db: AsyncSession = Depends(get_db),
) -> AccountHealthRepository:
    return AccountHealthRepository(db)


async def get_activity_repo(db: AsyncSession = Depends(get_db)) -> ActivityRepository:
    return ActivityRepository(db)


async def get_task_repo(db: AsyncSession = Depends(get_db)) -> TaskRepository:
    return TaskRepository(db)


async def get_audit_repo(db: AsyncSession = Depends(get_db)) -> AuditLogRepository:
    return AuditLogRepository(db)


async def get_playbook_repo(db: AsyncSession = Depends(get_db)) -> PlaybookRepository:
    return PlaybookRepository(db)


# ---------------------------------------------------------------------------
# Cache service factory
# ---------------------------------------------------------------------------


async def get_cache_service(
    redis_client: Redis = Depends(get_redis_client),
):
    """Build a :class:`CacheService` backed by the shared Redis client."""
    from app.core.cache import CacheService

    return CacheService(redis_client=redis_client)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


async def get_metric_aggregator(
    activity_repo: ActivityRepository = Depends(get_activity_repo),
    task_repo: TaskRepository = Depends(get_task_repo),
    db: AsyncSession = Depends(get_db),
) -> HealthMetricAggregator:
    return HealthMetricAggregator(
        activity_repo=activity_repo,
        note_repo=NoteRepository(db),
        ticket_repo=TicketRepository(db),
        contact_repo=ContactRepository(db),
        task_repo=task_repo,
        financial_repo=FinancialRepository(db),
        usage_repo=UsageRepository(db),
    )


async def get_health_scorer() -> AccountHealthScorer:
    return AccountHealthScorer.from_settings()


async def get_playbook_trigger_service(
    playbook_repo: PlaybookRepository = Depends(get_playbook_repo),
    task_repo: TaskRepository = Depends(get_task_repo),
    activity_repo: ActivityRepository = Depends(get_activity_repo),
) -> PlaybookTriggerService:
    return PlaybookTriggerService(
        playbook_repo=playbook_repo,
        task_repo=task_repo,
        activity_repo=activity_repo,
    )


async def get_health_recalculation_service(
    account_repo: AccountRepository = Depends(get_account_repo),
    health_repo: AccountHealthRepository = Depends(get_health_repo),
    audit_repo: AuditLogRepository = Depends(get_audit_repo),
    activity_repo: ActivityRepository = Depends(get_activity_repo),
    aggregator: HealthMetricAggregator = Depends(get_metric_aggregator),
    scorer: AccountHealthScorer = Depends(get_health_scorer),
    playbook_triggers: PlaybookTriggerService = Depends(get_playbook_trigger_service),
    cache=Depends(get_cache_service),
):
    """Build a :class:`HealthRecalculationService` with injected dependencies."""
    from app.services.health_recalculation import HealthRecalculationService

    return HealthRecalculationService(
        account_repo=account_repo,
        health_repo=health_repo,
        audit_repo=audit_repo,
        activity_repo=activity_repo,
        aggregator=aggregator,
        scorer=scorer,
        playbook_triggers=playbook_triggers,
        cache=cache,
    )


async def get_health_dashboard_service(
    health_repo: AccountHealthRepository = Depends(get_health_repo),
    account_repo: AccountRepository = Depends(get_account_repo),
    cache=Depends(get_cache_service),
):
    """Build a :class:`HealthDashboardService` with injected dependencies."""
    from app.services.health_dashboard_service import HealthDashboardService

    return HealthDashboardService(
        health_repo=health_repo, account_repo=account_repo, cache=cache
    )
