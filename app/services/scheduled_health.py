import asyncio
import logging
from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService
from app.core.config import settings
from app.repositories.account_repository import AccountRepository
from app.schemas.common import ActorType
from app.services.health_recalculation import (
    RecalculationSummary,
    build_recalculation_service,
)

logger = logging.getLogger(__name__)


async def recalculate_all_tenants(
    session_factory: Callable[..., AsyncSession],
    cache: CacheService | None = None,
) -> Dict[str, RecalculationSummary]:
    """One-shot: recalculate health for every account of every tenant.

    Parameters:
        session_factory: An async context-manager callable that yields
            an ``AsyncSession`` (e.g. ``AsyncSessionLocal``).

    Returns a summary per ``org_id``.  A tenant that fails as a whole is
    logged and skipped.
    """
    async with session_factory() as session:
        org_ids = await AccountRepository(session).list_org_ids()

    summaries: Dict[str, RecalculationSummary] = {}
    for org_id in org_ids:
        async with session_factory() as session:
            service = build_recalculation_service(session, cache=cache)
            try:
                summaries[org_id] = await service.recalculate_all_health(
                    org_id, actor_type=ActorType.SYSTEM
                )
            except Exception:
                logger.error(
                    "Scheduled health recalculation failed for org %s",
                    org_id,
                    exc_info=True,
                )
    return summaries


async def start_health_recalc_loop(
    session_factory: Callable[..., AsyncSession],
    cache: CacheService | None = None,
) -> None:
    """Infinite loop that recalculates all tenants on a fixed interval.

    Cancelled by the application lifespan on shutdown.
    """
    interval = settings.HEALTH_RECALC_INTERVAL_SECONDS
    logger.info("Health recalculation background task started (interval=%ds)", interval)
    while True:
        try:
            summaries = await recalculate_all_tenants(session_factory, cache=cache)
            updated = sum(s.updated_count for s in summaries.values())
            failed = sum(s.failed_count for s in summaries.values())
            logger.info(
                "Health recalculation cycle complete: %d tenant(s), %d updated, %d failed",
                len(summaries),
                updated,
                failed,
            )
        except Exception:
            logger.error("Health recalculation cycle failed", exc_info=True)
        await asyncio.sleep(interval)
