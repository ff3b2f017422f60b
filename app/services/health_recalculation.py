import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService
from app.core.constants import (
    AUDIT_ACTION_HEALTH_RECALCULATED,
    AUDIT_MODULE_ACCOUNT_HEALTH,
    HEALTH_SUMMARY_CACHE_KEY,
)
from app.core.exceptions import AccountNotFoundError, PersistenceError
from app.models.account_health import AccountHealth
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
from app.schemas.common import ActivityType, ActorType
from app.services.health_metrics import HealthMetricAggregator
from app.services.health_scoring import AccountHealthScorer, HealthCalculation
from app.services.playbook_triggers import PlaybookTriggerService

logger = logging.getLogger(__name__)


@dataclass
class RecalculationFailure:
    account_id: UUID
    error: str


@dataclass
class RecalculationSummary:
    """Outcome of a tenant-wide recalculation."""

    updated_count: int = 0
    newly_scored_count: int = 0
    failures: List[RecalculationFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


def _health_state(health: AccountHealth) -> Dict[str, Any]:
    return {
        "score": health.score,
        "risk_level": health.risk_level,
        "is_at_risk": health.is_at_risk,
        "engagement_score": health.engagement_score,
        "support_score": health.support_score,
        "relationship_score": health.relationship_score,
        "financial_score": health.financial_score,
        "adoption_score": health.adoption_score,
    }


def _calculation_state(calculation: HealthCalculation) -> Dict[str, Any]:
    return {
        "score": calculation.score,
        "risk_level": calculation.risk_level.value,
        "is_at_risk": calculation.is_at_risk,
        "engagement_score": calculation.components.engagement,
        "support_score": calculation.components.support,
        "relationship_score": calculation.components.relationship,
        "financial_score": calculation.components.financial,
        "adoption_score": calculation.components.adoption,
    }


class HealthRecalculationService:
    """Recompute and persist account health.

    Collect metrics, score, upsert the ``account_health`` row and write
    an audit entry in one transaction.  Follow-up effects (HEALTH_ALERT
    activity, HEALTH_DROP playbooks) join the same transaction.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        health_repo: AccountHealthRepository,
        audit_repo: AuditLogRepository,
        activity_repo: ActivityRepository,
        aggregator: HealthMetricAggregator,
        scorer: AccountHealthScorer,
        playbook_triggers: PlaybookTriggerService,
        cache: Optional[CacheService] = None,
    ) -> None:
        self._account_repo = account_repo
        self._health_repo = health_repo
        self._audit_repo = audit_repo
        self._activity_repo = activity_repo
        self._aggregator = aggregator
        self._scorer = scorer
        self._playbook_triggers = playbook_triggers
        self._cache = cache or CacheService()

    async def recalculate_health(
        self,
        org_id: str,
        account_id: UUID,
        actor_id: Optional[str] = None,
        actor_type: ActorType = ActorType.USER,
    ) -> AccountHealth:
        """Recalculate one account and commit.

        Raises ``AccountNotFoundError`` if the account is not in the tenant
        and ``PersistenceError`` if the row or its audit entry cannot be saved.
        """
        try:
            health, _ = await self._recalculate(org_id, account_id, actor_id, actor_type)
            await self._commit()
        except Exception:
            await self._health_repo.rollback()
            raise

        await self._invalidate_summary(org_id)
        return health

    async def recalculate_all_health(
        self,
        org_id: str,
        actor_id: Optional[str] = None,
        actor_type: ActorType = ActorType.USER,
    ) -> RecalculationSummary:
        """Recalculate every account in the tenant, one commit per account.

        A failing account is rolled back and recorded; the batch continues.
        """
        summary = RecalculationSummary()
        account_ids = await self._account_repo.list_ids(org_id)

        for account_id in account_ids:
            try:
                _, created = await self._recalculate(
                    org_id, account_id, actor_id, actor_type
                )
                await self._commit()
            except Exception as exc:
                await self._health_repo.rollback()
                logger.warning(
                    "Health recalculation failed for account %s",
                    account_id,
                    exc_info=True,
                )
                summary.failures.append(
                    RecalculationFailure(account_id=account_id, error=str(exc))
                )
                continue

            summary.updated_count += 1
            if created:
                summary.newly_scored_count += 1

        logger.info(
            "Recalculated health for org %s: %d updated (%d new), %d failed",
            org_id,
            summary.updated_count,
            summary.newly_scored_count,
            summary.failed_count,
        )
        await self._invalidate_summary(org_id)
        return summary

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _recalculate(
        self,
        org_id: str,
        account_id: UUID,
        actor_id: Optional[str],
        actor_type: ActorType,
    ) -> Tuple[AccountHealth, bool]:
        """Score and stage one account without committing.

        Returns the refreshed row and whether it was created by this run.
        """
        account = await self._account_repo.get_by_id(org_id, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")

        now = datetime.now(timezone.utc)
        metrics = await self._aggregator.collect(org_id, account_id, now)
        calculation = self._scorer.score(metrics, now)

        existing = await self._health_repo.get_by_account(org_id, account_id)
        # Snapshot before the upsert refreshes the same identity in place
        previous_state = _health_state(existing) if existing is not None else None

        try:
            health = await self._health_repo.upsert(
                org_id, account_id, calculation.to_row(), now
            )
            await self._audit_repo.record(
                org_id=org_id,
                action=AUDIT_ACTION_HEALTH_RECALCULATED,
                module=AUDIT_MODULE_ACCOUNT_HEALTH,
                actor_type=actor_type.value,
                actor_id=actor_id,
                record_id=str(health.health_id),
                previous_state=previous_state,
                new_state=_calculation_state(calculation),
                metadata={
                    "account_id": str(account_id),
                    "degraded_dimensions": [
                        d.value for d in calculation.degraded_dimensions
                    ],
                },
            )
            await self._audit_repo.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to persist health for account {account_id}"
            ) from exc

        if metrics.unavailable:
            logger.warning(
                "Account %s scored with degraded dimensions: %s",
                account_id,
                ", ".join(d.value for d in metrics.unavailable),
            )

        was_at_risk = bool(previous_state and previous_state["is_at_risk"])
        if calculation.is_at_risk and not was_at_risk:
            await self._record_health_alert(org_id, account_id, calculation)

        if previous_state is not None:
            await self._playbook_triggers.on_health_change(
                org_id, account, calculation.score, previous_state["score"]
            )

        return health, previous_state is None

    async def _record_health_alert(
        self, org_id: str, account_id: UUID, calculation: HealthCalculation
    ) -> None:
        reasons = "; ".join(r.message for r in calculation.risk_reasons)
        await self._activity_repo.create(
            org_id=org_id,
            account_id=account_id,
            type=ActivityType.HEALTH_ALERT.value,
            subject=f"Account at risk: health score {calculation.score}",
            description=reasons or None,
            workspace="cs",
            performed_by_type=ActorType.SYSTEM.value,
        )

    async def _commit(self) -> None:
        try:
            await self._health_repo.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to commit account health") from exc

    async def _invalidate_summary(self, org_id: str) -> None:
        await self._cache.delete(HEALTH_SUMMARY_CACHE_KEY.format(org_id=org_id))


def build_recalculation_service(
    db: AsyncSession, cache: Optional[CacheService] = None
) -> HealthRecalculationService:
    """Wire a :class:`HealthRecalculationService` onto a single session.

    Used outside the request cycle (background loop, seed script).
    """
    activity_repo = ActivityRepository(db)
    task_repo = TaskRepository(db)
    aggregator = HealthMetricAggregator(
        activity_repo=activity_repo,
        note_repo=NoteRepository(db),
        ticket_repo=TicketRepository(db),
        contact_repo=ContactRepository(db),
        task_repo=task_repo,
        financial_repo=FinancialRepository(db),
        usage_repo=UsageRepository(db),
    )
    return HealthRecalculationService(
        account_repo=AccountRepository(db),
        health_repo=AccountHealthRepository(db),
        audit_repo=AuditLogRepository(db),
        activity_repo=activity_repo,
        aggregator=aggregator,
        scorer=AccountHealthScorer.from_settings(),
        playbook_triggers=PlaybookTriggerService(
            playbook_repo=PlaybookRepository(db),
            task_repo=task_repo,
            activity_repo=activity_repo,
        ),
        cache=cache,
    )
