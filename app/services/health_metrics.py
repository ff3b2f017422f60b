import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, TypeVar
from uuid import UUID

from app.core.constants import (
    CONTACT_ACTIVITY_TYPES,
    ENGAGEMENT_LOOKBACK_DAYS,
    PAYMENT_LOOKBACK_DAYS,
    RECENT_ACTIVITY_DAYS,
    RECENT_TASK_DAYS,
    SUPPORT_LOOKBACK_DAYS,
    USAGE_LOOKBACK_DAYS,
)
from app.core.exceptions import DataUnavailableError
from app.repositories.activity_repository import ActivityRepository
from app.repositories.base import BaseRepository
from app.repositories.contact_repository import ContactRepository
from app.repositories.financial_repository import FinancialRepository
from app.repositories.note_repository import NoteRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.ticket_repository import TicketRepository
from app.repositories.usage_repository import UsageRepository
from app.schemas.common import ActivityType, HealthDimension, TicketPriority

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Per-dimension raw signals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngagementSignals:
    recent_activity_count: int
    note_count: int
    last_contact_at: Optional[datetime]
    last_meeting_at: Optional[datetime]


@dataclass(frozen=True)
class SupportSignals:
    open_ticket_count: int
    urgent_open_count: int
    high_open_count: int
    average_csat: Optional[float]


@dataclass(frozen=True)
class RelationshipSignals:
    contact_count: int
    has_primary_contact: bool
    recent_task_count: int
    last_meeting_at: Optional[datetime]


@dataclass(frozen=True)
class FinancialSignals:
    active_renewal_probability: Optional[int]
    churned_renewal_count: int
    overdue_invoice_count: int
    recent_paid_invoice_count: int


@dataclass(frozen=True)
class AdoptionSignals:
    """Product usage signals.

    ``has_usage_data`` is ``False`` when the product has never reported
    usage for the account; adoption then scores neutral.
    """

    has_usage_data: bool
    last_login_at: Optional[datetime]
    active_feature_count: int
    usage_event_count: int


@dataclass
class AccountMetrics:
    """Everything the scorer needs for one account.

    A dimension whose source could not be read is ``None`` and listed
    in ``unavailable``.
    """

    engagement: Optional[EngagementSignals] = None
    support: Optional[SupportSignals] = None
    relationship: Optional[RelationshipSignals] = None
    financial: Optional[FinancialSignals] = None
    adoption: Optional[AdoptionSignals] = None
    unavailable: List[HealthDimension] = field(default_factory=list)

    @property
    def last_contact_at(self) -> Optional[datetime]:
        return self.engagement.last_contact_at if self.engagement else None

    @property
    def last_meeting_at(self) -> Optional[datetime]:
        return self.engagement.last_meeting_at if self.engagement else None

    @property
    def last_login_at(self) -> Optional[datetime]:
        return self.adoption.last_login_at if self.adoption else None

    @property
    def open_ticket_count(self) -> int:
        return self.support.open_ticket_count if self.support else 0


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class HealthMetricAggregator:
    """Gather per-account raw signals for health scoring.

    Each dimension is fetched independently.  When a source fails the
    dimension is degraded (signals ``None``) instead of failing the
    whole computation; the scorer then treats it as neutral.
    Tenant isolation: every query receives the caller's ``org_id``.
    """

    def __init__(
        self,
        activity_repo: ActivityRepository,
        note_repo: NoteRepository,
        ticket_repo: TicketRepository,
        contact_repo: ContactRepository,
        task_repo: TaskRepository,
        financial_repo: FinancialRepository,
        usage_repo: UsageRepository,
    ) -> None:
        self._activity_repo = activity_repo
        self._note_repo = note_repo
        self._ticket_repo = ticket_repo
        self._contact_repo = contact_repo
        self._task_repo = task_repo
        self._financial_repo = financial_repo
        self._usage_repo = usage_repo

    async def collect(
        self, org_id: str, account_id: UUID, now: datetime
    ) -> AccountMetrics:
        metrics = AccountMetrics()
        collectors = (
            (HealthDimension.engagement, self._activity_repo, self._collect_engagement),
            (HealthDimension.support, self._ticket_repo, self._collect_support),
            (HealthDimension.relationship, self._contact_repo, self._collect_relationship),
            (HealthDimension.financial, self._financial_repo, self._collect_financial),
            (HealthDimension.adoption, self._usage_repo, self._collect_adoption),
        )
        for dimension, repo, collector in collectors:
            signals = await self._guarded(
                dimension, repo, lambda c=collector: c(org_id, account_id, now)
            )
            if signals is None:
                metrics.unavailable.append(dimension)
                logger.warning(
                    "Health dimension %s degraded to neutral for account %s",
                    dimension.value,
                    account_id,
                )
            setattr(metrics, dimension.value, signals)
        return metrics

    @staticmethod
    async def _guarded(
        dimension: HealthDimension,
        repo: BaseRepository,
        fetch: Callable[[], Awaitable[T]],
    ) -> Optional[T]:
        """Run *fetch* inside a source SAVEPOINT; an unreachable source gives ``None``.

        The SAVEPOINT keeps a failed query from aborting the surrounding
        transaction, so later dimensions and the upsert still run.  Any
        other exception propagates and fails the account.
        """
        try:
            async with repo.source_savepoint(dimension.value):
                return await fetch()
        except DataUnavailableError as exc:
            logger.warning(
                "Metric source unavailable for %s: %s",
                dimension.value,
                exc.detail,
                exc_info=exc.__cause__ is not None,
            )
            return None

    async def _collect_engagement(
        self, org_id: str, account_id: UUID, now: datetime
    ) -> EngagementSignals:
        recent_since = now - timedelta(days=RECENT_ACTIVITY_DAYS)
        lookback_since = now - timedelta(days=ENGAGEMENT_LOOKBACK_DAYS)

        recent_activity_count = await self._activity_repo.count_since(
            org_id, account_id, recent_since
        )
        note_count = await self._note_repo.count_since(
            org_id, account_id, lookback_since
        )
        last_contact_at = await self._activity_repo.get_last_performed_at(
            org_id, account_id, CONTACT_ACTIVITY_TYPES
        )
        last_meeting_at = await self._activity_repo.get_last_performed_at(
            org_id, account_id, [ActivityType.MEETING.value]
        )
        return EngagementSignals(
            recent_activity_count=recent_activity_count,
            note_count=note_count,
            last_contact_at=last_contact_at,
            last_meeting_at=last_meeting_at,
        )

    async def _collect_support(
        self, org_id: str, account_id: UUID, now: datetime
    ) -> SupportSignals:
        open_by_priority = await self._ticket_repo.open_counts_by_priority(
            org_id, account_id
        )
        ratings = await self._ticket_repo.satisfaction_scores_since(
            org_id, account_id, now - timedelta(days=SUPPORT_LOOKBACK_DAYS)
        )
        average_csat = sum(ratings) / len(ratings) if ratings else None
        return SupportSignals(
            open_ticket_count=sum(open_by_priority.values()),
            urgent_open_count=open_by_priority.get(TicketPriority.URGENT.value, 0),
            high_open_count=open_by_priority.get(TicketPriority.HIGH.value, 0),
            average_csat=average_csat,
        )

    async def _collect_relationship(
        self, org_id: str, account_id: UUID, now: datetime
    ) -> RelationshipSignals:
        contact_count, has_primary = await self._contact_repo.count_with_primary(
            org_id, account_id
        )
        recent_task_count = await self._task_repo.count_created_since(
            org_id, account_id, now - timedelta(days=RECENT_TASK_DAYS)
        )
        last_meeting_at = await self._activity_repo.get_last_performed_at(
            org_id, account_id, [ActivityType.MEETING.value]
        )
        return RelationshipSignals(
            contact_count=contact_count,
            has_primary_contact=has_primary,
            recent_task_count=recent_task_count,
            last_meeting_at=last_meeting_at,
        )

    async def _collect_financial(
        self, org_id: str, account_id: UUID, now: datetime
    ) -> FinancialSignals:
        return FinancialSignals(
            active_renewal_probability=(
                await self._financial_repo.get_active_renewal_probability(
                    org_id, account_id
                )
            ),
            churned_renewal_count=await self._financial_repo.count_churned_renewals(
                org_id, account_id
            ),
            overdue_invoice_count=await self._financial_repo.count_overdue_invoices(
                org_id, account_id, now
            ),
            recent_paid_invoice_count=(
                await self._financial_repo.count_paid_invoices_since(
                    org_id, account_id, now - timedelta(days=PAYMENT_LOOKBACK_DAYS)
                )
            ),
        )

    async def _collect_adoption(
        self, org_id: str, account_id: UUID, now: datetime
    ) -> AdoptionSignals:
        if not await self._usage_repo.has_any_events(org_id, account_id):
            return AdoptionSignals(
                has_usage_data=False,
                last_login_at=None,
                active_feature_count=0,
                usage_event_count=0,
            )
        last_login_at = await self._usage_repo.get_last_login_at(org_id, account_id)
        event_count, feature_count = await self._usage_repo.usage_since(
            org_id, account_id, now - timedelta(days=USAGE_LOOKBACK_DAYS)
        )
        return AdoptionSignals(
            has_usage_data=True,
            last_login_at=last_login_at,
            active_feature_count=feature_count,
            usage_event_count=event_count,
        )
