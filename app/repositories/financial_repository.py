from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, or_, and_

from app.core.constants import UNPAID_INVOICE_STATUSES
from app.models.invoice import Invoice
from app.models.renewal import Renewal
from app.repositories.base import BaseRepository
from app.schemas.common import InvoiceStatus, RenewalStatus


class FinancialRepository(BaseRepository):
    """Encapsulates queries against the ``renewals`` and ``invoices`` tables."""

    async def get_active_renewal_probability(
        self, org_id: str, account_id: UUID
    ) -> Optional[int]:
        """Return the probability of the latest open renewal, or ``None``."""
        result = await self._db.execute(
            select(Renewal.probability)
            .where(
                Renewal.org_id == org_id,
                Renewal.account_id == account_id,
                Renewal.status.in_(
                    [RenewalStatus.UPCOMING.value, RenewalStatus.IN_PROGRESS.value]
                ),
            )
            .order_by(Renewal.end_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_churned_renewals(self, org_id: str, account_id: UUID) -> int:
        result = await self._db.execute(
            select(func.count())
            .select_from(Renewal)
            .where(
                Renewal.org_id == org_id,
                Renewal.account_id == account_id,
                Renewal.status == RenewalStatus.CHURNED.value,
            )
        )
        return result.scalar() or 0

    async def count_overdue_invoices(
        self, org_id: str, account_id: UUID, now: datetime
    ) -> int:
        """Count invoices marked OVERDUE or still unpaid past their due date."""
        result = await self._db.execute(
            select(func.count())
            .select_from(Invoice)
            .where(
                Invoice.org_id == org_id,
                Invoice.account_id == account_id,
                or_(
                    Invoice.status == InvoiceStatus.OVERDUE.value,
                    and_(
                        Invoice.status.in_(sorted(UNPAID_INVOICE_STATUSES)),
                        Invoice.due_date < now,
                    ),
                ),
            )
        )
        return result.scalar() or 0

    async def count_paid_invoices_since(
        self, org_id: str, account_id: UUID, since: datetime
    ) -> int:
        result = await self._db.execute(
            select(func.count())
            .select_from(Invoice)
            .where(
                Invoice.org_id == org_id,
                Invoice.account_id == account_id,
                Invoice.status == InvoiceStatus.PAID.value,
                Invoice.paid_at >= since,
            )
        )
        return result.scalar() or 0
