from datetime import datetime
from typing import Dict, List
from uuid import UUID

from sqlalchemy import select, func

from app.core.constants import OPEN_TICKET_STATUSES, RESOLVED_TICKET_STATUSES
from app.models.ticket import Ticket
from app.repositories.base import BaseRepository


class TicketRepository(BaseRepository):
    """Encapsulates queries against the ``tickets`` table."""

    async def open_counts_by_priority(
        self, org_id: str, account_id: UUID
    ) -> Dict[str, int]:
        """Return ``{priority: count}`` for currently open tickets."""
        result = await self._db.execute(
            select(Ticket.priority, func.count())
            .where(
                Ticket.org_id == org_id,
                Ticket.account_id == account_id,
                Ticket.status.in_(sorted(OPEN_TICKET_STATUSES)),
            )
            .group_by(Ticket.priority)
        )
        return {priority: count for priority, count in result.all()}

    async def satisfaction_scores_since(
        self, org_id: str, account_id: UUID, since: datetime
    ) -> List[int]:
        """Return CSAT ratings of tickets resolved at or after *since*."""
        result = await self._db.execute(
            select(Ticket.satisfaction_score).where(
                Ticket.org_id == org_id,
                Ticket.account_id == account_id,
                Ticket.status.in_(sorted(RESOLVED_TICKET_STATUSES)),
                Ticket.resolved_at >= since,
                Ticket.satisfaction_score.is_not(None),
            )
        )
        return list(result.scalars().all())
