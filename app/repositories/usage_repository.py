from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func

from app.models.usage_event import UsageEvent
from app.repositories.base import BaseRepository
from app.schemas.common import UsageEventType


class UsageRepository(BaseRepository):
    """Encapsulates queries against the ``usage_events`` table."""

    async def has_any_events(self, org_id: str, account_id: UUID) -> bool:
        """Return ``True`` if the product has ever reported usage for the account."""
        result = await self._db.execute(
            select(UsageEvent.event_id)
            .where(UsageEvent.org_id == org_id, UsageEvent.account_id == account_id)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_last_login_at(
        self, org_id: str, account_id: UUID
    ) -> Optional[datetime]:
        result = await self._db.execute(
            select(func.max(UsageEvent.occurred_at)).where(
                UsageEvent.org_id == org_id,
                UsageEvent.account_id == account_id,
                UsageEvent.event_type == UsageEventType.LOGIN.value,
            )
        )
        return result.scalar_one_or_none()

    async def usage_since(
        self, org_id: str, account_id: UUID, since: datetime
    ) -> Tuple[int, int]:
        """Return ``(event_count, distinct_feature_count)`` since *since*."""
        result = await self._db.execute(
            select(
                func.count(UsageEvent.event_id),
                func.count(func.distinct(UsageEvent.feature)),
            ).where(
                UsageEvent.org_id == org_id,
                UsageEvent.account_id == account_id,
                UsageEvent.occurred_at >= since,
            )
        )
        events, features = result.one()
        return int(events or 0), int(features or 0)
