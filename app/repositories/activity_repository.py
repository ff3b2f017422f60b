from datetime import datetime
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import select, func

from app.models.activity import Activity
from app.repositories.base import BaseRepository


class ActivityRepository(BaseRepository):
    """Encapsulates queries against the ``activities`` table."""

    async def create(self, **kwargs: Any) -> Activity:
        """Insert a new account activity record."""
        activity = Activity(**kwargs)
        self._db.add(activity)
        return activity

    async def count_since(
        self, org_id: str, account_id: UUID, since: datetime
    ) -> int:
        """Return the number of activities performed at or after *since*."""
        result = await self._db.execute(
            select(func.count())
            .select_from(Activity)
            .where(
                Activity.org_id == org_id,
                Activity.account_id == account_id,
                Activity.performed_at >= since,
            )
        )
        return result.scalar() or 0

    async def get_last_performed_at(
        self,
        org_id: str,
        account_id: UUID,
        types: Iterable[str],
        since: Optional[datetime] = None,
    ) -> Optional[datetime]:
        """Return the most recent ``performed_at`` among the given activity types.

        When *since* is given, older activities are ignored.
        """
        query = select(func.max(Activity.performed_at)).where(
            Activity.org_id == org_id,
            Activity.account_id == account_id,
            Activity.type.in_(list(types)),
        )
        if since is not None:
            query = query.where(Activity.performed_at >= since)
        result = await self._db.execute(query)
        return result.scalar_one_or_none()
