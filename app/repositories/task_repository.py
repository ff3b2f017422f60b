from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, func

from app.models.task import Task
from app.repositories.base import BaseRepository


class TaskRepository(BaseRepository):
    """Encapsulates queries against the ``tasks`` table."""

    async def create(self, **kwargs: Any) -> Task:
        """Insert a new task."""
        task = Task(**kwargs)
        self._db.add(task)
        return task

    async def count_created_since(
        self, org_id: str, account_id: UUID, since: datetime
    ) -> int:
        """Count tasks created for the account at or after *since*."""
        result = await self._db.execute(
            select(func.count())
            .select_from(Task)
            .where(
                Task.org_id == org_id,
                Task.account_id == account_id,
                Task.created_at >= since,
            )
        )
        return result.scalar() or 0
