from datetime import datetime
from uuid import UUID

from sqlalchemy import select, func

from app.models.note import Note
from app.repositories.base import BaseRepository


class NoteRepository(BaseRepository):
    """Encapsulates queries against the ``notes`` table."""

    async def count_since(
        self, org_id: str, account_id: UUID, since: datetime
    ) -> int:
        result = await self._db.execute(
            select(func.count())
            .select_from(Note)
            .where(
                Note.org_id == org_id,
                Note.account_id == account_id,
                Note.created_at >= since,
            )
        )
        return result.scalar() or 0
