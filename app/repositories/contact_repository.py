from typing import Tuple
from uuid import UUID

from sqlalchemy import select, func, case

from app.models.contact import Contact
from app.repositories.base import BaseRepository


class ContactRepository(BaseRepository):
    """Encapsulates queries against the ``contacts`` table."""

    async def count_with_primary(
        self, org_id: str, account_id: UUID
    ) -> Tuple[int, bool]:
        """Return ``(contact_count, has_primary_contact)`` for an account."""
        result = await self._db.execute(
            select(
                func.count(Contact.contact_id),
                func.coalesce(
                    func.sum(case((Contact.is_primary.is_(True), 1), else_=0)), 0
                ),
            ).where(Contact.org_id == org_id, Contact.account_id == account_id)
        )
        total, primaries = result.one()
        return int(total or 0), bool(primaries)
