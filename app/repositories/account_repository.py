from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func

from app.models.account import Account
from app.models.account_health import AccountHealth
from app.repositories.base import BaseRepository


class AccountRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``accounts`` table."""

    async def get_by_id(self, org_id: str, account_id: UUID) -> Optional[Account]:
        """Return a single account within the tenant, or ``None``."""
        result = await self._db.execute(
            select(Account).where(
                Account.org_id == org_id,
                Account.account_id == account_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_ids(self, org_id: str) -> List[UUID]:
        """Return every account id in the tenant, oldest first."""
        result = await self._db.execute(
            select(Account.account_id)
            .where(Account.org_id == org_id)
            .order_by(Account.created_at.asc(), Account.account_id)
        )
        return list(result.scalars().all())

    async def list_org_ids(self) -> List[str]:
        """Return every tenant that owns at least one account."""
        result = await self._db.execute(
            select(Account.org_id).distinct().order_by(Account.org_id)
        )
        return list(result.scalars().all())

    async def count_without_health(self, org_id: str) -> int:
        """Count accounts that have never been scored."""
        result = await self._db.execute(
            select(func.count())
            .select_from(Account)
            .outerjoin(AccountHealth, AccountHealth.account_id == Account.account_id)
            .where(Account.org_id == org_id, AccountHealth.health_id.is_(None))
        )
        return result.scalar() or 0
