from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert

from app.core.constants import AT_RISK_LEVELS
from app.models.account import Account
from app.models.account_health import AccountHealth
from app.repositories.base import BaseRepository


class AccountHealthRepository(BaseRepository):
    """Encapsulates queries against the ``account_health`` table."""

    async def get_by_account(
        self, org_id: str, account_id: UUID
    ) -> Optional[AccountHealth]:
        """Return the health row for an account, or ``None`` if never scored."""
        result = await self._db.execute(
            select(AccountHealth).where(
                AccountHealth.org_id == org_id,
                AccountHealth.account_id == account_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        org_id: str,
        account_id: UUID,
        values: Dict[str, Any],
        calculated_at: datetime,
    ) -> AccountHealth:
        """Insert or overwrite the health row for *account_id*.

        A single ``INSERT … ON CONFLICT (account_id) DO UPDATE`` so the
        shift of the stored ``score`` into ``previous_score`` happens
        atomically with the overwrite.  A freshly created row has
        ``previous_score = NULL``.
        """
        row = {
            **values,
            "org_id": org_id,
            "account_id": account_id,
            "previous_score": None,
            "calculated_at": calculated_at,
            "updated_at": calculated_at,
        }
        stmt = insert(AccountHealth).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AccountHealth.account_id],
            set_={
                **{key: stmt.excluded[key] for key in values},
                "previous_score": AccountHealth.score,
                "calculated_at": stmt.excluded.calculated_at,
                "updated_at": stmt.excluded.updated_at,
            },
            where=AccountHealth.org_id == org_id,
        ).returning(AccountHealth)

        result = await self._db.execute(
            select(AccountHealth).from_statement(stmt),
            execution_options={"populate_existing": True},
        )
        return result.scalar_one()

    @staticmethod
    def _filters(
        org_id: str, risk_level: Optional[str], at_risk_only: bool
    ) -> List[Any]:
        filters: List[Any] = [AccountHealth.org_id == org_id]
        if risk_level:
            filters.append(AccountHealth.risk_level == risk_level)
        if at_risk_only:
            filters.append(AccountHealth.is_at_risk.is_(True))
        return filters

    async def list_with_accounts(
        self,
        org_id: str,
        risk_level: Optional[str] = None,
        at_risk_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Tuple[AccountHealth, str]]:
        """Return ``(health, account_name)`` pairs, lowest score first."""
        result = await self._db.execute(
            select(AccountHealth, Account.name)
            .join(Account, Account.account_id == AccountHealth.account_id)
            .where(*self._filters(org_id, risk_level, at_risk_only))
            .order_by(AccountHealth.score.asc(), AccountHealth.account_id)
            .offset(offset)
            .limit(limit)
        )
        return [(health, name) for health, name in result.all()]

    async def count(
        self,
        org_id: str,
        risk_level: Optional[str] = None,
        at_risk_only: bool = False,
    ) -> int:
        result = await self._db.execute(
            select(func.count())
            .select_from(AccountHealth)
            .where(*self._filters(org_id, risk_level, at_risk_only))
        )
        return result.scalar() or 0

    async def risk_level_counts(self, org_id: str) -> Dict[str, int]:
        """Return ``{risk_level: count}`` for the tenant."""
        result = await self._db.execute(
            select(AccountHealth.risk_level, func.count())
            .where(AccountHealth.org_id == org_id)
            .group_by(AccountHealth.risk_level)
        )
        return {level: count for level, count in result.all()}

    async def average_score(self, org_id: str) -> Optional[float]:
        result = await self._db.execute(
            select(func.avg(AccountHealth.score)).where(
                AccountHealth.org_id == org_id
            )
        )
        value = result.scalar()
        return float(value) if value is not None else None

    async def list_at_risk(
        self, org_id: str, risk_level: Optional[str] = None, limit: int = 10
    ) -> List[Tuple[AccountHealth, str]]:
        """Return at-risk accounts (HIGH/CRITICAL), lowest score first."""
        levels = [risk_level] if risk_level else sorted(AT_RISK_LEVELS)
        result = await self._db.execute(
            select(AccountHealth, Account.name)
            .join(Account, Account.account_id == AccountHealth.account_id)
            .where(
                AccountHealth.org_id == org_id,
                AccountHealth.is_at_risk.is_(True),
                AccountHealth.risk_level.in_(levels),
            )
            .order_by(AccountHealth.score.asc(), AccountHealth.account_id)
            .limit(limit)
        )
        return [(health, name) for health, name in result.all()]
