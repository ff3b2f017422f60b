from typing import Any, List
from uuid import UUID

from sqlalchemy import select

from app.models.playbook import Playbook, PlaybookRun
from app.repositories.base import BaseRepository
from app.schemas.common import PlaybookRunStatus


class PlaybookRepository(BaseRepository):
    """Encapsulates queries against ``playbooks`` and ``playbook_runs``."""

    async def get_active_by_trigger(self, org_id: str, trigger: str) -> List[Playbook]:
        result = await self._db.execute(
            select(Playbook)
            .where(
                Playbook.org_id == org_id,
                Playbook.trigger == trigger,
                Playbook.is_active.is_(True),
            )
            .order_by(Playbook.created_at)
        )
        return list(result.scalars().all())

    async def has_run_in_progress(self, playbook_id: UUID, account_id: UUID) -> bool:
        result = await self._db.execute(
            select(PlaybookRun.run_id)
            .where(
                PlaybookRun.playbook_id == playbook_id,
                PlaybookRun.account_id == account_id,
                PlaybookRun.status == PlaybookRunStatus.IN_PROGRESS.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def create_run(self, **kwargs: Any) -> PlaybookRun:
        run = PlaybookRun(**kwargs)
        self._db.add(run)
        await self._db.flush()
        return run
