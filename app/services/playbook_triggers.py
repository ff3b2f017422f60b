import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.core.constants import DEFAULT_HEALTH_DROP_THRESHOLD
from app.models.account import Account
from app.models.playbook import Playbook, PlaybookRun
from app.repositories.activity_repository import ActivityRepository
from app.repositories.playbook_repository import PlaybookRepository
from app.repositories.task_repository import TaskRepository
from app.schemas.common import (
    ActivityType,
    ActorType,
    PlaybookRunStatus,
    PlaybookTrigger,
)

logger = logging.getLogger(__name__)

# Step assignee types that resolve to the account owner
_OWNER_ASSIGNEE_TYPES = ("CSM", "ACCOUNT_OWNER")


def health_drop_threshold(playbook: Playbook) -> int:
    """Return the playbook's ``health_score_threshold`` (default 40).

    Raises ``ValueError`` when the configured value is not an integer score.
    """
    config = playbook.trigger_config or {}
    value = config.get("health_score_threshold")
    if value is None:
        return DEFAULT_HEALTH_DROP_THRESHOLD
    if isinstance(value, bool):
        raise ValueError(f"Invalid health_score_threshold: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid health_score_threshold: {value!r}") from exc


def crossed_below(threshold: int, new_score: int, previous_score: int) -> bool:
    """True when the score moved from ``>= threshold`` to ``< threshold``."""
    return new_score < threshold <= previous_score


class PlaybookTriggerService:
    """Start HEALTH_DROP playbooks when an account's score falls past a threshold.

    Runs inside the caller's transaction under a SAVEPOINT; a failure to
    start a playbook is logged and never propagated to the recalculation.
    """

    def __init__(
        self,
        playbook_repo: PlaybookRepository,
        task_repo: TaskRepository,
        activity_repo: ActivityRepository,
    ) -> None:
        self._playbook_repo = playbook_repo
        self._task_repo = task_repo
        self._activity_repo = activity_repo

    async def on_health_change(
        self,
        org_id: str,
        account: Account,
        new_score: int,
        previous_score: Optional[int],
    ) -> List[PlaybookRun]:
        """Evaluate every active HEALTH_DROP playbook; return the runs started."""
        if previous_score is None or new_score >= previous_score:
            return []

        try:
            playbooks = await self._playbook_repo.get_active_by_trigger(
                org_id, PlaybookTrigger.HEALTH_DROP.value
            )
        except Exception:
            logger.warning(
                "Could not load HEALTH_DROP playbooks for org %s",
                org_id,
                exc_info=True,
            )
            return []

        started: List[PlaybookRun] = []
        for playbook in playbooks:
            try:
                threshold = health_drop_threshold(playbook)
            except ValueError:
                logger.warning(
                    "Skipping playbook %s with invalid trigger_config %r",
                    playbook.playbook_id,
                    playbook.trigger_config,
                )
                continue
            if not crossed_below(threshold, new_score, previous_score):
                continue
            try:
                async with self._playbook_repo.savepoint():
                    run = await self._start(org_id, playbook, account)
            except Exception:
                logger.warning(
                    "Failed to start playbook %s for account %s",
                    playbook.playbook_id,
                    account.account_id,
                    exc_info=True,
                )
                continue
            if run is not None:
                started.append(run)
        return started

    async def _start(
        self, org_id: str, playbook: Playbook, account: Account
    ) -> Optional[PlaybookRun]:
        if await self._playbook_repo.has_run_in_progress(
            playbook.playbook_id, account.account_id
        ):
            logger.info(
                "Playbook %s already running for account %s",
                playbook.playbook_id,
                account.account_id,
            )
            return None

        steps: List[Dict[str, Any]] = list(playbook.steps or [])
        run = await self._playbook_repo.create_run(
            org_id=org_id,
            playbook_id=playbook.playbook_id,
            account_id=account.account_id,
            status=PlaybookRunStatus.IN_PROGRESS.value,
            current_step=1,
            total_steps=len(steps),
            started_by_id=ActorType.SYSTEM.value,
            extra={"task_ids": [], "trigger": playbook.trigger},
        )

        started_at = datetime.now(timezone.utc)
        tasks = []
        for index, step in enumerate(steps, start=1):
            assigned_to_id = (
                account.assigned_to_id
                if step.get("assignee_type") in _OWNER_ASSIGNEE_TYPES
                else None
            )
            order = step.get("order", index)
            tasks.append(
                await self._task_repo.create(
                    org_id=org_id,
                    account_id=account.account_id,
                    title=f"[{playbook.name}] {step.get('title', f'Step {order}')}",
                    description=step.get("description")
                    or f"Playbook step {order} of {len(steps)}",
                    due_date=started_at + timedelta(days=step.get("day_offset", 0)),
                    priority="MEDIUM",
                    status="PENDING",
                    task_type=step.get("task_type"),
                    workspace="cs",
                    assigned_to_id=assigned_to_id,
                    created_by_id=ActorType.SYSTEM.value,
                    created_by_type=ActorType.SYSTEM.value,
                )
            )
        await self._task_repo.flush()
        run.extra = {
            "task_ids": [str(task.task_id) for task in tasks],
            "trigger": playbook.trigger,
        }

        await self._activity_repo.create(
            org_id=org_id,
            account_id=account.account_id,
            type=ActivityType.PLAYBOOK_STARTED.value,
            subject=f"Playbook auto-started: {playbook.name}",
            description=f"Triggered by {playbook.trigger} with {len(steps)} steps",
            workspace="cs",
            performed_by_id=ActorType.SYSTEM.value,
            performed_by_type=ActorType.SYSTEM.value,
        )
        logger.info(
            "Started playbook %s for account %s (%d tasks)",
            playbook.playbook_id,
            account.account_id,
            len(tasks),
        )
        return run
