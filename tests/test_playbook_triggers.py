from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.schemas.common import ActivityType, PlaybookTrigger
from app.services.playbook_triggers import (
    PlaybookTriggerService,
    crossed_below,
    health_drop_threshold,
)

ORG_ID = "org_test"

STEPS = [
    {
        "order": 1,
        "day_offset": 0,
        "title": "Review health",
        "task_type": "REVIEW",
        "assignee_type": "CSM",
    },
    {
        "order": 2,
        "day_offset": 3,
        "title": "Call sponsor",
        "task_type": "CALL",
        "assignee_type": "SUPPORT",
    },
]


def make_playbook(threshold=None, steps=STEPS):
    return SimpleNamespace(
        playbook_id=uuid4(),
        name="At-risk recovery",
        trigger=PlaybookTrigger.HEALTH_DROP.value,
        trigger_config=(
            {"health_score_threshold": threshold} if threshold is not None else None
        ),
        steps=steps,
    )


@pytest.fixture
def account():
    return SimpleNamespace(account_id=uuid4(), assigned_to_id="csm_42")


@pytest.fixture
def build(repo_factory):
    def _build(playbooks, in_progress=False):
        run = SimpleNamespace(run_id=uuid4(), extra=None)
        playbook_repo = repo_factory(
            get_active_by_trigger=playbooks,
            has_run_in_progress=in_progress,
            create_run=run,
        )
        task_repo = repo_factory()
        task_repo.create = AsyncMock(
            side_effect=lambda **kwargs: SimpleNamespace(task_id=uuid4(), **kwargs)
        )
        activity_repo = repo_factory(create=None)
        service = PlaybookTriggerService(playbook_repo, task_repo, activity_repo)
        return service, playbook_repo, task_repo, activity_repo

    return _build


class TestThresholdHelpers:
    def test_default_threshold(self):
        assert health_drop_threshold(make_playbook()) == 40

    def test_configured_threshold(self):
        assert health_drop_threshold(make_playbook(threshold=55)) == 55

    def test_zero_threshold_is_kept(self):
        assert health_drop_threshold(make_playbook(threshold=0)) == 0

    def test_numeric_string_threshold_is_coerced(self):
        assert health_drop_threshold(make_playbook(threshold="35")) == 35

    @pytest.mark.parametrize("value", ["forty", [40], True])
    def test_invalid_threshold_raises_value_error(self, value):
        with pytest.raises(ValueError):
            health_drop_threshold(make_playbook(threshold=value))

    @pytest.mark.parametrize(
        "new,previous,expected",
        [(35, 45, True), (35, 40, True), (40, 45, False), (30, 35, False)],
    )
    def test_crossed_below(self, new, previous, expected):
        assert crossed_below(40, new, previous) is expected


class TestPlaybookTriggerService:
    @pytest.mark.asyncio
    async def test_score_increase_is_ignored(self, build, account):
        service, playbook_repo, _, _ = build([make_playbook()])

        runs = await service.on_health_change(ORG_ID, account, 60, 35)

        assert runs == []
        playbook_repo.get_active_by_trigger.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_score_is_ignored(self, build, account):
        service, playbook_repo, _, _ = build([make_playbook()])

        assert await service.on_health_change(ORG_ID, account, 10, None) == []
        playbook_repo.get_active_by_trigger.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_drop_across_threshold_starts_run(self, build, account):
        service, playbook_repo, task_repo, activity_repo = build([make_playbook()])
        before = datetime.now(timezone.utc)

        runs = await service.on_health_change(ORG_ID, account, 35, 52)

        assert len(runs) == 1
        run_kwargs = playbook_repo.create_run.await_args.kwargs
        assert run_kwargs["org_id"] == ORG_ID
        assert run_kwargs["total_steps"] == 2
        assert run_kwargs["status"] == "IN_PROGRESS"

        first, second = [c.kwargs for c in task_repo.create.await_args_list]
        assert first["title"] == "[At-risk recovery] Review health"
        assert first["assigned_to_id"] == "csm_42"
        assert second["assigned_to_id"] is None
        assert second["description"] == "Playbook step 2 of 2"
        assert second["due_date"] - first["due_date"] == timedelta(days=3)
        assert first["due_date"] >= before

        assert len(runs[0].extra["task_ids"]) == 2
        activity = activity_repo.create.await_args.kwargs
        assert activity["type"] == ActivityType.PLAYBOOK_STARTED.value
        assert activity["subject"] == "Playbook auto-started: At-risk recovery"

    @pytest.mark.asyncio
    async def test_drop_that_stays_above_threshold(self, build, account):
        service, playbook_repo, _, _ = build([make_playbook()])

        assert await service.on_health_change(ORG_ID, account, 45, 60) == []
        playbook_repo.create_run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_run_is_not_duplicated(self, build, account):
        service, playbook_repo, task_repo, _ = build([make_playbook()], in_progress=True)

        assert await service.on_health_change(ORG_ID, account, 20, 50) == []
        playbook_repo.create_run.assert_not_awaited()
        task_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, build, account):
        service, playbook_repo, _, _ = build([make_playbook()])
        playbook_repo.create_run = AsyncMock(side_effect=RuntimeError("db gone"))

        assert await service.on_health_change(ORG_ID, account, 20, 50) == []

    @pytest.mark.asyncio
    async def test_each_playbook_uses_its_own_threshold(self, build, account):
        service, playbook_repo, _, _ = build(
            [make_playbook(threshold=30), make_playbook(threshold=60)]
        )

        runs = await service.on_health_change(ORG_ID, account, 45, 65)

        assert len(runs) == 1
        assert playbook_repo.create_run.await_count == 1

    @pytest.mark.asyncio
    async def test_string_threshold_from_config_still_fires(self, build, account):
        service, playbook_repo, _, _ = build([make_playbook(threshold="40")])

        runs = await service.on_health_change(ORG_ID, account, 30, 60)

        assert len(runs) == 1
        playbook_repo.create_run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_malformed_threshold_skips_only_that_playbook(self, build, account):
        service, playbook_repo, _, _ = build(
            [make_playbook(threshold="not-a-number"), make_playbook()]
        )

        runs = await service.on_health_change(ORG_ID, account, 30, 60)

        assert len(runs) == 1
        assert playbook_repo.create_run.await_count == 1
