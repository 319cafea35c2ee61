"""Tests for ProgressTracker."""

from datetime import timedelta

import pytest

from tests.factories import StepFactory
from upshift.upgrade.models import ProgressStatus, UpgradePlan, utc_now
from upshift.upgrade.progress import ProgressTracker
from upshift.upgrade.stores.inmemory import InMemoryUpgradeStore


@pytest.fixture
def tracker() -> ProgressTracker:
    return ProgressTracker(InMemoryUpgradeStore())


@pytest.fixture
def plan() -> UpgradePlan:
    steps = [
        StepFactory.create("a", estimated_minutes=10),
        StepFactory.create("b", dependencies=["a"], estimated_minutes=20),
    ]
    return UpgradePlan(
        id="upgrade-v2-to-v3-1-abcdef",
        name="Upgrade from v2 to v3",
        from_version="v2",
        to_version="v3",
        steps=steps,
        total_estimated_minutes=30,
    )


class TestProgressTracker:
    """Tests for progress bookkeeping."""

    @staticmethod
    async def _status(tracker: ProgressTracker, plan: UpgradePlan) -> ProgressStatus:
        progress = await tracker.get_progress(plan.id)
        assert progress is not None
        return progress.status

    @pytest.mark.asyncio
    async def test_start(self, tracker: ProgressTracker, plan: UpgradePlan) -> None:
        """A fresh record is running at index zero with a projected finish."""
        before = utc_now()
        progress = await tracker.start(plan)

        assert progress.status == ProgressStatus.RUNNING
        assert progress.current_step_index == 0
        assert progress.total_steps == 2
        assert progress.progress_label == "0/2"
        assert progress.estimated_completion is not None
        assert progress.estimated_completion >= before + timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_record_completed_advances(
        self, tracker: ProgressTracker, plan: UpgradePlan
    ) -> None:
        await tracker.start(plan)

        progress = await tracker.record_completed(plan, plan.steps[0])

        assert progress.completed_steps == ["a"]
        assert progress.current_step_index == 1
        assert progress.estimated_completion is not None
        assert progress.estimated_completion <= utc_now() + timedelta(minutes=20, seconds=1)

    @pytest.mark.asyncio
    async def test_index_never_exceeds_total(
        self, tracker: ProgressTracker, plan: UpgradePlan
    ) -> None:
        await tracker.start(plan)
        for step in [*plan.steps, plan.steps[-1]]:
            progress = await tracker.record_completed(plan, step)

        assert progress.current_step_index == 2

    @pytest.mark.asyncio
    async def test_record_failed(self, tracker: ProgressTracker, plan: UpgradePlan) -> None:
        await tracker.start(plan)

        progress = await tracker.record_failed(plan.id, "a")

        assert progress.status == ProgressStatus.FAILED
        assert progress.failed_steps == ["a"]
        assert progress.finished_at is not None
        assert progress.estimated_completion is None

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, tracker: ProgressTracker, plan: UpgradePlan) -> None:
        await tracker.start(plan)

        assert await tracker.pause(plan.id)
        assert await self._status(tracker, plan) == ProgressStatus.PAUSED
        assert not await tracker.pause(plan.id)

        assert await tracker.resume(plan.id)
        assert await self._status(tracker, plan) == ProgressStatus.RUNNING
        assert not await tracker.resume(plan.id)

    @pytest.mark.asyncio
    async def test_pause_unknown_plan(self, tracker: ProgressTracker) -> None:
        assert not await tracker.pause("upgrade-missing")
        assert not await tracker.resume("upgrade-missing")

    @pytest.mark.asyncio
    async def test_cannot_pause_finished_run(
        self, tracker: ProgressTracker, plan: UpgradePlan
    ) -> None:
        await tracker.start(plan)
        await tracker.mark_completed(plan.id)

        assert not await tracker.pause(plan.id)

    @pytest.mark.asyncio
    async def test_wait_until_runnable_returns_when_running(
        self, tracker: ProgressTracker, plan: UpgradePlan
    ) -> None:
        await tracker.start(plan)

        progress = await tracker.wait_until_runnable(plan.id)

        assert progress.status == ProgressStatus.RUNNING

    @pytest.mark.asyncio
    async def test_record_failed_releases_paused_waiter(
        self, tracker: ProgressTracker, plan: UpgradePlan
    ) -> None:
        """A failed run stops blocking the executor even if it was paused."""
        await tracker.start(plan)
        await tracker.pause(plan.id)
        await tracker.record_failed(plan.id)

        progress = await tracker.wait_until_runnable(plan.id)

        assert progress.status == ProgressStatus.FAILED
