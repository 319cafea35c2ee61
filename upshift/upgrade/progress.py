"""Progress tracker: the live, mutable execution state of plans.

All mutations of a given plan's progress go through a per-plan asyncio.Lock,
so pause/resume from API callers and executor updates are linearized. The
executor parks between steps on a per-plan event that resume sets.
"""

import asyncio
from datetime import timedelta

from upshift.observability.logging import get_logger
from upshift.upgrade.models import (
    ProgressStatus,
    UpgradePlan,
    UpgradeProgress,
    UpgradeStep,
    utc_now,
)
from upshift.upgrade.store import UpgradeStore

logger = get_logger(__name__)


def _remaining_minutes(plan: UpgradePlan, from_index: int) -> float:
    return sum(step.estimated_minutes for step in plan.steps[from_index:])


class ProgressTracker:
    """Owns progress records and the pause/resume protocol."""

    def __init__(self, store: UpgradeStore) -> None:
        self._store = store
        self._locks: dict[str, asyncio.Lock] = {}
        self._resume_signals: dict[str, asyncio.Event] = {}

    def lock_for(self, plan_id: str) -> asyncio.Lock:
        """Per-plan mutex serializing every mutation of that plan's progress."""
        return self._locks.setdefault(plan_id, asyncio.Lock())

    def _signal_for(self, plan_id: str) -> asyncio.Event:
        if plan_id not in self._resume_signals:
            signal = asyncio.Event()
            signal.set()
            self._resume_signals[plan_id] = signal
        return self._resume_signals[plan_id]

    async def get_progress(self, plan_id: str) -> UpgradeProgress | None:
        return await self._store.get_progress(plan_id)

    async def start(self, plan: UpgradePlan) -> UpgradeProgress:
        """Create a fresh running progress record for a plan."""
        async with self.lock_for(plan.id):
            now = utc_now()
            progress = UpgradeProgress(
                plan_id=plan.id,
                total_steps=len(plan.steps),
                start_time=now,
                estimated_completion=now + timedelta(minutes=plan.total_estimated_minutes),
                status=ProgressStatus.RUNNING,
            )
            self._signal_for(plan.id).set()
            await self._store.save_progress(progress)
        return progress

    async def pause(self, plan_id: str) -> bool:
        """Pause before the next step. Returns False unless the plan is running."""
        async with self.lock_for(plan_id):
            progress = await self._store.get_progress(plan_id)
            if progress is None or progress.status != ProgressStatus.RUNNING:
                return False
            progress.status = ProgressStatus.PAUSED
            self._signal_for(plan_id).clear()
            await self._store.save_progress(progress)

        logger.info("upgrade_paused", plan_id=plan_id, progress=progress.progress_label)
        return True

    async def resume(self, plan_id: str) -> bool:
        """Resume a paused plan. Returns False unless the plan is paused."""
        async with self.lock_for(plan_id):
            progress = await self._store.get_progress(plan_id)
            if progress is None or progress.status != ProgressStatus.PAUSED:
                return False
            progress.status = ProgressStatus.RUNNING
            await self._store.save_progress(progress)
            self._signal_for(plan_id).set()

        logger.info("upgrade_resumed", plan_id=plan_id, progress=progress.progress_label)
        return True

    async def wait_until_runnable(self, plan_id: str) -> UpgradeProgress:
        """Block while the plan is paused and return the current progress."""
        signal = self._signal_for(plan_id)
        while True:
            await signal.wait()
            async with self.lock_for(plan_id):
                progress = await self._store.get_progress(plan_id)
                if progress is None:
                    raise LookupError(f"No progress recorded for plan {plan_id}")
                if progress.status != ProgressStatus.PAUSED:
                    return progress

    async def record_completed(self, plan: UpgradePlan, step: UpgradeStep) -> UpgradeProgress:
        """Append a completed step and advance the index."""
        async with self.lock_for(plan.id):
            progress = await self._require(plan.id)
            progress.completed_steps = [*progress.completed_steps, step.id]
            progress.current_step_index = min(progress.current_step_index + 1, progress.total_steps)
            progress.estimated_completion = utc_now() + timedelta(
                minutes=_remaining_minutes(plan, progress.current_step_index)
            )
            await self._store.save_progress(progress)
        return progress

    async def record_failed(self, plan_id: str, step_id: str | None = None) -> UpgradeProgress:
        """Mark the run failed, recording the failing step if one ran."""
        async with self.lock_for(plan_id):
            progress = await self._require(plan_id)
            if step_id is not None:
                progress.failed_steps = [*progress.failed_steps, step_id]
            progress.status = ProgressStatus.FAILED
            progress.finished_at = utc_now()
            progress.estimated_completion = None
            self._signal_for(plan_id).set()
            await self._store.save_progress(progress)
        return progress

    async def mark_completed(self, plan_id: str) -> UpgradeProgress:
        async with self.lock_for(plan_id):
            progress = await self._require(plan_id)
            progress.status = ProgressStatus.COMPLETED
            progress.finished_at = utc_now()
            progress.estimated_completion = progress.finished_at
            await self._store.save_progress(progress)
        return progress

    async def _require(self, plan_id: str) -> UpgradeProgress:
        progress = await self._store.get_progress(plan_id)
        if progress is None:
            raise LookupError(f"No progress recorded for plan {plan_id}")
        return progress
