"""In-memory implementation of UpgradeStore."""

import asyncio

from upshift.upgrade.models import UpgradePlan, UpgradeProgress
from upshift.upgrade.store import UpgradeStore


class InMemoryUpgradeStore(UpgradeStore):
    """In-memory implementation of UpgradeStore for testing and single-process use.

    Each instance is isolated, so tests can create one per case.
    """

    def __init__(self) -> None:
        self._plans: dict[str, UpgradePlan] = {}
        self._progress: dict[str, UpgradeProgress] = {}
        self._lock = asyncio.Lock()

    async def save_plan(self, plan: UpgradePlan) -> str:
        async with self._lock:
            self._plans[plan.id] = plan
        return plan.id

    async def get_plan(self, plan_id: str) -> UpgradePlan | None:
        return self._plans.get(plan_id)

    async def list_plans(self) -> list[UpgradePlan]:
        async with self._lock:
            plans = list(self._plans.values())
        return sorted(plans, key=lambda p: p.created_at)

    async def save_progress(self, progress: UpgradeProgress) -> str:
        async with self._lock:
            self._progress[progress.plan_id] = progress
        return progress.plan_id

    async def get_progress(self, plan_id: str) -> UpgradeProgress | None:
        return self._progress.get(plan_id)

    async def list_progress(self) -> list[UpgradeProgress]:
        async with self._lock:
            return list(self._progress.values())
