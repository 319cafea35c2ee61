"""UpgradeService: the caller-facing surface of the orchestration core."""

import asyncio

from upshift.config.models.upgrade import UpgradeConfig
from upshift.upgrade.audit import AuditSink, best_effort
from upshift.upgrade.builder import PlanBuilder
from upshift.upgrade.catalog import PlanCatalog, build_default_catalog
from upshift.upgrade.compatibility import CompatibilityAnalyzer
from upshift.upgrade.errors import PlanNotFoundError
from upshift.upgrade.executor import UpgradeExecutor
from upshift.upgrade.guard import UpgradeGuard
from upshift.upgrade.models import (
    CompatibilityReport,
    GuardDecision,
    PlanResult,
    RollbackResult,
    UpgradePlan,
    UpgradeProgress,
    UpgradeStep,
)
from upshift.upgrade.progress import ProgressTracker
from upshift.upgrade.rollback import RollbackCoordinator
from upshift.upgrade.store import UpgradeStore
from upshift.upgrade.stores.inmemory import InMemoryUpgradeStore


class UpgradeService:
    """Wires the builder, executor, tracker, rollback coordinator and guard
    around one store.

    Create one per process (or per test); nothing here is global.
    """

    def __init__(
        self,
        store: UpgradeStore | None = None,
        catalog: PlanCatalog | None = None,
        config: UpgradeConfig | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self.config = config or UpgradeConfig()
        self.store = store or InMemoryUpgradeStore()
        self.catalog = catalog or build_default_catalog()
        audit = best_effort(audit_sink if self.config.audit.enabled else None)

        self.tracker = ProgressTracker(self.store)
        self.builder = PlanBuilder(self.catalog, self.store, self.config, audit)
        self.rollback_coordinator = RollbackCoordinator(self.store, self.tracker, audit)
        self.executor = UpgradeExecutor(self.store, self.tracker, self.rollback_coordinator, audit)
        self.guard = UpgradeGuard(self.store, self.config.guard)
        self.analyzer = CompatibilityAnalyzer(self.catalog)

    async def create_plan(
        self,
        from_version: str,
        to_version: str,
        steps: list[UpgradeStep] | None = None,
    ) -> UpgradePlan:
        return await self.builder.build_plan(from_version, to_version, steps)

    async def execute_plan(self, plan_id: str) -> PlanResult:
        return await self.executor.execute_plan(plan_id)

    def start_plan(self, plan_id: str) -> asyncio.Task[PlanResult]:
        return self.executor.start_plan(plan_id)

    async def get_plan(self, plan_id: str) -> UpgradePlan | None:
        return await self.store.get_plan(plan_id)

    async def require_plan(self, plan_id: str) -> UpgradePlan:
        plan = await self.store.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    async def ensure_executable(self, plan_id: str) -> UpgradePlan:
        """Check that a plan can start right now and reserve the run slot.

        The reservation is released when execute_plan(plan_id) returns, so
        a second caller is refused before anything is scheduled.

        Raises:
            PlanNotFoundError: If the plan does not exist
            StateError: If the plan is not pending or another plan is running
        """
        plan = await self.require_plan(plan_id)
        self.executor.reserve(plan)
        return plan

    async def list_plans(self) -> list[UpgradePlan]:
        return await self.store.list_plans()

    async def get_progress(self, plan_id: str) -> UpgradeProgress | None:
        return await self.tracker.get_progress(plan_id)

    async def pause(self, plan_id: str) -> bool:
        return await self.tracker.pause(plan_id)

    async def resume(self, plan_id: str) -> bool:
        return await self.tracker.resume(plan_id)

    async def rollback(self, plan_id: str) -> RollbackResult:
        return await self.rollback_coordinator.rollback(plan_id)

    def precheck(self, from_version: str, to_version: str) -> CompatibilityReport:
        return self.analyzer.analyze(from_version, to_version)

    async def admit(self) -> GuardDecision:
        return await self.guard.admit()
