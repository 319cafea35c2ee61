"""Execution engine for upgrade plans.

Runs a plan's steps sequentially in their stored order, honoring pause
between steps and handing failures to the rollback coordinator.
"""

import asyncio
import time

from upshift.observability.logging import bound_plan_context, get_logger
from upshift.observability.metrics import STEP_LATENCY, UPGRADE_PLANS, UPGRADE_RUNNING
from upshift.upgrade.audit import AuditEventType, AuditSink, UpgradeAuditEvent, best_effort
from upshift.upgrade.errors import DependencyError, StateError, StepExecutionError, UpgradeError
from upshift.upgrade.invocation import invoke_step_call
from upshift.upgrade.models import (
    PlanErrorCode,
    PlanResult,
    PlanStatus,
    ProgressStatus,
    StepResult,
    UpgradePlan,
    UpgradeStep,
)
from upshift.upgrade.progress import ProgressTracker
from upshift.upgrade.rollback import RollbackCoordinator
from upshift.upgrade.store import UpgradeStore

logger = get_logger(__name__)

UNFINISHED_PROGRESS = frozenset({ProgressStatus.RUNNING, ProgressStatus.PAUSED})


class UpgradeExecutor:
    """Drives plans step by step.

    A single process-wide run slot admits one running plan at a time. It is
    held by the run lock while a plan executes (a paused plan keeps it) and
    may be reserved for a plan ahead of execution.
    """

    def __init__(
        self,
        store: UpgradeStore,
        tracker: ProgressTracker,
        rollback_coordinator: RollbackCoordinator,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._store = store
        self._tracker = tracker
        self._rollback = rollback_coordinator
        self._audit = best_effort(audit_sink)
        self._run_lock = asyncio.Lock()
        self._reserved: str | None = None
        self._tasks: set[asyncio.Task[PlanResult]] = set()

    @property
    def is_running(self) -> bool:
        """Whether the run slot is taken by a running or reserved plan."""
        return self._run_lock.locked() or self._reserved is not None

    def reserve(self, plan: UpgradePlan) -> None:
        """Claim the run slot for a pending plan; execute_plan releases it.

        Raises:
            StateError: If the plan is not pending or the slot is taken
        """
        if plan.status != PlanStatus.PENDING:
            raise StateError(f"Plan is not pending (status: {plan.status.value})")
        if self.is_running:
            raise StateError("Another upgrade plan is already running")
        self._reserved = plan.id
        logger.info("upgrade_plan_reserved", plan_id=plan.id)

    def start_plan(self, plan_id: str) -> asyncio.Task[PlanResult]:
        """Run a plan as a background task; callers poll progress."""
        task = asyncio.create_task(self.execute_plan(plan_id), name=f"upgrade:{plan_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def execute_plan(self, plan_id: str) -> PlanResult:
        """Execute a pending plan to completion or rollback.

        Failures, including ones outside the steps, are reported in the
        result; only cancellation propagates. Releases any reservation held
        for the plan.
        """
        try:
            return await self._execute(plan_id)
        finally:
            if self._reserved == plan_id:
                self._reserved = None

    async def _execute(self, plan_id: str) -> PlanResult:
        plan = await self._store.get_plan(plan_id)
        if plan is None:
            return PlanResult(
                success=False,
                message=f"Upgrade plan {plan_id} not found",
                plan_id=plan_id,
                error_code=PlanErrorCode.NOT_FOUND,
            )

        if plan.status != PlanStatus.PENDING:
            return self._rejected(plan, f"Plan is not pending (status: {plan.status.value})")

        if self._run_lock.locked() or self._reserved not in (None, plan_id):
            return self._rejected(plan, "Another upgrade plan is already running")

        async with self._run_lock:
            if plan.status != PlanStatus.PENDING:
                return self._rejected(plan, f"Plan is not pending (status: {plan.status.value})")

            UPGRADE_RUNNING.inc()
            with bound_plan_context(plan.id):
                try:
                    plan.status = PlanStatus.RUNNING
                    await self._store.save_plan(plan)
                    await self._tracker.start(plan)
                    await self._audit.record(
                        UpgradeAuditEvent(plan_id=plan.id, event_type=AuditEventType.PLAN_STARTED)
                    )
                    logger.info(
                        "upgrade_plan_started",
                        from_version=plan.from_version,
                        to_version=plan.to_version,
                        total_steps=len(plan.steps),
                    )
                    return await self._run_steps(plan)
                except asyncio.CancelledError:
                    logger.warning("upgrade_plan_interrupted")
                    await self._mark_failed(plan)
                    UPGRADE_PLANS.labels(outcome="interrupted").inc()
                    raise
                except Exception as e:
                    return await self._abort(plan, e)
                finally:
                    UPGRADE_RUNNING.dec()

    async def _run_steps(self, plan: UpgradePlan) -> PlanResult:
        while True:
            progress = await self._tracker.wait_until_runnable(plan.id)
            index = progress.current_step_index
            if index >= len(plan.steps):
                break

            step = plan.steps[index]
            missing = sorted(step.dependencies - set(progress.completed_steps))
            if missing:
                error = DependencyError(
                    f"Dependencies of step '{step.id}' are not completed: {', '.join(missing)}",
                    step_id=step.id,
                )
                return await self._fail(plan, None, error, PlanErrorCode.DEPENDENCY_ERROR)

            try:
                await self._run_step(plan, step, index)
            except StepExecutionError as e:
                return await self._fail(plan, step.id, e, PlanErrorCode.STEP_EXECUTION_ERROR)

            progress = await self._tracker.record_completed(plan, step)
            await self._audit.record(
                UpgradeAuditEvent(
                    plan_id=plan.id,
                    event_type=AuditEventType.STEP_COMPLETED,
                    step_id=step.id,
                )
            )
            logger.info(
                "upgrade_step_completed",
                step_id=step.id,
                progress=progress.progress_label,
            )

        progress = await self._tracker.mark_completed(plan.id)
        plan.status = PlanStatus.COMPLETED
        await self._store.save_plan(plan)
        await self._audit.record(
            UpgradeAuditEvent(plan_id=plan.id, event_type=AuditEventType.PLAN_COMPLETED)
        )
        UPGRADE_PLANS.labels(outcome="completed").inc()
        logger.info("upgrade_plan_completed", completed_steps=progress.completed_steps)

        return PlanResult(
            success=True,
            message=f"Upgrade from {plan.from_version} to {plan.to_version} completed",
            plan_id=plan.id,
            completed_steps=list(progress.completed_steps),
        )

    async def _run_step(self, plan: UpgradePlan, step: UpgradeStep, index: int) -> None:
        logger.info(
            "upgrade_step_started",
            step_id=step.id,
            step_name=step.name,
            index=index,
            total_steps=len(plan.steps),
        )
        started = time.perf_counter()
        try:
            result = await invoke_step_call(
                step.id, step.execute, StepExecutionError, StepResult
            )
            if not result.success:
                raise StepExecutionError(
                    f"Step '{step.id}' failed: {result.message}", step.id
                )
            if step.can_validate:
                valid = await invoke_step_call(step.id, step.validate_outcome, StepExecutionError)
                if not valid:
                    raise StepExecutionError(f"Step '{step.id}' failed validation", step.id)
        finally:
            STEP_LATENCY.labels(step_id=step.id).observe(time.perf_counter() - started)

    async def _fail(
        self,
        plan: UpgradePlan,
        step_id: str | None,
        error: UpgradeError,
        error_code: PlanErrorCode,
    ) -> PlanResult:
        progress = await self._tracker.record_failed(plan.id, step_id)
        plan.status = PlanStatus.FAILED
        await self._store.save_plan(plan)
        event_data = {"error": error.message, "error_code": error_code.value}
        if step_id is not None:
            await self._audit.record(
                UpgradeAuditEvent(
                    plan_id=plan.id,
                    event_type=AuditEventType.STEP_FAILED,
                    step_id=step_id,
                    event_data=event_data,
                )
            )
        await self._audit.record(
            UpgradeAuditEvent(
                plan_id=plan.id,
                event_type=AuditEventType.PLAN_FAILED,
                event_data=event_data,
            )
        )
        logger.error(
            "upgrade_plan_failed",
            step_id=step_id,
            error=error.message,
            error_code=error_code.value,
            completed_steps=progress.completed_steps,
        )

        rollback = await self._rollback.rollback(plan.id)
        UPGRADE_PLANS.labels(outcome="rolled_back").inc()

        return PlanResult(
            success=False,
            message=f"Upgrade failed: {error.message}",
            plan_id=plan.id,
            completed_steps=list(progress.completed_steps),
            failed_step=step_id,
            error_code=error_code,
            errors=[error.message],
            rollback=rollback,
        )

    async def _abort(self, plan: UpgradePlan, error: Exception) -> PlanResult:
        """Fail a run that broke outside a step and roll back what completed."""
        message = f"{type(error).__name__}: {error}"
        logger.exception("upgrade_plan_aborted", error=message)

        await self._mark_failed(plan)
        rollback = None
        if plan.status == PlanStatus.FAILED:
            rollback = await self._rollback.rollback(plan.id)
        UPGRADE_PLANS.labels(outcome="aborted").inc()

        progress = await self._tracker.get_progress(plan.id)
        return PlanResult(
            success=False,
            message=f"Upgrade aborted: {message}",
            plan_id=plan.id,
            completed_steps=list(progress.completed_steps) if progress else [],
            error_code=PlanErrorCode.INTERNAL_ERROR,
            errors=[message],
            rollback=rollback,
        )

    async def _mark_failed(self, plan: UpgradePlan) -> None:
        progress = await self._tracker.get_progress(plan.id)
        if progress is not None and progress.status in UNFINISHED_PROGRESS:
            await self._tracker.record_failed(plan.id)
        if plan.status == PlanStatus.RUNNING:
            plan.status = PlanStatus.FAILED
            await self._store.save_plan(plan)

    @staticmethod
    def _rejected(plan: UpgradePlan, message: str) -> PlanResult:
        logger.warning("upgrade_plan_rejected", plan_id=plan.id, reason=message)
        return PlanResult(
            success=False,
            message=message,
            plan_id=plan.id,
            error_code=PlanErrorCode.STATE_ERROR,
        )
