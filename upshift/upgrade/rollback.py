"""Rollback coordinator: best-effort reversal of completed steps."""

from upshift.observability.logging import get_logger
from upshift.observability.metrics import ROLLBACK_STEPS
from upshift.upgrade.audit import AuditEventType, AuditSink, UpgradeAuditEvent, best_effort
from upshift.upgrade.errors import RollbackStepError
from upshift.upgrade.invocation import invoke_step_call
from upshift.upgrade.models import PlanStatus, RollbackResult, StepResult
from upshift.upgrade.progress import ProgressTracker
from upshift.upgrade.store import UpgradeStore

logger = get_logger(__name__)

ROLLBACK_SOURCE_STATUSES = frozenset({PlanStatus.FAILED, PlanStatus.COMPLETED})


class RollbackCoordinator:
    """Reverts completed steps of a plan in reverse completion order.

    A failing rollback step never stops the remaining ones, and the plan
    always ends up rolled_back once every eligible step has been attempted.
    """

    def __init__(
        self,
        store: UpgradeStore,
        tracker: ProgressTracker,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._store = store
        self._tracker = tracker
        self._audit = best_effort(audit_sink)

    async def rollback(self, plan_id: str) -> RollbackResult:
        """Roll back every completed step of a failed or completed plan.

        Returns:
            RollbackResult; success is False if the plan could not be rolled
            back at all or if any individual step's rollback failed
        """
        plan = await self._store.get_plan(plan_id)
        progress = await self._tracker.get_progress(plan_id)
        if plan is None or progress is None:
            return RollbackResult(
                success=False,
                message=f"Upgrade plan or progress for {plan_id} not found",
                plan_id=plan_id,
            )

        async with self._tracker.lock_for(plan_id):
            if plan.status not in ROLLBACK_SOURCE_STATUSES:
                return RollbackResult(
                    success=False,
                    message=f"Plan cannot be rolled back from status '{plan.status.value}'",
                    plan_id=plan_id,
                )

            logger.info(
                "upgrade_rollback_started",
                plan_id=plan_id,
                completed_steps=progress.completed_steps,
            )

            rolled_back: list[str] = []
            skipped: list[str] = []
            failed: list[str] = []
            warnings: list[str] = []

            for step_id in reversed(progress.completed_steps):
                step = plan.get_step(step_id)
                if step is None or not step.can_rollback:
                    skipped.append(step_id)
                    warnings.append(
                        f"Step '{step_id}' has no rollback; manual remediation may be needed"
                    )
                    ROLLBACK_STEPS.labels(outcome="skipped").inc()
                    logger.info("upgrade_rollback_step_skipped", plan_id=plan_id, step_id=step_id)
                    continue

                try:
                    result = await invoke_step_call(
                        step.id, step.rollback, RollbackStepError, StepResult
                    )
                    if not result.success:
                        raise RollbackStepError(
                            f"Rollback of step '{step.id}' failed: {result.message}", step.id
                        )
                except RollbackStepError as e:
                    failed.append(step_id)
                    warnings.append(e.message)
                    ROLLBACK_STEPS.labels(outcome="failed").inc()
                    logger.warning(
                        "upgrade_rollback_step_failed",
                        plan_id=plan_id,
                        step_id=step_id,
                        error=e.message,
                    )
                    await self._record_step(plan_id, step_id, "failed", e.message)
                    continue

                rolled_back.append(step_id)
                ROLLBACK_STEPS.labels(outcome="succeeded").inc()
                logger.info("upgrade_rollback_step_succeeded", plan_id=plan_id, step_id=step_id)
                await self._record_step(plan_id, step_id, "succeeded", result.message)

            plan.status = PlanStatus.ROLLED_BACK
            await self._store.save_plan(plan)

        await self._audit.record(
            UpgradeAuditEvent(
                plan_id=plan_id,
                event_type=AuditEventType.PLAN_ROLLED_BACK,
                event_data={
                    "rolled_back_steps": rolled_back,
                    "skipped_steps": skipped,
                    "failed_steps": failed,
                },
            )
        )

        logger.info(
            "upgrade_rollback_finished",
            plan_id=plan_id,
            rolled_back_steps=rolled_back,
            skipped_steps=skipped,
            failed_steps=failed,
        )

        return RollbackResult(
            success=not failed,
            message=(
                "Upgrade rolled back"
                if not failed
                else f"Upgrade rolled back with {len(failed)} failed step(s)"
            ),
            plan_id=plan_id,
            rolled_back_steps=rolled_back,
            skipped_steps=skipped,
            failed_steps=failed,
            warnings=warnings,
        )

    async def _record_step(self, plan_id: str, step_id: str, outcome: str, message: str) -> None:
        await self._audit.record(
            UpgradeAuditEvent(
                plan_id=plan_id,
                event_type=AuditEventType.ROLLBACK_STEP,
                step_id=step_id,
                event_data={"outcome": outcome, "message": message},
            )
        )
