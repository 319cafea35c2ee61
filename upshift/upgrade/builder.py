"""Plan builder: turns a catalog lookup or caller-supplied steps into a plan."""

from graphlib import CycleError, TopologicalSorter

from upshift.config.models.upgrade import UpgradeConfig
from upshift.observability.logging import get_logger
from upshift.upgrade.audit import AuditEventType, AuditSink, UpgradeAuditEvent, best_effort
from upshift.upgrade.catalog import PlanCatalog
from upshift.upgrade.errors import DependencyError, VersionError
from upshift.upgrade.models import PlanStatus, UpgradePlan, UpgradeStep, generate_plan_id, utc_now
from upshift.upgrade.store import UpgradeStore

logger = get_logger(__name__)


def check_dependency_order(steps: list[UpgradeStep]) -> None:
    """Verify that steps form a valid, already-sorted dependency graph.

    Raises:
        DependencyError: On duplicate ids, unknown dependencies, cycles, or
            a step listed before one of its dependencies.
    """
    seen: set[str] = set()
    for step in steps:
        if step.id in seen:
            raise DependencyError(f"Duplicate step id '{step.id}'", step_id=step.id)
        seen.add(step.id)

    for step in steps:
        missing = sorted(step.dependencies - seen)
        if missing:
            raise DependencyError(
                f"Step '{step.id}' depends on unknown step(s): {', '.join(missing)}",
                step_id=step.id,
            )

    sorter = TopologicalSorter({step.id: step.dependencies for step in steps})
    try:
        sorter.prepare()
    except CycleError as e:
        cycle: list[str] = e.args[1]
        raise DependencyError(
            f"Dependency cycle detected: {' -> '.join(cycle)}",
            step_id=cycle[0],
        ) from e

    placed: set[str] = set()
    for step in steps:
        pending = sorted(step.dependencies - placed)
        if pending:
            raise DependencyError(
                f"Step '{step.id}' is ordered before its dependencies: {', '.join(pending)}",
                step_id=step.id,
            )
        placed.add(step.id)


class PlanBuilder:
    """Builds and registers upgrade plans. Never executes anything."""

    def __init__(
        self,
        catalog: PlanCatalog,
        store: UpgradeStore,
        config: UpgradeConfig | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._config = config or UpgradeConfig()
        self._audit = best_effort(audit_sink)

    async def build_plan(
        self,
        from_version: str,
        to_version: str,
        steps: list[UpgradeStep] | None = None,
    ) -> UpgradePlan:
        """Build a plan and register it in the store.

        Args:
            from_version: Version the system is running
            to_version: Version to upgrade to
            steps: Explicit step list; defaults to the catalog entry for the
                version pair, or an empty plan if there is none

        Returns:
            Registered plan with status pending

        Raises:
            VersionError: If versions are equal and that is not allowed
            DependencyError: If the dependency graph is invalid
        """
        if from_version == to_version and not self._config.allow_same_version:
            raise VersionError(
                f"Source and target versions are identical ({from_version})"
            )

        if steps is None:
            steps = self._catalog.get(from_version, to_version) or []
            if not steps:
                logger.warning(
                    "upgrade_path_not_in_catalog",
                    from_version=from_version,
                    to_version=to_version,
                )

        check_dependency_order(steps)

        created_at = utc_now()
        plan = UpgradePlan(
            id=generate_plan_id(from_version, to_version, created_at),
            name=f"Upgrade from {from_version} to {to_version}",
            from_version=from_version,
            to_version=to_version,
            steps=list(steps),
            total_estimated_minutes=sum(step.estimated_minutes for step in steps),
            created_at=created_at,
            status=PlanStatus.PENDING,
        )

        await self._store.save_plan(plan)
        await self._audit.record(
            UpgradeAuditEvent(
                plan_id=plan.id,
                event_type=AuditEventType.PLAN_CREATED,
                event_data={
                    "from_version": from_version,
                    "to_version": to_version,
                    "steps": plan.step_ids,
                },
            )
        )

        logger.info(
            "upgrade_plan_created",
            plan_id=plan.id,
            from_version=from_version,
            to_version=to_version,
            total_steps=len(plan.steps),
            total_estimated_minutes=plan.total_estimated_minutes,
        )

        return plan
