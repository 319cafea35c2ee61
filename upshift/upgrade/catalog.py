"""Catalog of default upgrade paths.

Maps a (from_version, to_version) pair to an ordered list of steps. The
catalog only assembles data; it never executes anything.
"""

from upshift.observability.logging import get_logger
from upshift.upgrade.models import StepAction, StepResult, StepValidator, UpgradeStep

logger = get_logger(__name__)


class PlanCatalog:
    """Registry of ordered step lists keyed by version pair."""

    def __init__(self) -> None:
        self._paths: dict[tuple[str, str], list[UpgradeStep]] = {}

    def register(self, from_version: str, to_version: str, steps: list[UpgradeStep]) -> None:
        """Register (or replace) the default steps for a version pair."""
        self._paths[(from_version, to_version)] = list(steps)
        logger.debug(
            "upgrade_path_registered",
            from_version=from_version,
            to_version=to_version,
            steps=[step.id for step in steps],
        )

    def get(self, from_version: str, to_version: str) -> list[UpgradeStep] | None:
        """Return a copy of the registered steps, or None if the pair is unknown."""
        steps = self._paths.get((from_version, to_version))
        return list(steps) if steps is not None else None

    def version_pairs(self) -> list[tuple[str, str]]:
        return list(self._paths)


def _placeholder_action(message: str) -> StepAction:
    """Reference step body: logs and succeeds.

    Deployments replace these with real backup/migration code by registering
    their own steps for the same version pair.
    """

    async def _run() -> StepResult:
        logger.info("reference_step_ran", message=message)
        return StepResult(success=True, message=message)

    return _run


def _placeholder_check() -> StepValidator:
    async def _check() -> bool:
        return True

    return _check


def _v1_to_v3_steps() -> list[UpgradeStep]:
    return [
        UpgradeStep(
            id="backup-data",
            name="Data backup",
            description="Create a full backup of current data",
            target_version="v1",
            rollback_eligible=True,
            estimated_minutes=10,
            execute_fn=_placeholder_action("Data backup completed"),
            validate_fn=_placeholder_check(),
        ),
        UpgradeStep(
            id="migrate-user-fields",
            name="User field migration",
            description="Move tokenBalance to tokens and isActive to status",
            target_version="v2",
            dependencies=frozenset({"backup-data"}),
            rollback_eligible=True,
            estimated_minutes=15,
            execute_fn=_placeholder_action("User field migration completed"),
            rollback_fn=_placeholder_action("User field migration reverted"),
        ),
        UpgradeStep(
            id="upgrade-auth-system",
            name="Auth system upgrade",
            description="Upgrade from basic auth to OAuth2",
            target_version="v3",
            dependencies=frozenset({"migrate-user-fields"}),
            rollback_eligible=True,
            estimated_minutes=20,
            execute_fn=_placeholder_action("Auth system upgrade completed"),
        ),
        UpgradeStep(
            id="update-token-format",
            name="Token format update",
            description="Switch to the new secure token format",
            target_version="v3",
            dependencies=frozenset({"upgrade-auth-system"}),
            rollback_eligible=True,
            estimated_minutes=10,
            execute_fn=_placeholder_action("Token format update completed"),
        ),
        UpgradeStep(
            id="validate-upgrade",
            name="Upgrade validation",
            description="Verify that all features work",
            target_version="v3",
            dependencies=frozenset({"update-token-format"}),
            rollback_eligible=False,
            estimated_minutes=15,
            execute_fn=_placeholder_action("Upgrade validation completed"),
            validate_fn=_placeholder_check(),
        ),
    ]


def _v2_to_v3_steps() -> list[UpgradeStep]:
    return [
        UpgradeStep(
            id="backup-data-v2",
            name="Data backup",
            description="Create a backup of v2 data",
            target_version="v2",
            rollback_eligible=True,
            estimated_minutes=5,
            execute_fn=_placeholder_action("v2 data backup completed"),
        ),
        UpgradeStep(
            id="enhance-auth",
            name="Auth enhancements",
            description="Add new authentication features",
            target_version="v3",
            dependencies=frozenset({"backup-data-v2"}),
            rollback_eligible=True,
            estimated_minutes=10,
            execute_fn=_placeholder_action("Auth enhancements completed"),
        ),
        UpgradeStep(
            id="migrate-async-ops",
            name="Async operation migration",
            description="Move synchronous operations to async mode",
            target_version="v3",
            dependencies=frozenset({"enhance-auth"}),
            rollback_eligible=True,
            estimated_minutes=15,
            execute_fn=_placeholder_action("Async operation migration completed"),
        ),
    ]


def build_default_catalog() -> PlanCatalog:
    """Catalog with the v1 -> v3 and v2 -> v3 reference paths."""
    catalog = PlanCatalog()
    catalog.register("v1", "v3", _v1_to_v3_steps())
    catalog.register("v2", "v3", _v2_to_v3_steps())
    return catalog
