"""Error taxonomy for upgrade orchestration.

Only build-time errors (DependencyError, VersionError) escape to callers.
Execution and rollback failures are recorded in results, and invalid
state transitions surface as boolean/no-op returns.
"""


class UpgradeError(Exception):
    """Base exception for upgrade orchestration errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DependencyError(UpgradeError):
    """A step's dependencies are cyclic, unknown, or out of order."""

    def __init__(self, message: str, step_id: str | None = None) -> None:
        super().__init__(message)
        self.step_id = step_id


class StepExecutionError(UpgradeError):
    """A step's execute or validate call failed or raised."""

    def __init__(self, message: str, step_id: str) -> None:
        super().__init__(message)
        self.step_id = step_id


class RollbackStepError(UpgradeError):
    """A step's rollback call failed or raised."""

    def __init__(self, message: str, step_id: str) -> None:
        super().__init__(message)
        self.step_id = step_id


class StateError(UpgradeError):
    """Operation is invalid for the plan's current status."""


class PlanNotFoundError(UpgradeError):
    """No plan is registered under the given id."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Upgrade plan {plan_id} not found")
        self.plan_id = plan_id


class VersionError(UpgradeError):
    """Source and target versions do not describe an upgrade."""
