"""Upgrade orchestration models.

Defines steps, plans, progress records and the results returned by the
executor, rollback coordinator, compatibility analyzer and guard.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def generate_plan_id(from_version: str, to_version: str, created_at: datetime | None = None) -> str:
    """Build a plan id from the version pair, a millisecond timestamp and a random suffix."""
    created_at = created_at or utc_now()
    millis = int(created_at.timestamp() * 1000)
    return f"upgrade-{from_version}-to-{to_version}-{millis}-{uuid4().hex[:6]}"


# =============================================================================
# Enums
# =============================================================================


class PlanStatus(str, Enum):
    """Upgrade plan lifecycle status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class ProgressStatus(str, Enum):
    """Live execution status of a plan."""

    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanErrorCode(str, Enum):
    """Why a plan execution did not succeed."""

    NOT_FOUND = "not_found"
    STATE_ERROR = "state_error"
    DEPENDENCY_ERROR = "dependency_error"
    STEP_EXECUTION_ERROR = "step_execution_error"
    INTERNAL_ERROR = "internal_error"


class IssueSeverity(str, Enum):
    """Severity of a known compatibility issue."""

    BLOCKING = "blocking"
    WARNING = "warning"
    INFO = "info"


# =============================================================================
# Steps
# =============================================================================


class StepResult(BaseModel):
    """Outcome of a step's execute or rollback call."""

    success: bool = Field(..., description="Whether the call succeeded")
    message: str = Field(default="", description="Human-readable outcome")
    data: Any = Field(default=None, description="Step-specific payload")
    errors: list[str] = Field(default_factory=list, description="Error details")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal issues")


StepAction = Callable[[], Awaitable[StepResult]]
StepValidator = Callable[[], Awaitable[bool]]


class UpgradeStep(BaseModel):
    """A named, versioned unit of upgrade work.

    Behaviour is supplied as async callables rather than subclasses, so
    heterogeneous steps can live side by side in a catalog. Steps carry no
    mutable state; everything that changes during a run lives in
    UpgradeProgress.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique id within a plan")
    name: str = Field(..., description="Human-readable name")
    description: str = Field(default="", description="What the step does")
    target_version: str = Field(..., description="Version this step advances toward")
    dependencies: frozenset[str] = Field(
        default_factory=frozenset, description="Step ids that must complete first"
    )
    rollback_eligible: bool = Field(default=True, description="Whether rollback may be attempted")
    estimated_minutes: float = Field(default=0, ge=0, description="Estimated duration")

    execute_fn: StepAction = Field(..., exclude=True)
    validate_fn: StepValidator | None = Field(default=None, exclude=True)
    rollback_fn: StepAction | None = Field(default=None, exclude=True)

    @field_serializer("dependencies")
    def _serialize_dependencies(self, dependencies: frozenset[str]) -> list[str]:
        return sorted(dependencies)

    @property
    def can_validate(self) -> bool:
        return self.validate_fn is not None

    @property
    def can_rollback(self) -> bool:
        return self.rollback_eligible and self.rollback_fn is not None

    async def execute(self) -> StepResult:
        return await self.execute_fn()

    async def validate_outcome(self) -> bool:
        """Run the post-execute check; steps without one always pass."""
        if self.validate_fn is None:
            return True
        return await self.validate_fn()

    async def rollback(self) -> StepResult:
        if self.rollback_fn is None:
            return StepResult(success=False, message=f"Step {self.id} defines no rollback")
        return await self.rollback_fn()


# =============================================================================
# Plan and progress
# =============================================================================


class UpgradePlan(BaseModel):
    """Ordered, dependency-valid sequence of steps between two versions.

    Logically immutable once built except for status.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., description="Unique plan id")
    name: str = Field(..., description="Display name")
    from_version: str = Field(..., description="Source version")
    to_version: str = Field(..., description="Target version")
    steps: list[UpgradeStep] = Field(default_factory=list, description="Execution order")
    total_estimated_minutes: float = Field(default=0, ge=0, description="Sum of step estimates")
    created_at: datetime = Field(default_factory=utc_now, description="Build time")
    status: PlanStatus = Field(default=PlanStatus.PENDING, description="Lifecycle status")

    def get_step(self, step_id: str) -> UpgradeStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]


class UpgradeProgress(BaseModel):
    """Mutable execution state of a plan, 1:1 with UpgradePlan."""

    model_config = ConfigDict(validate_assignment=True)

    plan_id: str = Field(..., description="Plan being executed")
    current_step_index: int = Field(default=0, ge=0, description="Index of the next step to run")
    total_steps: int = Field(..., ge=0, description="Number of steps in the plan")
    completed_steps: list[str] = Field(
        default_factory=list, description="Step ids in completion order"
    )
    failed_steps: list[str] = Field(default_factory=list, description="Step ids that failed")
    start_time: datetime = Field(default_factory=utc_now, description="Execution start")
    estimated_completion: datetime | None = Field(
        default=None, description="Projected finish based on remaining estimates"
    )
    finished_at: datetime | None = Field(default=None, description="When a terminal status was set")
    status: ProgressStatus = Field(default=ProgressStatus.RUNNING, description="Execution status")

    @property
    def progress_label(self) -> str:
        return f"{self.current_step_index}/{self.total_steps}"


# =============================================================================
# Results
# =============================================================================


class RollbackResult(BaseModel):
    """Outcome of a best-effort rollback."""

    success: bool = Field(..., description="True when no rollback step failed")
    message: str = Field(default="", description="Summary")
    plan_id: str | None = Field(default=None, description="Plan rolled back")
    rolled_back_steps: list[str] = Field(
        default_factory=list, description="Steps reverted, in rollback order"
    )
    skipped_steps: list[str] = Field(
        default_factory=list, description="Completed steps with no eligible rollback"
    )
    failed_steps: list[str] = Field(
        default_factory=list, description="Steps whose rollback failed or raised"
    )
    warnings: list[str] = Field(default_factory=list, description="Manual remediation hints")


class PlanResult(BaseModel):
    """Outcome of executing a plan."""

    success: bool = Field(..., description="Whether every step completed")
    message: str = Field(default="", description="Summary")
    plan_id: str | None = Field(default=None, description="Executed plan")
    completed_steps: list[str] = Field(default_factory=list, description="Completed step ids")
    failed_step: str | None = Field(default=None, description="Step that triggered failure")
    error_code: PlanErrorCode | None = Field(default=None, description="Failure category")
    errors: list[str] = Field(default_factory=list, description="Error messages")
    rollback: RollbackResult | None = Field(
        default=None, description="Rollback outcome when the plan failed mid-run"
    )


class CompatibilityIssue(BaseModel):
    """A known issue affecting an upgrade path."""

    severity: IssueSeverity = Field(..., description="Issue severity")
    message: str = Field(..., description="What is wrong")


class CompatibilityReport(BaseModel):
    """Advisory result of a pre-check."""

    from_version: str
    to_version: str
    compatible: bool = Field(..., description="False only when a blocking issue exists")
    migration_required: bool = Field(..., description="Whether the versions differ")
    issues: list[CompatibilityIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    estimated_minutes: float = Field(default=0, ge=0, description="Effort estimate")


class GuardDecision(BaseModel):
    """Admission decision of the concurrency guard."""

    allowed: bool
    retry_after_seconds: int | None = None
    blocking_plan_id: str | None = None
    current_step_index: int | None = None
    total_steps: int | None = None
    estimated_completion: datetime | None = None

    @property
    def progress_label(self) -> str | None:
        if self.current_step_index is None or self.total_steps is None:
            return None
        return f"{self.current_step_index}/{self.total_steps}"
