"""Request and response models for upgrade endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from upshift.upgrade.models import PlanStatus, UpgradePlan


class CreatePlanRequest(BaseModel):
    """Build a plan from the catalog for a version pair."""

    from_version: str = Field(..., min_length=1, description="Version currently running")
    to_version: str = Field(..., min_length=1, description="Version to upgrade to")


class StepSummary(BaseModel):
    """Serializable view of a step (without its callables)."""

    id: str
    name: str
    description: str
    target_version: str
    dependencies: list[str]
    rollback_eligible: bool
    estimated_minutes: float


class PlanResponse(BaseModel):
    """Serializable view of an upgrade plan."""

    id: str
    name: str
    from_version: str
    to_version: str
    steps: list[StepSummary]
    total_estimated_minutes: float
    created_at: datetime
    status: PlanStatus

    @classmethod
    def from_plan(cls, plan: UpgradePlan) -> "PlanResponse":
        return cls(
            id=plan.id,
            name=plan.name,
            from_version=plan.from_version,
            to_version=plan.to_version,
            steps=[
                StepSummary(
                    id=step.id,
                    name=step.name,
                    description=step.description,
                    target_version=step.target_version,
                    dependencies=sorted(step.dependencies),
                    rollback_eligible=step.rollback_eligible,
                    estimated_minutes=step.estimated_minutes,
                )
                for step in plan.steps
            ],
            total_estimated_minutes=plan.total_estimated_minutes,
            created_at=plan.created_at,
            status=plan.status,
        )


class ExecutePlanResponse(BaseModel):
    """Returned when a plan run has been scheduled."""

    plan_id: str
    status: str = "accepted"


class PlanToggleResponse(BaseModel):
    """Result of pause/resume; success is False when the precondition didn't hold."""

    plan_id: str
    success: bool
