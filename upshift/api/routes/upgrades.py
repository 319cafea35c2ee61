"""Upgrade plan endpoints."""

from fastapi import APIRouter, BackgroundTasks, Query

from upshift.api.dependencies import UpgradeServiceDep
from upshift.api.exceptions import (
    PlanConflictError,
    PlanDependencyAPIError,
    PlanNotFoundAPIError,
    PlanVersionAPIError,
)
from upshift.api.models.upgrades import (
    CreatePlanRequest,
    ExecutePlanResponse,
    PlanResponse,
    PlanToggleResponse,
)
from upshift.observability.logging import get_logger
from upshift.upgrade.errors import DependencyError, PlanNotFoundError, StateError, VersionError
from upshift.upgrade.models import (
    CompatibilityReport,
    RollbackResult,
    UpgradePlan,
    UpgradeProgress,
)
from upshift.upgrade.service import UpgradeService

logger = get_logger(__name__)

router = APIRouter(prefix="/upgrades")


async def _require_plan(service: UpgradeService, plan_id: str) -> UpgradePlan:
    try:
        return await service.require_plan(plan_id)
    except PlanNotFoundError as e:
        raise PlanNotFoundAPIError(e.message) from e


@router.get("/precheck", response_model=CompatibilityReport)
async def precheck(
    service: UpgradeServiceDep,
    from_version: str = Query(..., min_length=1),
    to_version: str = Query(..., min_length=1),
) -> CompatibilityReport:
    """Advisory compatibility report for a version pair."""
    return service.precheck(from_version, to_version)


@router.post("/plans", response_model=PlanResponse, status_code=201)
async def create_plan(request: CreatePlanRequest, service: UpgradeServiceDep) -> PlanResponse:
    """Build a plan from the catalog entry for the version pair."""
    try:
        plan = await service.create_plan(request.from_version, request.to_version)
    except DependencyError as e:
        raise PlanDependencyAPIError(e.message, step_id=e.step_id) from e
    except VersionError as e:
        raise PlanVersionAPIError(e.message) from e
    return PlanResponse.from_plan(plan)


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(service: UpgradeServiceDep) -> list[PlanResponse]:
    return [PlanResponse.from_plan(plan) for plan in await service.list_plans()]


@router.get("/plans/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: str, service: UpgradeServiceDep) -> PlanResponse:
    return PlanResponse.from_plan(await _require_plan(service, plan_id))


@router.get("/plans/{plan_id}/progress", response_model=UpgradeProgress)
async def get_progress(plan_id: str, service: UpgradeServiceDep) -> UpgradeProgress:
    """Live progress; 404 until the plan has been started."""
    progress = await service.get_progress(plan_id)
    if progress is None:
        raise PlanNotFoundAPIError(f"No progress recorded for upgrade plan {plan_id}")
    return progress


@router.post("/plans/{plan_id}/execute", response_model=ExecutePlanResponse, status_code=202)
async def execute_plan(
    plan_id: str,
    service: UpgradeServiceDep,
    background_tasks: BackgroundTasks,
) -> ExecutePlanResponse:
    """Schedule a pending plan. Returns immediately; poll /progress."""
    try:
        await service.ensure_executable(plan_id)
    except PlanNotFoundError as e:
        raise PlanNotFoundAPIError(e.message) from e
    except StateError as e:
        raise PlanConflictError(e.message) from e

    background_tasks.add_task(service.execute_plan, plan_id)
    logger.info("upgrade_plan_scheduled", plan_id=plan_id)
    return ExecutePlanResponse(plan_id=plan_id)


@router.post("/plans/{plan_id}/pause", response_model=PlanToggleResponse)
async def pause_plan(plan_id: str, service: UpgradeServiceDep) -> PlanToggleResponse:
    await _require_plan(service, plan_id)
    return PlanToggleResponse(plan_id=plan_id, success=await service.pause(plan_id))


@router.post("/plans/{plan_id}/resume", response_model=PlanToggleResponse)
async def resume_plan(plan_id: str, service: UpgradeServiceDep) -> PlanToggleResponse:
    await _require_plan(service, plan_id)
    return PlanToggleResponse(plan_id=plan_id, success=await service.resume(plan_id))


@router.post("/plans/{plan_id}/rollback", response_model=RollbackResult)
async def rollback_plan(plan_id: str, service: UpgradeServiceDep) -> RollbackResult:
    """Roll back a failed or completed plan."""
    await _require_plan(service, plan_id)
    return await service.rollback(plan_id)
