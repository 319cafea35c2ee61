"""Health check and metrics endpoints."""

from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from upshift import __version__
from upshift.api.dependencies import UpgradeServiceDep

router = APIRouter()
metrics_router = APIRouter()


class HealthResponse(BaseModel):
    status: Literal["healthy", "upgrading"]
    version: str
    timestamp: datetime
    blocking_plan_id: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(service: UpgradeServiceDep) -> HealthResponse:
    """Reports 'upgrading' while the guard would reject writes."""
    decision = await service.admit()
    return HealthResponse(
        status="healthy" if decision.allowed else "upgrading",
        version=__version__,
        timestamp=datetime.now(UTC),
        blocking_plan_id=decision.blocking_plan_id,
    )


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
