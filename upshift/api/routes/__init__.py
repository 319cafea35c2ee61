"""API route registration."""

from fastapi import APIRouter, FastAPI

from upshift.observability.logging import get_logger

logger = get_logger(__name__)


def create_v1_router() -> APIRouter:
    """Create the v1 API router."""
    router = APIRouter(prefix="/v1")

    from upshift.api.routes.upgrades import router as upgrades_router

    router.include_router(upgrades_router, tags=["Upgrades"])
    return router


def register_routes(app: FastAPI, include_metrics: bool = True) -> None:
    """Register v1 routes plus root-level health (and metrics)."""
    app.include_router(create_v1_router())

    from upshift.api.routes.health import metrics_router
    from upshift.api.routes.health import router as health_router

    app.include_router(health_router, tags=["Health"])
    if include_metrics:
        app.include_router(metrics_router, tags=["Health"])

    logger.info("routes_registered", metrics=include_metrics)
