"""FastAPI application factory.

Creates and configures the FastAPI application with logging, the upgrade
guard middleware, exception handlers and route registration.
"""

from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from upshift import __version__
from upshift.api.dependencies import get_settings, get_upgrade_service
from upshift.api.exceptions import UpshiftAPIError
from upshift.api.middleware.upgrade_guard import UpgradeGuardMiddleware
from upshift.api.models.errors import ErrorBody, ErrorCode, ErrorDetail, ErrorResponse
from upshift.api.routes import register_routes
from upshift.config import Settings
from upshift.observability.logging import get_logger, setup_logging
from upshift.upgrade.guard import UpgradeGuard
from upshift.upgrade.service import UpgradeService

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Explicit settings; loaded from config/ and UPSHIFT_* when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_secrets=log_config.redact_secrets,
    )

    app = FastAPI(
        title="Upshift API",
        description="Staged upgrade orchestration",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        UpgradeGuardMiddleware,
        get_guard=_guard_resolver(app),
        config=settings.upgrade.guard,
    )

    _register_exception_handlers(app)
    register_routes(app, include_metrics=settings.observability.metrics.enabled)

    logger.info(
        "app_created",
        debug=settings.debug,
        guard_enabled=settings.upgrade.guard.enabled,
    )

    return app


def _guard_resolver(app: FastAPI) -> Callable[[], UpgradeGuard]:
    """Resolve the guard the same way routes resolve the service."""

    def resolve() -> UpgradeGuard:
        provider = app.dependency_overrides.get(get_upgrade_service, get_upgrade_service)
        service: UpgradeService = provider()
        return service.guard

    return resolve


def _error_response(status_code: int, body: ErrorBody) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=body).model_dump(mode="json", exclude_none=True),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UpshiftAPIError)
    async def upshift_api_error_handler(request: Request, exc: UpshiftAPIError) -> JSONResponse:
        logger.warning(
            "api_error",
            error_code=exc.error_code.value,
            message=exc.message,
            path=request.url.path,
        )
        return _error_response(
            exc.status_code,
            ErrorBody(code=exc.error_code, message=exc.message, step_id=exc.step_id),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return _error_response(
            400,
            ErrorBody(
                code=ErrorCode.INVALID_REQUEST,
                message="Request validation failed",
                details=details,
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unexpected_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return _error_response(
            500,
            ErrorBody(code=ErrorCode.INTERNAL_ERROR, message="An unexpected error occurred"),
        )
