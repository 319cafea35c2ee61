"""Middleware that rejects write requests while a system upgrade is running."""

from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from upshift.api.models.errors import ErrorBody, ErrorCode, ErrorResponse, UpgradeInfo
from upshift.config.models.upgrade import GuardConfig
from upshift.observability.logging import get_logger
from upshift.upgrade.guard import UpgradeGuard
from upshift.upgrade.models import GuardDecision

logger = get_logger(__name__)


def build_rejection_response(decision: GuardDecision) -> JSONResponse:
    """503 response carrying Retry-After and the blocking plan's identity."""
    body = ErrorResponse(
        error=ErrorBody(
            code=ErrorCode.UPGRADE_IN_PROGRESS,
            message="System upgrade in progress, please retry later",
            upgrade_info=UpgradeInfo(
                plan_id=decision.blocking_plan_id or "",
                progress=decision.progress_label or "",
                estimated_completion=decision.estimated_completion,
            ),
        )
    )
    return JSONResponse(
        status_code=503,
        content=body.model_dump(mode="json", exclude_none=True),
        headers={
            "Retry-After": str(decision.retry_after_seconds),
            "X-Upgrade-Status": "in-progress",
        },
    )


class UpgradeGuardMiddleware(BaseHTTPMiddleware):
    """Consults the upgrade guard before admitting write requests.

    Read methods and excluded path prefixes always pass, so callers can keep
    polling progress and operators can pause or resume the running plan.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        get_guard: Callable[[], UpgradeGuard],
        config: GuardConfig | None = None,
    ) -> None:
        super().__init__(app)
        self._get_guard = get_guard
        self._config = config or GuardConfig()
        self._methods = {method.upper() for method in self._config.guarded_methods}

    def _is_guarded(self, request: Request) -> bool:
        if not self._config.enabled or request.method.upper() not in self._methods:
            return False
        path = request.url.path
        return not any(path.startswith(prefix) for prefix in self._config.exclude_paths)

    async def dispatch(  # type: ignore[override]
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        if not self._is_guarded(request):
            return await call_next(request)  # type: ignore[no-any-return, misc]

        decision = await self._get_guard().admit()
        if not decision.allowed:
            logger.warning(
                "request_blocked_by_upgrade",
                method=request.method,
                path=request.url.path,
                blocking_plan_id=decision.blocking_plan_id,
                retry_after_seconds=decision.retry_after_seconds,
            )
            return build_rejection_response(decision)

        return await call_next(request)  # type: ignore[no-any-return, misc]
