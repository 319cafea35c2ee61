"""API exception hierarchy.

All API exceptions inherit from UpshiftAPIError, whose status_code and
error_code drive the global exception handler.
"""

from upshift.api.models.errors import ErrorCode


class UpshiftAPIError(Exception):
    """Base exception for all API errors."""

    status_code: int = 500
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, step_id: str | None = None) -> None:
        self.message = message
        self.step_id = step_id
        super().__init__(message)


class PlanNotFoundAPIError(UpshiftAPIError):
    """Raised when plan_id doesn't exist."""

    status_code = 404
    error_code = ErrorCode.PLAN_NOT_FOUND


class PlanDependencyAPIError(UpshiftAPIError):
    """Raised when plan construction fails on the dependency graph."""

    status_code = 400
    error_code = ErrorCode.DEPENDENCY_ERROR


class PlanVersionAPIError(UpshiftAPIError):
    """Raised when the version pair is rejected."""

    status_code = 400
    error_code = ErrorCode.VERSION_ERROR


class PlanConflictError(UpshiftAPIError):
    """Raised when a plan cannot be executed in its current state."""

    status_code = 409
    error_code = ErrorCode.PLAN_CONFLICT
