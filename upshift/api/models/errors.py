"""Error response models for consistent API error handling."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Machine-readable error codes used across all endpoints."""

    INVALID_REQUEST = "INVALID_REQUEST"
    """Request validation failed (malformed JSON, missing fields, etc.)."""

    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    """The specified upgrade plan does not exist."""

    DEPENDENCY_ERROR = "DEPENDENCY_ERROR"
    """The step dependency graph is cyclic, unknown, or out of order."""

    VERSION_ERROR = "VERSION_ERROR"
    """The version pair does not describe an upgrade."""

    PLAN_CONFLICT = "PLAN_CONFLICT"
    """The plan cannot be executed in its current state."""

    UPGRADE_IN_PROGRESS = "UPGRADE_IN_PROGRESS"
    """A system upgrade is running; retry later."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred."""


class ErrorDetail(BaseModel):
    """Field-level error information for validation failures."""

    field: str | None = None
    message: str


class UpgradeInfo(BaseModel):
    """Identifies the running upgrade that blocked a request."""

    plan_id: str
    progress: str
    estimated_completion: datetime | None = None


class ErrorBody(BaseModel):
    """Error body content for API error responses."""

    code: ErrorCode
    message: str
    details: list[ErrorDetail] | None = None
    step_id: str | None = None
    """Offending step for dependency errors."""

    upgrade_info: UpgradeInfo | None = None
    """Blocking plan when the upgrade guard rejects a request."""


class ErrorResponse(BaseModel):
    """Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "PLAN_NOT_FOUND",
                "message": "Upgrade plan upgrade-v1-to-v3-... not found"
            }
        }
    """

    error: ErrorBody
