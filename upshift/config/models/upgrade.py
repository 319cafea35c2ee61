"""Upgrade orchestration configuration models."""

from pydantic import BaseModel, Field, model_validator


class GuardConfig(BaseModel):
    """Concurrency guard configuration."""

    enabled: bool = Field(default=True, description="Reject writes while an upgrade runs")
    retry_after_seconds: int = Field(
        default=300, ge=1, description="Retry-After hint when no completion estimate exists"
    )
    min_retry_after_seconds: int = Field(
        default=30, ge=1, description="Lower bound for computed Retry-After"
    )
    max_retry_after_seconds: int = Field(
        default=3600, ge=1, description="Upper bound for computed Retry-After"
    )
    guarded_methods: list[str] = Field(
        default_factory=lambda: ["POST", "PUT", "PATCH", "DELETE"],
        description="HTTP methods treated as write paths",
    )
    exclude_paths: list[str] = Field(
        default_factory=lambda: [
            "/health",
            "/metrics",
            "/docs",
            "/redoc",
            "/openapi.json",
            "/v1/upgrades",
        ],
        description="Path prefixes never blocked by the guard",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "GuardConfig":
        if self.min_retry_after_seconds > self.max_retry_after_seconds:
            raise ValueError("min_retry_after_seconds must not exceed max_retry_after_seconds")
        return self


class AuditConfig(BaseModel):
    """Audit sink configuration."""

    enabled: bool = Field(
        default=True, description="Write plan and step outcomes to the audit sink"
    )


class UpgradeConfig(BaseModel):
    """Root upgrade configuration."""

    allow_same_version: bool = Field(
        default=False, description="Allow building plans whose source and target versions match"
    )
    guard: GuardConfig = Field(default_factory=GuardConfig, description="Guard settings")
    audit: AuditConfig = Field(default_factory=AuditConfig, description="Audit settings")
