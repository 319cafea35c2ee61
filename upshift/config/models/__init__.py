"""Configuration models for each settings section."""

from upshift.config.models.api import APIConfig
from upshift.config.models.observability import LoggingConfig, MetricsConfig, ObservabilityConfig
from upshift.config.models.upgrade import AuditConfig, GuardConfig, UpgradeConfig

__all__ = [
    "APIConfig",
    "AuditConfig",
    "GuardConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "UpgradeConfig",
]
