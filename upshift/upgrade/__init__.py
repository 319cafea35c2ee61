"""Staged upgrade orchestration.

Builds dependency-ordered plans from a catalog of steps, executes them
sequentially with pause/resume, rolls completed steps back in reverse order
on failure, and exposes a guard that blocks writes while a plan runs.
"""

from upshift.upgrade.audit import AuditSink, InMemoryAuditSink, UpgradeAuditEvent
from upshift.upgrade.catalog import PlanCatalog, build_default_catalog
from upshift.upgrade.errors import (
    DependencyError,
    PlanNotFoundError,
    RollbackStepError,
    StateError,
    StepExecutionError,
    UpgradeError,
    VersionError,
)
from upshift.upgrade.models import (
    CompatibilityReport,
    GuardDecision,
    PlanErrorCode,
    PlanResult,
    PlanStatus,
    ProgressStatus,
    RollbackResult,
    StepResult,
    UpgradePlan,
    UpgradeProgress,
    UpgradeStep,
)
from upshift.upgrade.service import UpgradeService

__all__ = [
    # Service
    "UpgradeService",
    "PlanCatalog",
    "build_default_catalog",
    # Models
    "UpgradeStep",
    "StepResult",
    "UpgradePlan",
    "UpgradeProgress",
    "PlanResult",
    "RollbackResult",
    "CompatibilityReport",
    "GuardDecision",
    "PlanStatus",
    "ProgressStatus",
    "PlanErrorCode",
    # Audit
    "AuditSink",
    "InMemoryAuditSink",
    "UpgradeAuditEvent",
    # Errors
    "UpgradeError",
    "DependencyError",
    "StepExecutionError",
    "RollbackStepError",
    "StateError",
    "PlanNotFoundError",
    "VersionError",
]
