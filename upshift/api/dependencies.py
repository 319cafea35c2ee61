"""Dependency injection for API routes.

The upgrade service is created once per process from settings and can be
swapped out with app.dependency_overrides in tests.
"""

from typing import Annotated

from fastapi import Depends

from upshift.config import Settings
from upshift.config import get_settings as load_settings
from upshift.observability.logging import get_logger
from upshift.upgrade.audit import InMemoryAuditSink
from upshift.upgrade.service import UpgradeService

logger = get_logger(__name__)

_upgrade_service: UpgradeService | None = None


def get_settings() -> Settings:
    """Get application settings (cached by upshift.config)."""
    return load_settings()


def get_upgrade_service() -> UpgradeService:
    """Get the process-wide upgrade service, creating it on first access."""
    global _upgrade_service
    if _upgrade_service is None:
        settings = load_settings()
        _upgrade_service = UpgradeService(
            config=settings.upgrade,
            audit_sink=InMemoryAuditSink(),
        )
        logger.info(
            "upgrade_service_created",
            version_pairs=_upgrade_service.catalog.version_pairs(),
        )
    return _upgrade_service


def set_upgrade_service(service: UpgradeService) -> None:
    """Install a preconfigured service (custom store, catalog or audit sink)."""
    global _upgrade_service
    _upgrade_service = service


def reset_dependencies() -> None:
    """Drop the cached service. Used for test isolation."""
    global _upgrade_service
    _upgrade_service = None


UpgradeServiceDep = Annotated[UpgradeService, Depends(get_upgrade_service)]
