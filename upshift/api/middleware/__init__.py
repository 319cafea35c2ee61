"""API middleware."""

from upshift.api.middleware.upgrade_guard import UpgradeGuardMiddleware

__all__ = ["UpgradeGuardMiddleware"]
