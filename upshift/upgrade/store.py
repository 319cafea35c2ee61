"""UpgradeStore abstract interface."""

from abc import ABC, abstractmethod

from upshift.upgrade.models import UpgradePlan, UpgradeProgress


class UpgradeStore(ABC):
    """Abstract interface for plan and progress storage.

    Records are retained after reaching a terminal status; purging them is
    left to the deployment.
    """

    @abstractmethod
    async def save_plan(self, plan: UpgradePlan) -> str:
        """Save a plan, returning its id."""
        pass

    @abstractmethod
    async def get_plan(self, plan_id: str) -> UpgradePlan | None:
        """Get a plan by id."""
        pass

    @abstractmethod
    async def list_plans(self) -> list[UpgradePlan]:
        """List all plans, oldest first."""
        pass

    @abstractmethod
    async def save_progress(self, progress: UpgradeProgress) -> str:
        """Save a progress record, returning its plan id."""
        pass

    @abstractmethod
    async def get_progress(self, plan_id: str) -> UpgradeProgress | None:
        """Get the progress record of a plan."""
        pass

    @abstractmethod
    async def list_progress(self) -> list[UpgradeProgress]:
        """List all progress records."""
        pass
