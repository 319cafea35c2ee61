"""Concurrency guard: rejects write paths while an upgrade is running."""

import math

from upshift.config.models.upgrade import GuardConfig
from upshift.observability.logging import get_logger
from upshift.observability.metrics import GUARD_REJECTIONS
from upshift.upgrade.models import GuardDecision, ProgressStatus, UpgradeProgress, utc_now
from upshift.upgrade.store import UpgradeStore

logger = get_logger(__name__)


class UpgradeGuard:
    """Advisory admission gate. Reads progress records, never mutates them."""

    def __init__(self, store: UpgradeStore, config: GuardConfig | None = None) -> None:
        self._store = store
        self._config = config or GuardConfig()

    async def admit(self) -> GuardDecision:
        """Allow the caller unless some plan is running."""
        for progress in await self._store.list_progress():
            if progress.status != ProgressStatus.RUNNING:
                continue

            retry_after = self.retry_after_seconds(progress)
            GUARD_REJECTIONS.inc()
            logger.debug(
                "upgrade_guard_rejected",
                blocking_plan_id=progress.plan_id,
                progress=progress.progress_label,
                retry_after_seconds=retry_after,
            )
            return GuardDecision(
                allowed=False,
                retry_after_seconds=retry_after,
                blocking_plan_id=progress.plan_id,
                current_step_index=progress.current_step_index,
                total_steps=progress.total_steps,
                estimated_completion=progress.estimated_completion,
            )

        return GuardDecision(allowed=True)

    def retry_after_seconds(self, progress: UpgradeProgress) -> int:
        """Seconds until the projected finish, clamped to the configured bounds."""
        if progress.estimated_completion is None:
            return self._config.retry_after_seconds

        remaining = math.ceil((progress.estimated_completion - utc_now()).total_seconds())
        return max(
            self._config.min_retry_after_seconds,
            min(remaining, self._config.max_retry_after_seconds),
        )
