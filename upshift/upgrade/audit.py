"""Write-only audit sink for plan and step outcomes."""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from upshift.observability.logging import get_logger
from upshift.upgrade.models import utc_now

logger = get_logger(__name__)


class AuditEventType(str, Enum):
    """Kinds of upgrade audit events."""

    PLAN_CREATED = "plan_created"
    PLAN_STARTED = "plan_started"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    PLAN_COMPLETED = "plan_completed"
    PLAN_FAILED = "plan_failed"
    ROLLBACK_STEP = "rollback_step"
    PLAN_ROLLED_BACK = "plan_rolled_back"


class UpgradeAuditEvent(BaseModel):
    """A single audit record."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    plan_id: str = Field(..., description="Plan the event belongs to")
    event_type: AuditEventType = Field(..., description="Event classification")
    step_id: str | None = Field(default=None, description="Related step")
    event_data: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    timestamp: datetime = Field(default_factory=utc_now, description="Event time")


class AuditSink(ABC):
    """Destination for audit events. The orchestrator never reads back."""

    @abstractmethod
    async def record(self, event: UpgradeAuditEvent) -> None:
        """Persist an audit event."""
        pass


class NullAuditSink(AuditSink):
    """Discards every event; used when auditing is disabled."""

    async def record(self, event: UpgradeAuditEvent) -> None:
        return None


class InMemoryAuditSink(AuditSink):
    """Keeps events in a list, for tests and development."""

    def __init__(self) -> None:
        self._events: list[UpgradeAuditEvent] = []

    async def record(self, event: UpgradeAuditEvent) -> None:
        self._events.append(event)

    def list_events(self, plan_id: str | None = None) -> list[UpgradeAuditEvent]:
        if plan_id is None:
            return list(self._events)
        return [event for event in self._events if event.plan_id == plan_id]


class BestEffortAuditSink(AuditSink):
    """Forwards to another sink; a failing write is logged and dropped."""

    def __init__(self, inner: AuditSink) -> None:
        self.inner = inner

    async def record(self, event: UpgradeAuditEvent) -> None:
        try:
            await self.inner.record(event)
        except Exception as e:
            logger.warning(
                "upgrade_audit_record_failed",
                plan_id=event.plan_id,
                event_type=event.event_type.value,
                error=f"{type(e).__name__}: {e}",
            )


def best_effort(sink: AuditSink | None) -> AuditSink:
    """Wrap a sink so audit failures never interrupt an upgrade."""
    if sink is None:
        return NullAuditSink()
    if isinstance(sink, BestEffortAuditSink | NullAuditSink):
        return sink
    return BestEffortAuditSink(sink)
