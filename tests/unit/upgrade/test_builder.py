"""Tests for PlanBuilder and dependency-order validation."""

import re

import pytest

from tests.factories import CallLog, StepFactory
from upshift.config.models.upgrade import UpgradeConfig
from upshift.upgrade.audit import AuditEventType, InMemoryAuditSink
from upshift.upgrade.builder import PlanBuilder, check_dependency_order
from upshift.upgrade.catalog import PlanCatalog, build_default_catalog
from upshift.upgrade.errors import DependencyError, VersionError
from upshift.upgrade.models import PlanStatus
from upshift.upgrade.stores.inmemory import InMemoryUpgradeStore


@pytest.fixture
def store() -> InMemoryUpgradeStore:
    return InMemoryUpgradeStore()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def builder(store: InMemoryUpgradeStore, audit_sink: InMemoryAuditSink) -> PlanBuilder:
    return PlanBuilder(build_default_catalog(), store, audit_sink=audit_sink)


class TestCheckDependencyOrder:
    """Tests for check_dependency_order."""

    def test_accepts_sorted_chain(self, call_log: CallLog) -> None:
        """A linear chain in dependency order is valid."""
        check_dependency_order(StepFactory.chain(["a", "b", "c"], call_log))

    def test_accepts_empty_list(self) -> None:
        """An empty step list is valid."""
        check_dependency_order([])

    def test_rejects_duplicate_ids(self) -> None:
        """Two steps with the same id are rejected."""
        steps = [StepFactory.create("a"), StepFactory.create("a")]

        with pytest.raises(DependencyError) as exc_info:
            check_dependency_order(steps)

        assert exc_info.value.step_id == "a"
        assert "Duplicate" in exc_info.value.message

    def test_rejects_unknown_dependency(self) -> None:
        """A dependency on a step outside the plan is rejected."""
        steps = [StepFactory.create("a"), StepFactory.create("b", dependencies=["ghost"])]

        with pytest.raises(DependencyError) as exc_info:
            check_dependency_order(steps)

        assert exc_info.value.step_id == "b"
        assert "ghost" in exc_info.value.message

    def test_rejects_cycle(self) -> None:
        """A -> B -> A is rejected as a cycle."""
        steps = [
            StepFactory.create("a", dependencies=["b"]),
            StepFactory.create("b", dependencies=["a"]),
        ]

        with pytest.raises(DependencyError) as exc_info:
            check_dependency_order(steps)

        assert "cycle" in exc_info.value.message
        assert exc_info.value.step_id in {"a", "b"}

    def test_rejects_self_dependency(self) -> None:
        """A step depending on itself is a cycle."""
        with pytest.raises(DependencyError, match="cycle"):
            check_dependency_order([StepFactory.create("a", dependencies=["a"])])

    def test_rejects_step_before_its_dependency(self) -> None:
        """An acyclic graph listed out of order is rejected."""
        steps = [
            StepFactory.create("b", dependencies=["a"]),
            StepFactory.create("a"),
        ]

        with pytest.raises(DependencyError) as exc_info:
            check_dependency_order(steps)

        assert exc_info.value.step_id == "b"
        assert "ordered before" in exc_info.value.message


class TestBuildPlan:
    """Tests for PlanBuilder.build_plan."""

    @pytest.mark.asyncio
    async def test_sums_estimates(self, builder: PlanBuilder) -> None:
        """Total estimate is the sum of step estimates."""
        steps = [
            StepFactory.create("backup", estimated_minutes=10),
            StepFactory.create("migrate-fields", dependencies=["backup"], estimated_minutes=15),
            StepFactory.create(
                "upgrade-auth", dependencies=["migrate-fields"], estimated_minutes=20
            ),
        ]

        plan = await builder.build_plan("v2", "v3", steps)

        assert plan.total_estimated_minutes == 45
        assert plan.step_ids == ["backup", "migrate-fields", "upgrade-auth"]
        assert plan.status == PlanStatus.PENDING

    @pytest.mark.asyncio
    async def test_plan_id_format(self, builder: PlanBuilder) -> None:
        """Plan ids embed the version pair, a timestamp and a random suffix."""
        plan = await builder.build_plan("v2", "v3")

        assert re.fullmatch(r"upgrade-v2-to-v3-\d+-[0-9a-f]{6}", plan.id)
        assert plan.name == "Upgrade from v2 to v3"

    @pytest.mark.asyncio
    async def test_plan_ids_are_unique(self, builder: PlanBuilder) -> None:
        """Two plans for the same pair get different ids."""
        first = await builder.build_plan("v2", "v3")
        second = await builder.build_plan("v2", "v3")

        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_uses_catalog_when_steps_omitted(self, builder: PlanBuilder) -> None:
        """Catalog steps are used for a registered pair."""
        plan = await builder.build_plan("v1", "v3")

        assert plan.step_ids == [
            "backup-data",
            "migrate-user-fields",
            "upgrade-auth-system",
            "update-token-format",
            "validate-upgrade",
        ]
        assert plan.total_estimated_minutes == 70

    @pytest.mark.asyncio
    async def test_unknown_pair_builds_empty_plan(self, builder: PlanBuilder) -> None:
        """A pair missing from the catalog yields an empty plan."""
        plan = await builder.build_plan("v7", "v9")

        assert plan.steps == []
        assert plan.total_estimated_minutes == 0

    @pytest.mark.asyncio
    async def test_registers_plan_in_store(
        self, builder: PlanBuilder, store: InMemoryUpgradeStore
    ) -> None:
        """Built plans are retrievable from the store."""
        plan = await builder.build_plan("v2", "v3")

        assert await store.get_plan(plan.id) is plan

    @pytest.mark.asyncio
    async def test_records_creation_audit_event(
        self, builder: PlanBuilder, audit_sink: InMemoryAuditSink
    ) -> None:
        """Creation is audited with the step list."""
        plan = await builder.build_plan("v2", "v3")

        events = audit_sink.list_events(plan.id)
        assert [e.event_type for e in events] == [AuditEventType.PLAN_CREATED]
        assert events[0].event_data["steps"] == plan.step_ids

    @pytest.mark.asyncio
    async def test_invalid_graph_is_not_registered(
        self, builder: PlanBuilder, store: InMemoryUpgradeStore
    ) -> None:
        """A rejected plan never reaches the store."""
        steps = [
            StepFactory.create("a", dependencies=["b"]),
            StepFactory.create("b", dependencies=["a"]),
        ]

        with pytest.raises(DependencyError):
            await builder.build_plan("v2", "v3", steps)

        assert await store.list_plans() == []

    @pytest.mark.asyncio
    async def test_rejects_identical_versions(self, builder: PlanBuilder) -> None:
        """Equal from/to versions are rejected by default."""
        with pytest.raises(VersionError):
            await builder.build_plan("v3", "v3")

    @pytest.mark.asyncio
    async def test_identical_versions_allowed_by_config(
        self, store: InMemoryUpgradeStore
    ) -> None:
        """allow_same_version lets equal versions through."""
        builder = PlanBuilder(PlanCatalog(), store, UpgradeConfig(allow_same_version=True))

        plan = await builder.build_plan("v3", "v3")

        assert plan.steps == []
