"""Tests for CompatibilityAnalyzer."""

from tests.factories import StepFactory
from upshift.upgrade.catalog import PlanCatalog, build_default_catalog
from upshift.upgrade.compatibility import CompatibilityAnalyzer
from upshift.upgrade.models import IssueSeverity


class TestAnalyze:
    """Tests for CompatibilityAnalyzer.analyze."""

    def test_v1_to_v3(self) -> None:
        """The direct v1 -> v3 jump is compatible but carries a warning."""
        report = CompatibilityAnalyzer(build_default_catalog()).analyze("v1", "v3")

        assert report.compatible
        assert report.migration_required
        assert report.estimated_minutes == 70
        assert [issue.severity for issue in report.issues] == [IssueSeverity.WARNING]
        assert report.recommendations == ["Upgrade to v2 first, then to v3, to reduce risk"]

    def test_v2_to_v3(self) -> None:
        report = CompatibilityAnalyzer(build_default_catalog()).analyze("v2", "v3")

        assert report.compatible
        assert report.estimated_minutes == 30
        assert report.issues == []
        assert report.recommendations == []

    def test_identical_versions_are_blocking(self) -> None:
        report = CompatibilityAnalyzer().analyze("v3", "v3")

        assert not report.compatible
        assert not report.migration_required
        assert report.estimated_minutes == 0
        assert report.issues[0].severity == IssueSeverity.BLOCKING

    def test_estimate_falls_back_to_catalog(self) -> None:
        """Pairs without a table estimate sum the registered step estimates."""
        catalog = PlanCatalog()
        catalog.register(
            "v3",
            "v4",
            [
                StepFactory.create("a", estimated_minutes=4),
                StepFactory.create("b", dependencies=["a"], estimated_minutes=6),
            ],
        )

        report = CompatibilityAnalyzer(catalog).analyze("v3", "v4")

        assert report.compatible
        assert report.estimated_minutes == 10

    def test_unregistered_path_warns(self) -> None:
        report = CompatibilityAnalyzer(PlanCatalog()).analyze("v3", "v4")

        assert report.compatible
        assert report.estimated_minutes == 0
        assert report.issues[0].severity == IssueSeverity.WARNING
        assert "v3 -> v4" in report.issues[0].message

    def test_without_catalog(self) -> None:
        """Without a catalog unknown pairs simply estimate zero."""
        report = CompatibilityAnalyzer().analyze("v3", "v4")

        assert report.compatible
        assert report.issues == []
        assert report.estimated_minutes == 0
