"""Pre-check: advisory compatibility analysis for an upgrade path.

Stateless. It only informs the decision to build a plan and never touches
plans or progress.
"""

from dataclasses import dataclass

from upshift.upgrade.catalog import PlanCatalog
from upshift.upgrade.models import CompatibilityIssue, CompatibilityReport, IssueSeverity


@dataclass(frozen=True)
class KnownIssue:
    """Static entry describing a known problem on an upgrade path."""

    from_version: str
    to_version: str
    severity: IssueSeverity
    message: str


KNOWN_ISSUES: tuple[KnownIssue, ...] = (
    KnownIssue(
        from_version="v1",
        to_version="v3",
        severity=IssueSeverity.WARNING,
        message="Direct v1 to v3 upgrade migrates user fields and auth in a single run",
    ),
)

RECOMMENDATIONS: dict[tuple[str, str], tuple[str, ...]] = {
    ("v1", "v3"): ("Upgrade to v2 first, then to v3, to reduce risk",),
}

# Minutes
EFFORT_ESTIMATES: dict[tuple[str, str], float] = {
    ("v1", "v3"): 70,
    ("v2", "v3"): 30,
}


class CompatibilityAnalyzer:
    """Looks up known issues and effort for a version pair."""

    def __init__(self, catalog: PlanCatalog | None = None) -> None:
        self._catalog = catalog

    def analyze(self, from_version: str, to_version: str) -> CompatibilityReport:
        """Produce a compatibility report.

        The plan is compatible unless at least one blocking issue applies.
        Identical versions are blocking and estimate zero effort.
        """
        pair = (from_version, to_version)
        issues: list[CompatibilityIssue] = []
        recommendations = list(RECOMMENDATIONS.get(pair, ()))

        if from_version == to_version:
            issues.append(
                CompatibilityIssue(
                    severity=IssueSeverity.BLOCKING,
                    message="Source and target versions are identical",
                )
            )
            estimated_minutes: float = 0
        else:
            issues.extend(
                CompatibilityIssue(severity=known.severity, message=known.message)
                for known in KNOWN_ISSUES
                if (known.from_version, known.to_version) == pair
            )
            estimated_minutes = self._estimate(pair, issues)

        return CompatibilityReport(
            from_version=from_version,
            to_version=to_version,
            compatible=not any(i.severity == IssueSeverity.BLOCKING for i in issues),
            migration_required=from_version != to_version,
            issues=issues,
            recommendations=recommendations,
            estimated_minutes=estimated_minutes,
        )

    def _estimate(self, pair: tuple[str, str], issues: list[CompatibilityIssue]) -> float:
        if pair in EFFORT_ESTIMATES:
            return EFFORT_ESTIMATES[pair]
        if self._catalog is None:
            return 0

        steps = self._catalog.get(*pair)
        if steps is None:
            issues.append(
                CompatibilityIssue(
                    severity=IssueSeverity.WARNING,
                    message=f"No upgrade path registered for {pair[0]} -> {pair[1]}",
                )
            )
            return 0
        return sum(step.estimated_minutes for step in steps)
