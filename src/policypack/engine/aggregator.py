"""
Run aggregation for policypack.

Collects the violations of every resource in a run and decides whether
the run passes. Any mandatory violation fails the run; advisory
violations are reported without failing it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from policypack.models import Violation, ViolationCollection


@dataclass
class RunReport:
    """
    Outcome of an evaluation run.

    Attributes:
        passed: False iff at least one violation is mandatory
        violations: Every violation of the run, blocking and advisory
        resources_evaluated: Number of resources in the run
        errors: Rule errors recorded during the run
        generated_at: When the report was produced
    """

    passed: bool
    violations: ViolationCollection
    resources_evaluated: int = 0
    errors: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def blocking_count(self) -> int:
        """Number of violations that fail the run."""
        return len(self.violations.blocking())

    @property
    def advisory_count(self) -> int:
        """Number of violations reported only."""
        return len(self.violations.advisory())

    def summary(self) -> dict[str, Any]:
        """Get report summary."""
        return {
            "passed": self.passed,
            "resources_evaluated": self.resources_evaluated,
            "total_violations": len(self.violations),
            "blocking_violations": self.blocking_count,
            "advisory_violations": self.advisory_count,
            "errors": len(self.errors),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert report to a dictionary."""
        return {
            "summary": self.summary(),
            "violations": self.violations.to_list(),
            "errors": self.errors,
            "generated_at": self.generated_at.isoformat(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert report to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)


class RunAggregator:
    """
    Accumulates violations across one run and produces the RunReport.

    Example:
        aggregator = RunAggregator()
        for resource in resources:
            aggregator.extend(evaluator.evaluate(resource))
        report = aggregator.report()
        if not report.passed:
            print(f"{report.blocking_count} blocking violations")
    """

    def __init__(self) -> None:
        self._violations = ViolationCollection()
        self._errors: list[str] = []
        self._resources_evaluated = 0

    def add(self, violation: Violation) -> None:
        """Add one violation."""
        self._violations.add(violation)

    def extend(self, violations: Iterable[Violation]) -> None:
        """Add violations in report order."""
        self._violations.extend(list(violations))

    def record_resources(self, count: int) -> None:
        """Count resources evaluated in the run."""
        self._resources_evaluated += count

    def record_errors(self, errors: Iterable[str]) -> None:
        """Record rule errors to surface in the report."""
        self._errors.extend(errors)

    def report(self) -> RunReport:
        """
        Produce the run report.

        Returns:
            RunReport with pass/fail and every violation
        """
        return RunReport(
            passed=not self._violations.has_blocking(),
            violations=ViolationCollection(list(self._violations)),
            resources_evaluated=self._resources_evaluated,
            errors=list(self._errors),
        )


def aggregate(violations: Iterable[Violation]) -> RunReport:
    """
    Convenience function to build a report from a run's violations.

    Args:
        violations: Violations of the run

    Returns:
        RunReport
    """
    aggregator = RunAggregator()
    aggregator.extend(violations)
    return aggregator.report()
