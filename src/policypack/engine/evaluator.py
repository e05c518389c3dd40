"""
Rule evaluator for policypack.

Evaluates the rule set against resources and produces violations for
non-compliant ones. Each resource is evaluated independently against
the shared, read-only rule set, so a run can be spread over a worker
pool.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable

from policypack.config import PackConfig
from policypack.engine.extractor import ContainerRef, extract_containers
from policypack.engine.rules import Rule, RuleSet, build_rule_set, get_default_rule_set
from policypack.models import (
    Resource,
    Violation,
    ViolationCollection,
    generate_violation_id,
)
from policypack.observability import get_logger

logger = get_logger("engine.evaluator")


@dataclass
class RuleEvalResult:
    """Result of evaluating a single rule across a run."""

    rule_name: str
    resources_checked: int = 0
    compliant: int = 0
    non_compliant: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class EvaluationResult:
    """Result of evaluating a whole run."""

    resources_evaluated: int
    rules_applied: int
    violations_generated: int
    duration_seconds: float
    rule_results: dict[str, RuleEvalResult] = field(default_factory=dict)

    @property
    def errors(self) -> list[str]:
        """All rule errors of the run."""
        return [e for r in self.rule_results.values() for e in r.errors]


@dataclass
class _RuleOutcome:
    """Outcome of one rule against one resource."""

    rule_name: str
    violation_count: int = 0
    error: str | None = None


class Evaluator:
    """
    Evaluates the rule set against resources.

    Rules are selected by resource kind. Violations are reported in rule
    registration order and, within a rule, in container extraction order.
    A resource no rule applies to produces no violations.
    """

    def __init__(
        self,
        rule_set: RuleSet | None = None,
        config: PackConfig | None = None,
    ):
        """
        Initialize the evaluator.

        Args:
            rule_set: Rule set to evaluate (built from config when omitted)
            config: Pack configuration (defaults to PackConfig())
        """
        self.config = config or PackConfig()
        if rule_set is not None:
            self.rule_set = rule_set
        elif config is not None:
            self.rule_set = build_rule_set(config)
        else:
            self.rule_set = get_default_rule_set()

    def evaluate(self, resource: Resource) -> list[Violation]:
        """
        Evaluate all matching rules against one resource.

        Args:
            resource: Resource to check

        Returns:
            List of violations, empty if compliant
        """
        violations, _ = self._evaluate_resource(resource)
        return violations

    def evaluate_all(
        self,
        resources: Iterable[Resource],
        max_workers: int | None = None,
    ) -> tuple[ViolationCollection, EvaluationResult]:
        """
        Evaluate the rule set against every resource of a run.

        Args:
            resources: Resources to check
            max_workers: Worker pool size; None uses the configured size
                and 1 evaluates sequentially

        Returns:
            Tuple of (ViolationCollection in input order, EvaluationResult)
        """
        start_time = time.time()
        resource_list = list(resources)
        workers = max_workers if max_workers is not None else self.config.max_workers
        workers = max(1, min(workers, len(resource_list) or 1))

        logger.evaluation_started(len(resource_list), len(self.rule_set), workers)

        if workers == 1:
            per_resource = [self._evaluate_resource(r) for r in resource_list]
        else:
            per_resource = self._evaluate_parallel(resource_list, workers)

        all_violations: list[Violation] = []
        rule_results: dict[str, RuleEvalResult] = {}

        for resource, (violations, outcomes) in zip(resource_list, per_resource):
            all_violations.extend(violations)
            for outcome in outcomes:
                result = rule_results.setdefault(
                    outcome.rule_name, RuleEvalResult(rule_name=outcome.rule_name)
                )
                result.resources_checked += 1
                if outcome.error is not None:
                    result.errors.append(
                        f"Error evaluating {resource.identity}: {outcome.error}"
                    )
                elif outcome.violation_count:
                    result.non_compliant += 1
                else:
                    result.compliant += 1

        duration = time.time() - start_time

        evaluation_result = EvaluationResult(
            resources_evaluated=len(resource_list),
            rules_applied=len(rule_results),
            violations_generated=len(all_violations),
            duration_seconds=duration,
            rule_results=rule_results,
        )

        logger.evaluation_completed(len(resource_list), len(all_violations), duration)

        return ViolationCollection(all_violations), evaluation_result

    def _evaluate_parallel(
        self,
        resources: list[Resource],
        workers: int,
    ) -> list[tuple[list[Violation], list[_RuleOutcome]]]:
        """Evaluate resources on a bounded pool, keeping input order."""
        results: list[tuple[list[Violation], list[_RuleOutcome]]] = [
            ([], []) for _ in resources
        ]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_index = {
                executor.submit(self._evaluate_resource, resource): i
                for i, resource in enumerate(resources)
            }
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()

        return results

    def _evaluate_resource(
        self, resource: Resource
    ) -> tuple[list[Violation], list[_RuleOutcome]]:
        """
        Evaluate matching rules against a resource.

        Containers are extracted at most once per resource and shared by
        every container rule.

        Args:
            resource: Resource to check

        Returns:
            Tuple of (violations, per-rule outcomes)
        """
        violations: list[Violation] = []
        outcomes: list[_RuleOutcome] = []
        containers: list[ContainerRef] | None = None

        for rule in self.rule_set.rules_for(resource.kind):
            outcome = _RuleOutcome(rule_name=rule.name)
            outcomes.append(outcome)

            try:
                if rule.is_container_rule and containers is None:
                    containers = extract_containers(resource)
                messages = rule.evaluate(resource, containers)
            except Exception as e:
                # Inputs outside the documented shapes; the other rules still run
                outcome.error = str(e)
                logger.rule_failed(rule.name, resource.identity, str(e))
                continue

            outcome.violation_count = len(messages)
            violations.extend(self._create_violations(rule, resource, messages))

        return violations, outcomes

    def _create_violations(
        self,
        rule: Rule,
        resource: Resource,
        messages: list[str],
    ) -> list[Violation]:
        """
        Create violation records for a rule's messages.

        Args:
            rule: Rule that reported
            resource: Offending resource
            messages: Messages in report order

        Returns:
            List of violations
        """
        violations = []
        seen: dict[str, int] = {}

        for message in messages:
            occurrence = seen.get(message, 0)
            seen[message] = occurrence + 1

            violation = Violation(
                id=generate_violation_id(rule.name, resource.identity, message, occurrence),
                rule_name=rule.name,
                resource_id=resource.identity,
                resource_kind=resource.kind.value,
                message=message,
                enforcement_level=rule.enforcement_level,
                description=rule.description,
                remediation=rule.remediation,
            )
            logger.violation_reported(
                violation.id,
                rule.name,
                resource.identity,
                rule.enforcement_level.value,
            )
            violations.append(violation)

        return violations
