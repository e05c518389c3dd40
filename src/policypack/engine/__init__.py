"""
Rule engine for policypack.

This package provides the evaluation framework including:

- extract_containers: Locate containers across workload shapes
- Predicates: Capability, image tag, chart source, service and instance checks
- Rule / RuleSet: The compiled-in rules and their enforcement levels
- Evaluator: Evaluate the rule set against resources
- RunAggregator: Decide pass/fail for a whole run
"""

from __future__ import annotations

from typing import Iterable

from policypack.config import PackConfig
from policypack.engine.aggregator import RunAggregator, RunReport, aggregate
from policypack.engine.evaluator import (
    EvaluationResult,
    Evaluator,
    RuleEvalResult,
)
from policypack.engine.extractor import (
    ContainerRef,
    ContainerRole,
    extract_containers,
)
from policypack.engine.predicates import (
    ChartSource,
    ChartVariant,
    check_capabilities,
    check_chart,
    check_image_tag,
    check_instance_type,
    check_service_type,
    classify_chart_source,
)
from policypack.engine.rules import (
    Rule,
    RuleSet,
    build_rule_set,
    generate_container_rules,
    get_default_rule_set,
)
from policypack.models import Resource

__all__ = [
    # Extractor
    "ContainerRef",
    "ContainerRole",
    "extract_containers",
    # Predicates
    "ChartSource",
    "ChartVariant",
    "check_capabilities",
    "check_chart",
    "check_image_tag",
    "check_instance_type",
    "check_service_type",
    "classify_chart_source",
    # Rules
    "Rule",
    "RuleSet",
    "build_rule_set",
    "generate_container_rules",
    "get_default_rule_set",
    # Evaluator
    "Evaluator",
    "EvaluationResult",
    "RuleEvalResult",
    # Aggregator
    "RunAggregator",
    "RunReport",
    "aggregate",
    # Convenience functions
    "run_evaluation",
]


def run_evaluation(
    resources: Iterable[Resource],
    config: PackConfig | None = None,
    max_workers: int | None = None,
) -> tuple[RunReport, EvaluationResult]:
    """
    Run a full evaluation.

    Builds the rule set from the configuration, evaluates every resource
    and aggregates the violations into a run report.

    Args:
        resources: Resources to check
        config: Optional pack configuration
        max_workers: Optional worker pool size override

    Returns:
        Tuple of (RunReport, EvaluationResult)

    Example:
        >>> from policypack.manifests import load_manifests
        >>> from policypack.engine import run_evaluation
        >>>
        >>> resources = load_manifests(["deploy/"])
        >>> report, result = run_evaluation(resources)
        >>> print(f"Passed: {report.passed}")
    """
    resource_list = list(resources)
    evaluator = Evaluator(config=config)
    violations, result = evaluator.evaluate_all(resource_list, max_workers=max_workers)

    aggregator = RunAggregator()
    aggregator.extend(violations)
    aggregator.record_resources(result.resources_evaluated)
    aggregator.record_errors(result.errors)

    return aggregator.report(), result
