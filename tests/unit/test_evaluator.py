"""
Tests for the rule evaluator.
"""

from __future__ import annotations

import logging
from unittest.mock import patch

from policypack.config import PackConfig
from policypack.engine import Evaluator, Rule, RuleSet
from policypack.engine.extractor import extract_containers
from policypack.models import (
    EnforcementLevel,
    Resource,
    ResourceKind,
    generate_violation_id,
)


def _raising_check(resource):
    raise RuntimeError("unexpected shape")


class TestEvaluate:
    """Tests for Evaluator.evaluate on single resources."""

    def test_compliant_pod(self, evaluator, compliant_pod):
        """Test a compliant Pod produces no violations."""
        assert evaluator.evaluate(compliant_pod) == []

    def test_violating_pod(self, evaluator, violating_pod):
        """Test capability violations come before tag violations."""
        violations = evaluator.evaluate(violating_pod)

        assert [v.rule_name for v in violations] == [
            "disallow-capabilities",
            "disallow-capabilities",
            "disallow-latest-tag",
        ]
        assert all(v.enforcement_level == EnforcementLevel.ADVISORY for v in violations)
        assert all(v.resource_id == "Pod/violating-pod" for v in violations)

    def test_violation_carries_rule_metadata(self, evaluator, load_balancer_service):
        """Test violations surface rule description and remediation."""
        violation = evaluator.evaluate(load_balancer_service)[0]
        rule = evaluator.rule_set.get_by_name("no-public-services")

        assert violation.description == rule.description
        assert violation.remediation == rule.remediation
        assert violation.resource_kind == "Service"

    def test_unmatched_kind_is_not_an_error(self, make_workload, make_pod_spec):
        """Test resources with no applicable rule produce nothing."""
        rule_set = RuleSet([])
        evaluator = Evaluator(rule_set=rule_set)
        pod = make_workload(ResourceKind.POD, "web", make_pod_spec())
        assert evaluator.evaluate(pod) == []

    def test_deployment_without_template(self, evaluator):
        """Test a Deployment missing its pod template passes container rules."""
        deployment = Resource(
            kind=ResourceKind.DEPLOYMENT, name="web", properties={"spec": {}}
        )
        assert evaluator.evaluate(deployment) == []

    def test_containers_extracted_once(self, evaluator, violating_pod):
        """Test container rules share one extraction per resource."""
        with patch(
            "policypack.engine.evaluator.extract_containers",
            wraps=extract_containers,
        ) as mock_extract:
            evaluator.evaluate(violating_pod)

        assert mock_extract.call_count == 1

    def test_duplicate_messages_get_distinct_ids(self, evaluator, make_workload, make_pod_spec, make_container):
        """Test repeated identical messages keep unique IDs."""
        pod = make_workload(
            ResourceKind.POD,
            "web",
            make_pod_spec(make_container("app", add=["SYS_ADMIN", "SYS_ADMIN"])),
        )
        violations = evaluator.evaluate(pod)

        assert len(violations) == 2
        assert violations[0].message == violations[1].message
        assert violations[0].id != violations[1].id

    def test_violation_ids_are_deterministic(self, evaluator, load_balancer_service):
        """Test the same input produces the same IDs."""
        first = evaluator.evaluate(load_balancer_service)[0]
        second = evaluator.evaluate(load_balancer_service)[0]

        assert first.id == second.id
        assert first.id == generate_violation_id(
            "no-public-services", "Service/public-svc", first.message
        )


class TestRuleErrors:
    """Tests for rules that raise during evaluation."""

    def test_failing_rule_is_recorded(self, caplog, load_balancer_service):
        """Test a raising rule is logged and does not stop other rules."""
        rule_set = RuleSet([
            Rule(
                name="broken",
                kind=ResourceKind.SERVICE,
                enforcement_level=EnforcementLevel.MANDATORY,
                description="Raises",
                resource_check=_raising_check,
            ),
            Rule(
                name="works",
                kind=ResourceKind.SERVICE,
                enforcement_level=EnforcementLevel.ADVISORY,
                description="Reports",
                resource_check=lambda r: ["reported"],
            ),
        ])
        evaluator = Evaluator(rule_set=rule_set)

        with caplog.at_level(logging.WARNING, logger="policypack"):
            violations, result = evaluator.evaluate_all([load_balancer_service])

        assert [v.rule_name for v in violations] == ["works"]
        assert result.rule_results["broken"].errors
        assert "unexpected shape" in result.errors[0]
        assert "broken" in caplog.text


class TestEvaluateAll:
    """Tests for Evaluator.evaluate_all over a run."""

    def test_results_in_input_order(self, evaluator, violating_pod, load_balancer_service, gpu_instance):
        """Test violations follow resource input order."""
        resources = [load_balancer_service, violating_pod, gpu_instance]
        violations, _ = evaluator.evaluate_all(resources, max_workers=3)

        resource_order = []
        for v in violations:
            if v.resource_id not in resource_order:
                resource_order.append(v.resource_id)

        assert resource_order == [
            "Service/public-svc",
            "Pod/violating-pod",
            "urn:host:stack::aws:ec2/instance:Instance::trainer",
        ]

    def test_parallel_matches_sequential(self, evaluator, make_workload, make_pod_spec, make_container):
        """Test the worker pool gives the same result as sequential evaluation."""
        resources = [
            make_workload(
                kind,
                f"w{i}",
                make_pod_spec(make_container(image="nginx", add=["SYS_ADMIN"])),
            )
            for i, kind in enumerate(
                [ResourceKind.POD, ResourceKind.DEPLOYMENT, ResourceKind.STATEFUL_SET, ResourceKind.JOB] * 5
            )
        ]

        sequential, _ = evaluator.evaluate_all(resources, max_workers=1)
        parallel, _ = evaluator.evaluate_all(resources, max_workers=8)

        assert [v.id for v in sequential] == [v.id for v in parallel]
        assert len(sequential) == 40

    def test_evaluation_result(self, evaluator, compliant_pod, violating_pod):
        """Test run statistics."""
        violations, result = evaluator.evaluate_all([compliant_pod, violating_pod])

        assert result.resources_evaluated == 2
        assert result.violations_generated == len(violations) == 3
        assert result.rules_applied == 2
        caps = result.rule_results["disallow-capabilities"]
        assert caps.resources_checked == 2
        assert caps.compliant == 1
        assert caps.non_compliant == 1
        assert result.errors == []

    def test_empty_run(self, evaluator):
        """Test evaluating no resources."""
        violations, result = evaluator.evaluate_all([])

        assert len(violations) == 0
        assert result.resources_evaluated == 0

    def test_config_worker_count(self, compliant_pod):
        """Test the configured worker count is used by default."""
        evaluator = Evaluator(config=PackConfig(max_workers=1))
        with patch("policypack.engine.evaluator.ThreadPoolExecutor") as mock_pool:
            evaluator.evaluate_all([compliant_pod, compliant_pod])

        mock_pool.assert_not_called()

    def test_rule_set_built_from_config(self):
        """Test a config without a rule set builds the rules from it."""
        evaluator = Evaluator(config=PackConfig(disabled_rules=["no-public-services"]))
        assert "no-public-services" not in evaluator.rule_set
