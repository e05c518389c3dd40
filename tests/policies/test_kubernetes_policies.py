"""
Tests for Kubernetes policies.

Validates the Kubernetes rules end to end through the evaluator:
- Service exposure (no-public-services)
- Container capabilities (disallow-capabilities*)
- Image tags (disallow-latest-tag*)
"""

from __future__ import annotations

import pytest

from policypack.engine import Evaluator, aggregate
from policypack.models import EnforcementLevel, Resource, ResourceKind

WORKLOAD_RULE_SUFFIXES = [
    (ResourceKind.POD, ""),
    (ResourceKind.DEPLOYMENT, "-deployment"),
    (ResourceKind.STATEFUL_SET, "-statefulset"),
    (ResourceKind.JOB, "-job"),
]


@pytest.fixture
def default_evaluator() -> Evaluator:
    """Return an evaluator over the default rule set."""
    return Evaluator()


class TestNoPublicServices:
    """Tests for the no-public-services rule."""

    def test_load_balancer_blocks(self, default_evaluator, load_balancer_service):
        """Test a LoadBalancer Service reports one mandatory violation."""
        violations = default_evaluator.evaluate(load_balancer_service)

        assert len(violations) == 1
        assert violations[0].rule_name == "no-public-services"
        assert violations[0].enforcement_level == EnforcementLevel.MANDATORY
        assert not aggregate(violations).passed

    def test_cluster_ip_passes(self, default_evaluator, cluster_ip_service):
        """Test a ClusterIP Service passes."""
        assert default_evaluator.evaluate(cluster_ip_service) == []

    def test_absent_type_passes(self, default_evaluator):
        """Test a Service without a type passes."""
        service = Resource(
            kind=ResourceKind.SERVICE, name="default", properties={"spec": {"ports": []}}
        )
        assert default_evaluator.evaluate(service) == []

    def test_service_without_spec_passes(self, default_evaluator):
        """Test a Service without spec passes."""
        assert default_evaluator.evaluate(Resource(kind=ResourceKind.SERVICE, name="bare")) == []


class TestDisallowCapabilities:
    """Tests for the disallow-capabilities rules."""

    @pytest.mark.parametrize("kind,suffix", WORKLOAD_RULE_SUFFIXES)
    def test_disallowed_capabilities_per_kind(
        self, default_evaluator, make_workload, make_pod_spec, make_container, kind, suffix
    ):
        """Test each workload kind reports through its own rule."""
        resource = make_workload(
            kind, "web", make_pod_spec(make_container("nginx", add=["NET_ADMIN", "SYS_TIME"]))
        )
        violations = default_evaluator.evaluate(resource)

        assert [v.rule_name for v in violations] == [f"disallow-capabilities{suffix}"] * 2
        assert all(v.enforcement_level == EnforcementLevel.ADVISORY for v in violations)

    def test_allowed_capabilities_pass(self, default_evaluator, make_workload, make_pod_spec, make_container):
        """Test allow-listed capabilities pass."""
        resource = make_workload(
            ResourceKind.DEPLOYMENT,
            "web",
            make_pod_spec(make_container(add=["CHOWN", "NET_BIND_SERVICE", "SETUID"])),
        )
        assert default_evaluator.evaluate(resource) == []

    def test_init_containers_checked(self, default_evaluator, make_workload, make_pod_spec, make_container):
        """Test init containers are checked like main containers."""
        resource = make_workload(
            ResourceKind.JOB,
            "migrate",
            make_pod_spec(
                make_container("app"),
                init=[make_container("setup", add=["SYS_ADMIN"])],
            ),
        )
        violations = default_evaluator.evaluate(resource)

        assert len(violations) == 1
        assert "Container 'setup'" in violations[0].message

    def test_capability_violations_are_advisory(self, default_evaluator, violating_pod):
        """Test capability violations alone do not fail the run."""
        violations = default_evaluator.evaluate(violating_pod)
        report = aggregate(violations)

        assert report.passed
        assert len(report.violations) == 3


class TestDisallowLatestTag:
    """Tests for the disallow-latest-tag rules."""

    @pytest.mark.parametrize("kind,suffix", WORKLOAD_RULE_SUFFIXES)
    def test_latest_tag_per_kind(
        self, default_evaluator, make_workload, make_pod_spec, make_container, kind, suffix
    ):
        """Test each workload kind reports through its own rule."""
        resource = make_workload(kind, "web", make_pod_spec(make_container(image="nginx:latest")))
        violations = default_evaluator.evaluate(resource)

        assert [v.rule_name for v in violations] == [f"disallow-latest-tag{suffix}"]
        assert "mutable ':latest' tag" in violations[0].message

    def test_missing_tag(self, default_evaluator, make_workload, make_pod_spec, make_container):
        """Test untagged images report a missing tag."""
        resource = make_workload(
            ResourceKind.STATEFUL_SET, "db", make_pod_spec(make_container(image="postgres"))
        )
        violations = default_evaluator.evaluate(resource)

        assert len(violations) == 1
        assert "without a tag" in violations[0].message

    def test_one_violation_per_container(self, default_evaluator, make_workload, make_pod_spec, make_container):
        """Test every offending container is reported in order."""
        resource = make_workload(
            ResourceKind.POD,
            "web",
            make_pod_spec(
                make_container("a", image="nginx"),
                make_container("b", image="nginx:1.25.3"),
                make_container("c", image="redis:latest"),
            ),
        )
        messages = [v.message for v in default_evaluator.evaluate(resource)]

        assert len(messages) == 2
        assert "Container 'a'" in messages[0]
        assert "Container 'c'" in messages[1]


class TestMalformedWorkloads:
    """Tests for workloads with absent structure."""

    @pytest.mark.parametrize(
        "properties",
        [
            {},
            {"spec": {}},
            {"spec": {"template": {}}},
            {"spec": {"template": {"metadata": {"labels": {"app": "web"}}}}},
            {"spec": {"template": {"spec": {}}}},
            {"spec": {"template": {"spec": {"containers": None}}}},
        ],
    )
    def test_deployment_without_pod_spec_passes(self, default_evaluator, properties):
        """Test missing template parts produce no container violations."""
        deployment = Resource(kind=ResourceKind.DEPLOYMENT, name="web", properties=properties)
        assert default_evaluator.evaluate(deployment) == []
