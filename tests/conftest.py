"""
Pytest configuration and fixtures for policypack tests.

This module provides common fixtures used across unit, policy and
integration tests.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from policypack.config import PackConfig
from policypack.engine import Evaluator, RuleSet, build_rule_set
from policypack.models import (
    EnforcementLevel,
    Resource,
    ResourceKind,
    Violation,
    ViolationCollection,
    generate_violation_id,
)


# Builders


def pod_spec(*containers: dict[str, Any], init: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Build a pod spec with main and optional init containers."""
    spec: dict[str, Any] = {"containers": list(containers)}
    if init is not None:
        spec["initContainers"] = init
    return spec


def container(
    name: str = "app",
    image: str | None = "nginx:1.25.3",
    add: list[str] | None = None,
) -> dict[str, Any]:
    """Build a container mapping."""
    result: dict[str, Any] = {"name": name}
    if image is not None:
        result["image"] = image
    if add is not None:
        result["securityContext"] = {"capabilities": {"add": add}}
    return result


def workload(kind: ResourceKind, name: str, spec: dict[str, Any]) -> Resource:
    """Build a workload resource, nesting the pod spec under a template for controllers."""
    if kind == ResourceKind.POD:
        properties = {"spec": spec}
    else:
        properties = {"spec": {"template": {"spec": spec}}}
    return Resource(kind=kind, name=name, properties=properties)


# Sample data fixtures


@pytest.fixture
def make_container() -> Callable[..., dict[str, Any]]:
    """Return the container builder."""
    return container


@pytest.fixture
def make_workload() -> Callable[..., Resource]:
    """Return the workload builder."""
    return workload


@pytest.fixture
def make_pod_spec() -> Callable[..., dict[str, Any]]:
    """Return the pod spec builder."""
    return pod_spec


@pytest.fixture
def compliant_pod() -> Resource:
    """Return a Pod that passes every rule."""
    return workload(
        ResourceKind.POD,
        "compliant-pod",
        pod_spec(container("app", "nginx:1.25.3", add=["NET_BIND_SERVICE"])),
    )


@pytest.fixture
def violating_pod() -> Resource:
    """Return a Pod that adds disallowed capabilities and uses ':latest'."""
    return workload(
        ResourceKind.POD,
        "violating-pod",
        pod_spec(container("nginx", "nginx:latest", add=["NET_ADMIN", "SYS_TIME"])),
    )


@pytest.fixture
def load_balancer_service() -> Resource:
    """Return a Service exposed through a LoadBalancer."""
    return Resource(
        kind=ResourceKind.SERVICE,
        name="public-svc",
        properties={"spec": {"type": "LoadBalancer", "ports": [{"port": 80}]}},
    )


@pytest.fixture
def cluster_ip_service() -> Resource:
    """Return a cluster-private Service."""
    return Resource(
        kind=ResourceKind.SERVICE,
        name="private-svc",
        properties={"spec": {"type": "ClusterIP"}},
    )


@pytest.fixture
def gpu_instance() -> Resource:
    """Return a compute instance from a GPU family."""
    return Resource(
        kind=ResourceKind.COMPUTE_INSTANCE,
        name="trainer",
        properties={"instanceType": "p3.2xlarge"},
        urn="urn:host:stack::aws:ec2/instance:Instance::trainer",
    )


# Engine fixtures


@pytest.fixture
def default_config() -> PackConfig:
    """Return the default pack configuration."""
    return PackConfig()


@pytest.fixture
def rule_set(default_config: PackConfig) -> RuleSet:
    """Return a freshly built default rule set."""
    return build_rule_set(default_config)


@pytest.fixture
def evaluator(rule_set: RuleSet, default_config: PackConfig) -> Evaluator:
    """Return an evaluator over the default rule set."""
    return Evaluator(rule_set=rule_set, config=default_config)


def make_violation(
    level: EnforcementLevel,
    rule_name: str = "sample-rule",
    resource_id: str = "Pod/sample",
    message: str = "sample message",
) -> Violation:
    """Build a violation record."""
    return Violation(
        id=generate_violation_id(rule_name, resource_id, message),
        rule_name=rule_name,
        resource_id=resource_id,
        resource_kind="Pod",
        message=message,
        enforcement_level=level,
    )


@pytest.fixture
def mixed_violations() -> ViolationCollection:
    """Return one mandatory and two advisory violations."""
    return ViolationCollection([
        make_violation(EnforcementLevel.ADVISORY, "disallow-latest-tag", "Pod/a", "tag"),
        make_violation(EnforcementLevel.MANDATORY, "no-public-services", "Service/b", "lb"),
        make_violation(EnforcementLevel.ADVISORY, "disallow-capabilities", "Pod/a", "cap"),
    ])
