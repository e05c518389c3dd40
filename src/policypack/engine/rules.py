"""
Rules and the compiled-in rule set for policypack.

A Rule binds one resource kind to one predicate and an enforcement
level. Container rules are generated from a single template over the
workload kinds instead of being written out once per kind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import lru_cache, partial
from typing import Any, Callable, Iterator, Sequence

from policypack.config import PackConfig
from policypack.engine.extractor import ContainerRef, extract_containers
from policypack.engine.predicates import (
    ChartVariant,
    check_capabilities,
    check_chart,
    check_image_tag,
    check_instance_type,
    check_service_type,
)
from policypack.models import EnforcementLevel, Resource, ResourceKind

logger = logging.getLogger(__name__)

ResourceCheck = Callable[[Resource], list[str]]
ContainerCheck = Callable[[dict[str, Any]], list[str]]


@dataclass(frozen=True)
class Rule:
    """
    A compiled-in check against one resource kind.

    Exactly one of resource_check and container_check is set. A
    container check is applied to every extracted container regardless
    of its role.

    Attributes:
        name: Unique rule name
        kind: Resource kind the rule applies to
        enforcement_level: Mandatory (fails the run) or advisory
        description: Human-readable description
        remediation: Remediation hint surfaced with each violation
        resource_check: Predicate over the whole resource
        container_check: Predicate over one container
    """

    name: str
    kind: ResourceKind
    enforcement_level: EnforcementLevel
    description: str
    remediation: str = ""
    resource_check: ResourceCheck | None = None
    container_check: ContainerCheck | None = None

    def __post_init__(self) -> None:
        if (self.resource_check is None) == (self.container_check is None):
            raise ValueError(
                f"Rule {self.name} must define exactly one of resource_check "
                "and container_check"
            )
        if self.container_check is not None and not self.kind.is_workload:
            raise ValueError(
                f"Rule {self.name} checks containers but {self.kind.value} has none"
            )

    @property
    def is_container_rule(self) -> bool:
        """True if the rule checks containers."""
        return self.container_check is not None

    def applies_to(self, resource: Resource) -> bool:
        """Check if the rule applies to a resource's kind."""
        return resource.kind == self.kind

    def evaluate(
        self,
        resource: Resource,
        containers: list[ContainerRef] | None = None,
    ) -> list[str]:
        """
        Run the rule against a resource.

        Args:
            resource: Resource of the rule's kind
            containers: Containers already extracted from the resource,
                extracted here when not given

        Returns:
            Violation messages in extraction order
        """
        if self.container_check is None:
            return self.resource_check(resource)

        if containers is None:
            containers = extract_containers(resource)

        messages: list[str] = []
        for ref in containers:
            messages.extend(self.container_check(ref.container))
        return messages

    def to_dict(self) -> dict[str, Any]:
        """Convert rule metadata to a dictionary."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "enforcement_level": self.enforcement_level.value,
            "description": self.description,
            "remediation": self.remediation,
        }


class RuleSet:
    """
    Ordered, read-only collection of rules.

    Registration order is the order violations are reported in. The set
    is built once and shared between evaluations without locking.
    """

    def __init__(self, rules: Sequence[Rule]) -> None:
        names = [rule.name for rule in rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate rule names: {', '.join(duplicates)}")
        self._rules: tuple[Rule, ...] = tuple(rules)

    @property
    def rules(self) -> tuple[Rule, ...]:
        """Get the rules in registration order."""
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __contains__(self, name: object) -> bool:
        return any(rule.name == name for rule in self._rules)

    def get_by_name(self, name: str) -> Rule | None:
        """Get a rule by name, None if not registered."""
        for rule in self._rules:
            if rule.name == name:
                return rule
        return None

    def rules_for(self, kind: ResourceKind) -> list[Rule]:
        """Get the rules applying to a kind, in registration order."""
        return [rule for rule in self._rules if rule.kind == kind]

    def names(self) -> list[str]:
        """Get rule names in registration order."""
        return [rule.name for rule in self._rules]

    def to_list(self) -> list[dict[str, Any]]:
        """Convert rule metadata to a list of dictionaries."""
        return [rule.to_dict() for rule in self._rules]


# =============================================================================
# Rule definitions
# =============================================================================

# Workload kinds container rules are generated for: (kind, name suffix, label)
CONTAINER_RULE_TARGETS: tuple[tuple[ResourceKind, str, str], ...] = (
    (ResourceKind.POD, "", ""),
    (ResourceKind.DEPLOYMENT, "-deployment", " in Deployments"),
    (ResourceKind.STATEFUL_SET, "-statefulset", " in StatefulSets"),
    (ResourceKind.JOB, "-job", " in Jobs"),
)


def generate_container_rules(
    base_name: str,
    title: str,
    summary: str,
    check: ContainerCheck,
    enforcement_level: EnforcementLevel,
    remediation: str = "",
) -> list[Rule]:
    """
    Instantiate one container rule per workload kind.

    Args:
        base_name: Rule name for Pods; other kinds get a suffix
        title: Short rule title
        summary: Explanation appended to the title
        check: Container predicate
        enforcement_level: Enforcement level of every generated rule
        remediation: Remediation hint

    Returns:
        Rules in CONTAINER_RULE_TARGETS order
    """
    return [
        Rule(
            name=f"{base_name}{suffix}",
            kind=kind,
            enforcement_level=enforcement_level,
            description=f"{title}{label} - {summary}",
            remediation=remediation,
            container_check=check,
        )
        for kind, suffix, label in CONTAINER_RULE_TARGETS
    ]


def _service_check(resource: Resource) -> list[str]:
    return check_service_type(resource.get_property("spec"))


def _chart_check(variant: ChartVariant, resource: Resource) -> list[str]:
    return check_chart(
        resource.get_property("chart"),
        resource.get_property("repositoryOpts"),
        variant,
    )


def _instance_check(prefixes: tuple[str, ...], resource: Resource) -> list[str]:
    return check_instance_type(resource.get_property("instanceType"), prefixes)


def default_rules(config: PackConfig) -> list[Rule]:
    """
    Build the compiled-in rules with the configured tunables.

    Args:
        config: Pack configuration

    Returns:
        Rules in registration order
    """
    allowed = tuple(config.allowed_capabilities)
    prefixes = tuple(config.disallowed_instance_prefixes)

    rules = [
        Rule(
            name="no-public-services",
            kind=ResourceKind.SERVICE,
            enforcement_level=EnforcementLevel.MANDATORY,
            description="Kubernetes Services should be cluster-private.",
            remediation="Use type ClusterIP or NodePort and expose the Service through an ingress.",
            resource_check=_service_check,
        ),
    ]

    rules.extend(generate_container_rules(
        "disallow-capabilities",
        "Disallow Capabilities",
        "Adding capabilities beyond the allowed list must be disallowed "
        "(Pod Security Standards Baseline).",
        partial(check_capabilities, allowed=allowed),
        EnforcementLevel.ADVISORY,
        remediation="Remove capabilities outside the allowed list from "
        "securityContext.capabilities.add.",
    ))

    rules.extend(generate_container_rules(
        "disallow-latest-tag",
        "Disallow Latest Tag",
        "The ':latest' tag is mutable and can lead to unexpected errors. "
        "Use an immutable tag instead.",
        check_image_tag,
        EnforcementLevel.ADVISORY,
        remediation="Pin every image to an immutable version tag such as 'nginx:1.25.3'.",
    ))

    rules.extend([
        Rule(
            name="require-oci-helm-release-v3",
            kind=ResourceKind.HELM_RELEASE_V3,
            enforcement_level=EnforcementLevel.MANDATORY,
            description="Helm v3 Releases must source charts from an OCI registry or a local path.",
            remediation="Reference the chart as oci://<registry>/<chart> or a local path.",
            resource_check=partial(_chart_check, ChartVariant.V3),
        ),
        Rule(
            name="require-oci-helm-chart-v4",
            kind=ResourceKind.HELM_CHART_V4,
            enforcement_level=EnforcementLevel.MANDATORY,
            description="Helm v4 Charts must be referenced with oci:// or a local path.",
            remediation="Reference the chart as oci://<registry>/<chart> and remove repositoryOpts.",
            resource_check=partial(_chart_check, ChartVariant.V4),
        ),
        Rule(
            name="disallow-gpu-instance-types",
            kind=ResourceKind.COMPUTE_INSTANCE,
            enforcement_level=EnforcementLevel.MANDATORY,
            description="Compute instances must not use GPU instance families.",
            remediation="Choose a general purpose or compute optimized instance type.",
            resource_check=partial(_instance_check, prefixes),
        ),
    ])

    return rules


def build_rule_set(config: PackConfig | None = None) -> RuleSet:
    """
    Build the rule set, applying enforcement overrides.

    Overrides are applied once here; a rule overridden to DISABLED, or
    listed in disabled_rules, is left out.

    Args:
        config: Pack configuration (defaults to PackConfig())

    Returns:
        RuleSet in registration order
    """
    config = config or PackConfig()
    rules = default_rules(config)
    known = {rule.name for rule in rules}

    for name in list(config.enforcement_overrides) + list(config.disabled_rules):
        if name not in known:
            logger.warning(f"Ignoring configuration for unknown rule: {name}")

    selected: list[Rule] = []
    for rule in rules:
        level = rule.enforcement_level
        if rule.name in config.enforcement_overrides:
            level = EnforcementLevel.from_string(config.enforcement_overrides[rule.name])
        if rule.name in config.disabled_rules or level == EnforcementLevel.DISABLED:
            logger.debug(f"Rule {rule.name} disabled by configuration")
            continue
        if level != rule.enforcement_level:
            rule = replace(rule, enforcement_level=level)
        selected.append(rule)

    return RuleSet(selected)


@lru_cache(maxsize=1)
def get_default_rule_set() -> RuleSet:
    """Get the rule set built from the default configuration."""
    return build_rule_set()
