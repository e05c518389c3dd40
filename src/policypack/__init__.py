"""
policypack - Compliance rules for Kubernetes, Helm and compute resources

A compiled-in rule pack that validates declared infrastructure before it
is deployed. Each rule inspects one kind of resource and reports
violations; any mandatory violation fails the run.

Rules:
- No public LoadBalancer services
- Only allow-listed Linux capabilities in containers
- No untagged or ':latest' container images
- OCI-only Helm chart sources (v3 releases and v4 charts)
- No GPU instance families for compute instances

Quick Start:
    >>> from policypack.manifests import load_manifests
    >>> from policypack.engine import run_evaluation
    >>>
    >>> resources = load_manifests(["deploy/"])
    >>> report, result = run_evaluation(resources)
    >>> print(f"Passed: {report.passed}, {len(report.violations)} violations")
"""

from __future__ import annotations

__version__ = "0.1.0"

# Core models
from policypack.models import (
    EnforcementLevel,
    Resource,
    ResourceCollection,
    ResourceKind,
    Violation,
    ViolationCollection,
)

# Configuration
from policypack.config import PackConfig, load_config_from_env

# Engine
from policypack.engine import (
    Evaluator,
    EvaluationResult,
    Rule,
    RuleSet,
    RunAggregator,
    RunReport,
    build_rule_set,
    extract_containers,
    get_default_rule_set,
    run_evaluation,
)

# Manifests
from policypack.manifests import ManifestLoadError, load_manifests

__all__ = [
    "__version__",
    # Models
    "EnforcementLevel",
    "Resource",
    "ResourceCollection",
    "ResourceKind",
    "Violation",
    "ViolationCollection",
    # Configuration
    "PackConfig",
    "load_config_from_env",
    # Engine
    "Evaluator",
    "EvaluationResult",
    "Rule",
    "RuleSet",
    "RunAggregator",
    "RunReport",
    "build_rule_set",
    "extract_containers",
    "get_default_rule_set",
    "run_evaluation",
    # Manifests
    "ManifestLoadError",
    "load_manifests",
]
