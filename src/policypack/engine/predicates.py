"""
Rule predicates for policypack.

Each predicate takes an already-extracted value (a container, a chart
reference, a service spec, an instance type) and returns the list of
violation messages for it. Predicates do not know about enforcement
levels and never raise on absent optional structure: nothing to check
means no messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Sequence

from policypack.config.pack_config import (
    ALLOWED_CAPABILITIES,
    DISALLOWED_INSTANCE_PREFIXES,
)

OCI_SCHEME = "oci://"
HTTP_SCHEMES = ("http://", "https://")
LOCAL_PREFIXES = ("./", "../")


class ChartVariant(Enum):
    """Helm resource shape a chart reference belongs to."""

    V3 = "v3"  # helm.sh/v3 Release
    V4 = "v4"  # helm.sh/v4 Chart


class ChartSource(Enum):
    """Where a chart reference points."""

    OCI = "oci"
    URL = "url"
    LOCAL = "local"
    REPOSITORY_QUALIFIED = "repository_qualified"  # e.g. "bitnami/nginx"
    BARE_NAME = "bare_name"  # e.g. "nginx"


# =============================================================================
# Container predicates
# =============================================================================


def _container_name(container: dict[str, Any]) -> str:
    name = container.get("name")
    return str(name) if name is not None else ""


def requested_capabilities(container: dict[str, Any]) -> list[str]:
    """Return securityContext.capabilities.add of a container, or []."""
    security_context = container.get("securityContext")
    if not isinstance(security_context, dict):
        return []
    capabilities = security_context.get("capabilities")
    if not isinstance(capabilities, dict):
        return []
    added = capabilities.get("add")
    if not isinstance(added, list):
        return []
    return added


def check_capabilities(
    container: dict[str, Any],
    allowed: Sequence[str] = ALLOWED_CAPABILITIES,
) -> list[str]:
    """
    Report every requested capability outside the allow-list.

    One message per offending capability, in request order. Duplicates
    are each reported.

    Args:
        container: Container mapping
        allowed: Capability allow-list

    Returns:
        List of violation messages
    """
    allowed_set = set(allowed)
    allowed_text = ", ".join(allowed)
    name = _container_name(container)
    messages = []

    for cap in requested_capabilities(container):
        if cap not in allowed_set:
            messages.append(
                f"Container '{name}' adds capability '{cap}' which is not in the allowed list. "
                f"Only the following capabilities are allowed: {allowed_text}."
            )

    return messages


def check_image_tag(container: dict[str, Any]) -> list[str]:
    """
    Report a missing or mutable image tag.

    A reference without ':' has no tag; one ending in ':latest' has a
    mutable tag. At most one message is returned. Containers without an
    image are skipped.

    Args:
        container: Container mapping

    Returns:
        List of violation messages
    """
    image = container.get("image")
    if not isinstance(image, str) or not image:
        return []

    name = _container_name(container)

    if ":" not in image:
        return [
            f"Container '{name}' uses image '{image}' without a tag. An image tag is required."
        ]
    if image.endswith(":latest"):
        return [
            f"Container '{name}' uses image '{image}' with mutable ':latest' tag. "
            "Using a mutable image tag is not allowed."
        ]
    return []


# =============================================================================
# Chart predicates
# =============================================================================


def classify_chart_source(chart: str) -> ChartSource:
    """
    Classify a chart reference by its lexical form.

    Args:
        chart: Chart reference string

    Returns:
        ChartSource of the reference
    """
    if chart.startswith(OCI_SCHEME):
        return ChartSource.OCI
    if chart.startswith(HTTP_SCHEMES):
        return ChartSource.URL
    if chart.startswith(LOCAL_PREFIXES):
        return ChartSource.LOCAL
    if "/" in chart:
        return ChartSource.REPOSITORY_QUALIFIED
    return ChartSource.BARE_NAME


def _repository_url(repository_opts: Any) -> str | None:
    if not isinstance(repository_opts, dict):
        return None
    repo = repository_opts.get("repo")
    return repo if isinstance(repo, str) else None


def check_chart(
    chart: Any,
    repository_opts: Any = None,
    variant: ChartVariant = ChartVariant.V3,
) -> list[str]:
    """
    Check that a Helm chart is sourced from OCI or a local path.

    Checks run in a fixed order and the first failing one reports; at
    most one message is returned.

    The two variants differ on purpose. A v3 Release may name a chart
    without repository options (or with an empty repo) and rely on the
    implicitly configured repositories, so that form passes. Once a v3
    repo is set, the chart name is checked like any other. A v4 Chart has
    no implicit repository and may not set repositoryOpts.repo at all,
    even to an empty string, so every non-OCI, non-local name fails.

    Args:
        chart: Chart reference
        repository_opts: Optional repositoryOpts mapping
        variant: Helm resource shape

    Returns:
        List of violation messages
    """
    if not isinstance(chart, str) or not chart:
        return []

    source = classify_chart_source(chart)
    repo = _repository_url(repository_opts)

    if source == ChartSource.URL:
        return [
            f"Chart '{chart}' is referenced by direct URL. Direct URL chart references are "
            f"not allowed; publish the chart to an OCI registry and reference it with {OCI_SCHEME}."
        ]

    if variant == ChartVariant.V3:
        if repo is not None and repo.startswith(HTTP_SCHEMES):
            return [
                f"Chart '{chart}' uses non-OCI repository '{repo}'. "
                f"Only OCI registries ({OCI_SCHEME}) are allowed as chart repositories."
            ]
        if not repo:
            return []
    elif repo is not None:
        return [
            f"Chart '{chart}' sets repositoryOpts.repo '{repo}'. repositoryOpts are not "
            f"allowed on v4 charts; use an {OCI_SCHEME} chart reference instead."
        ]

    if source == ChartSource.REPOSITORY_QUALIFIED:
        return [
            f"Chart '{chart}' is a repository reference, which requires a traditional Helm "
            f"repository. Traditional repositories are not permitted; use an {OCI_SCHEME} "
            "chart reference."
        ]
    if source == ChartSource.BARE_NAME:
        return [
            f"Chart '{chart}' does not use the OCI protocol. Charts must be referenced "
            f"with {OCI_SCHEME} or a local path (./ or ../)."
        ]
    return []


# =============================================================================
# Service and compute predicates
# =============================================================================


def check_service_type(service_spec: Any) -> list[str]:
    """
    Report a Service exposed through a LoadBalancer.

    Args:
        service_spec: Service spec mapping (may be absent)

    Returns:
        List of violation messages
    """
    if not isinstance(service_spec, dict):
        return []
    if service_spec.get("type") == "LoadBalancer":
        return [
            "Kubernetes Services cannot be of type LoadBalancer, which are exposed to "
            "anything that can reach the Kubernetes cluster. This likely including the "
            "public Internet."
        ]
    return []


def check_instance_type(
    instance_type: Any,
    disallowed_prefixes: Sequence[str] = DISALLOWED_INSTANCE_PREFIXES,
) -> list[str]:
    """
    Report an instance type from a disallowed family.

    Prefixes are tested in order with a plain startswith; the first match
    reports.

    Args:
        instance_type: Instance type string (e.g. "g4dn.xlarge")
        disallowed_prefixes: Ordered family prefixes to reject

    Returns:
        List of violation messages
    """
    if not isinstance(instance_type, str) or not instance_type:
        return []

    for prefix in disallowed_prefixes:
        if instance_type.startswith(prefix):
            return [
                f"Instance type '{instance_type}' belongs to disallowed instance family "
                f"'{prefix}'. Instance types starting with {', '.join(disallowed_prefixes)} "
                "are not allowed."
            ]
    return []
