"""
Container extraction for workload resources.

Locates the container lists of a workload wherever its kind keeps them:
directly on a Pod's spec, or under the pod template of a controller
(Deployment, StatefulSet, Job). Absent structure is normal and yields no
containers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from policypack.models import Resource, ResourceKind


class ContainerRole(Enum):
    """Role a container plays in a pod."""

    MAIN = "main"
    INIT = "init"
    EPHEMERAL = "ephemeral"


# Pod spec field holding each role's containers, in extraction order
ROLE_FIELDS: tuple[tuple[ContainerRole, str], ...] = (
    (ContainerRole.MAIN, "containers"),
    (ContainerRole.INIT, "initContainers"),
    (ContainerRole.EPHEMERAL, "ephemeralContainers"),
)

# Where each workload kind keeps its pod spec
POD_SPEC_PATHS: dict[ResourceKind, str] = {
    ResourceKind.POD: "spec",
    ResourceKind.DEPLOYMENT: "spec.template.spec",
    ResourceKind.STATEFUL_SET: "spec.template.spec",
    ResourceKind.JOB: "spec.template.spec",
}


@dataclass(frozen=True)
class ContainerRef:
    """
    A container located inside a resource.

    Attributes:
        role: Role of the container (main, init, ephemeral)
        container: The container mapping as declared
    """

    role: ContainerRole
    container: dict[str, Any]


def pod_spec_path(kind: ResourceKind) -> str | None:
    """Return the pod spec path for a workload kind, None for other kinds."""
    return POD_SPEC_PATHS.get(kind)


def extract_containers(resource: Resource) -> list[ContainerRef]:
    """
    Extract every container of a workload resource.

    Containers are returned main first, then init, then ephemeral, each
    in declaration order. A missing pod spec, template or container list
    yields nothing.

    Args:
        resource: Workload resource

    Returns:
        Ordered list of ContainerRef
    """
    path = pod_spec_path(resource.kind)
    if path is None:
        return []

    pod_spec = resource.get_property(path)
    if not isinstance(pod_spec, dict):
        return []

    refs: list[ContainerRef] = []
    for role, field_name in ROLE_FIELDS:
        containers = pod_spec.get(field_name)
        if not isinstance(containers, list):
            continue
        refs.extend(
            ContainerRef(role=role, container=container)
            for container in containers
            if isinstance(container, dict)
        )

    return refs
