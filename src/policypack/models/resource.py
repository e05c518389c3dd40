"""
Resource data model for policypack.

This module defines the Resource class representing a declared
infrastructure resource and ResourceCollection for managing groups of
resources handed to the engine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


class ResourceKind(Enum):
    """Kinds of resources the rule set knows about."""

    POD = "Pod"
    DEPLOYMENT = "Deployment"
    STATEFUL_SET = "StatefulSet"
    JOB = "Job"
    SERVICE = "Service"
    HELM_RELEASE_V3 = "HelmReleaseV3"
    HELM_CHART_V4 = "HelmChartV4"
    COMPUTE_INSTANCE = "ComputeInstance"

    @classmethod
    def from_string(cls, value: str) -> ResourceKind:
        """
        Create ResourceKind from a kind name or a host type token.

        Args:
            value: Kind name (case-insensitive) or type token such as
                "kubernetes:apps/v1:Deployment"

        Returns:
            Matching ResourceKind enum value

        Raises:
            ValueError: If value does not name a known kind
        """
        if value in TYPE_TOKENS:
            return TYPE_TOKENS[value]

        value_lower = value.lower()
        for kind in cls:
            if kind.value.lower() == value_lower:
                return kind
        raise ValueError(f"Invalid resource kind: {value}")

    @property
    def is_workload(self) -> bool:
        """True for kinds that carry containers."""
        return self in (
            ResourceKind.POD,
            ResourceKind.DEPLOYMENT,
            ResourceKind.STATEFUL_SET,
            ResourceKind.JOB,
        )


# Type tokens used by infrastructure-as-code hosts
TYPE_TOKENS: dict[str, ResourceKind] = {
    "kubernetes:core/v1:Pod": ResourceKind.POD,
    "kubernetes:apps/v1:Deployment": ResourceKind.DEPLOYMENT,
    "kubernetes:apps/v1:StatefulSet": ResourceKind.STATEFUL_SET,
    "kubernetes:batch/v1:Job": ResourceKind.JOB,
    "kubernetes:core/v1:Service": ResourceKind.SERVICE,
    "kubernetes:helm.sh/v3:Release": ResourceKind.HELM_RELEASE_V3,
    "kubernetes:helm.sh/v4:Chart": ResourceKind.HELM_CHART_V4,
    "aws:ec2/instance:Instance": ResourceKind.COMPUTE_INSTANCE,
}


@dataclass(frozen=True)
class Resource:
    """
    Represents one declared resource to be checked.

    Resources are read-only inputs. The engine never mutates them; the
    properties mapping is the resource's declared shape as the host
    deserialized it, and any field in it may be absent.

    Attributes:
        kind: Kind of the resource
        name: Host-assigned name, used for message formatting
        properties: Declared shape (e.g. "spec", "chart", "instanceType")
        urn: Optional unique identifier assigned by the host
        source: Where the resource was read from (file path), if known
    """

    kind: ResourceKind
    name: str
    properties: dict[str, Any] = field(default_factory=dict)
    urn: str | None = None
    source: str | None = None

    @property
    def identity(self) -> str:
        """Unique identity used in violation records."""
        if self.urn:
            return self.urn
        return f"{self.kind.value}/{self.name}"

    def get_property(self, path: str, default: Any = None) -> Any:
        """
        Get a nested property value using dot notation.

        Args:
            path: Dot-separated path (e.g., "spec.template.spec")
            default: Default value if any segment is absent

        Returns:
            Property value or default
        """
        current: Any = self.properties

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        if current is None:
            return default
        return current

    def to_dict(self) -> dict[str, Any]:
        """
        Convert resource to dictionary representation.

        Returns:
            Dictionary with all resource fields, suitable for JSON serialization
        """
        return {
            "kind": self.kind.value,
            "name": self.name,
            "urn": self.urn,
            "source": self.source,
            "properties": self.properties,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Resource:
        """
        Create a Resource from a dictionary.

        Args:
            data: Dictionary with resource fields

        Returns:
            New Resource instance
        """
        kind_val = data["kind"]
        if isinstance(kind_val, str):
            kind = ResourceKind.from_string(kind_val)
        else:
            kind = kind_val

        return cls(
            kind=kind,
            name=data.get("name", ""),
            properties=data.get("properties", {}),
            urn=data.get("urn"),
            source=data.get("source"),
        )


class ResourceCollection:
    """
    A collection of Resource objects with filtering capabilities.

    Attributes:
        resources: List of Resource objects in this collection
    """

    def __init__(self, resources: list[Resource] | None = None) -> None:
        """
        Initialize collection with optional list of resources.

        Args:
            resources: Initial list of resources (defaults to empty list)
        """
        self._resources: list[Resource] = resources if resources is not None else []

    @property
    def resources(self) -> list[Resource]:
        """Get the list of resources."""
        return self._resources

    def __len__(self) -> int:
        """Return number of resources in collection."""
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        """Iterate over resources in collection."""
        return iter(self._resources)

    def __getitem__(self, index: int) -> Resource:
        """Get resource by index."""
        return self._resources[index]

    def add(self, resource: Resource) -> None:
        """Add a resource to the collection."""
        self._resources.append(resource)

    def extend(self, resources: list[Resource]) -> None:
        """Add multiple resources to the collection."""
        self._resources.extend(resources)

    def filter_by_kind(self, kind: ResourceKind) -> ResourceCollection:
        """
        Filter resources by kind.

        Args:
            kind: Resource kind to filter by

        Returns:
            New ResourceCollection containing only matching resources
        """
        return ResourceCollection([r for r in self._resources if r.kind == kind])

    def get_by_identity(self, identity: str) -> Resource | None:
        """
        Get a resource by its identity.

        Args:
            identity: Identity string (URN or "<kind>/<name>")

        Returns:
            Resource if found, None otherwise
        """
        for resource in self._resources:
            if resource.identity == identity:
                return resource
        return None

    def count_by_kind(self) -> dict[str, int]:
        """
        Count resources grouped by kind.

        Returns:
            Dictionary mapping kind name to count
        """
        counts: dict[str, int] = {}
        for resource in self._resources:
            counts[resource.kind.value] = counts.get(resource.kind.value, 0) + 1
        return counts

    def to_list(self) -> list[dict[str, Any]]:
        """Convert collection to list of dictionaries."""
        return [resource.to_dict() for resource in self._resources]

    def to_json(self) -> str:
        """Convert collection to JSON string."""
        return json.dumps(self.to_list(), indent=2, default=str)

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> ResourceCollection:
        """Create collection from list of dictionaries."""
        return cls([Resource.from_dict(item) for item in data])

    def merge(self, other: ResourceCollection) -> ResourceCollection:
        """
        Merge with another collection.

        Args:
            other: Another ResourceCollection to merge

        Returns:
            New ResourceCollection with resources from both collections
        """
        return ResourceCollection(self._resources + other._resources)
