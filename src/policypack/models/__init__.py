"""
Data models for policypack.

This package provides the core data models used throughout the engine:

- Resource: A declared infrastructure resource handed to the engine
- Violation: One failed rule check against one resource

Each model has an associated Collection class for managing groups of objects
with filtering and aggregation capabilities.
"""

from policypack.models.resource import (
    Resource,
    ResourceCollection,
    ResourceKind,
    TYPE_TOKENS,
)
from policypack.models.violation import (
    EnforcementLevel,
    Violation,
    ViolationCollection,
    generate_violation_id,
)

__all__ = [
    # Resource module
    "Resource",
    "ResourceCollection",
    "ResourceKind",
    "TYPE_TOKENS",
    # Violation module
    "EnforcementLevel",
    "Violation",
    "ViolationCollection",
    "generate_violation_id",
]
