"""
Violation data model for policypack.

This module defines the Violation class representing one failed rule
check against one resource, and ViolationCollection for managing the
violations produced by an evaluation run.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class EnforcementLevel(Enum):
    """Enforcement level of a rule."""

    MANDATORY = "mandatory"  # Fails the run
    ADVISORY = "advisory"  # Reported only
    DISABLED = "disabled"  # Rule is not registered

    @classmethod
    def from_string(cls, value: str) -> EnforcementLevel:
        """
        Create EnforcementLevel from string value.

        Args:
            value: String representation (case-insensitive). "blocking" is
                accepted as an alias for "mandatory".

        Returns:
            Matching EnforcementLevel enum value

        Raises:
            ValueError: If value is not a valid enforcement level
        """
        value_lower = value.lower()
        if value_lower == "blocking":
            return cls.MANDATORY
        for level in cls:
            if level.value == value_lower:
                return level
        raise ValueError(f"Invalid enforcement level: {value}")

    @property
    def blocks_run(self) -> bool:
        """True if a violation at this level fails the run."""
        return self == EnforcementLevel.MANDATORY


def generate_violation_id(
    rule_name: str,
    resource_id: str,
    message: str,
    occurrence: int = 0,
) -> str:
    """
    Generate a deterministic violation ID.

    The same rule, resource and message always produce the same ID,
    so repeated runs can be compared. occurrence tells apart repeated
    identical messages from one rule on one resource.
    """
    combined = f"{rule_name}:{resource_id}:{message}"
    if occurrence:
        combined = f"{combined}:{occurrence}"
    hash_digest = hashlib.sha256(combined.encode()).hexdigest()[:16]
    return f"violation-{hash_digest}"


@dataclass(frozen=True)
class Violation:
    """
    Represents one failure of a rule against one resource.

    Attributes:
        id: Deterministic violation identifier
        rule_name: Name of the rule that reported the violation
        resource_id: Identity of the offending resource
        resource_kind: Kind name of the offending resource
        message: Human-readable explanation of the failure
        enforcement_level: Enforcement level of the reporting rule
        description: Rule description
        remediation: Remediation text surfaced verbatim from the rule
    """

    id: str
    rule_name: str
    resource_id: str
    resource_kind: str
    message: str
    enforcement_level: EnforcementLevel
    description: str = ""
    remediation: str = ""

    def is_blocking(self) -> bool:
        """
        Check if this violation fails the run.

        Returns:
            True if enforcement level is MANDATORY
        """
        return self.enforcement_level.blocks_run

    def to_dict(self) -> dict[str, Any]:
        """
        Convert violation to dictionary representation.

        Returns:
            Dictionary with all violation fields
        """
        return {
            "id": self.id,
            "rule_name": self.rule_name,
            "resource_id": self.resource_id,
            "resource_kind": self.resource_kind,
            "message": self.message,
            "enforcement_level": self.enforcement_level.value,
            "description": self.description,
            "remediation": self.remediation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Violation:
        """
        Create a Violation from a dictionary.

        Args:
            data: Dictionary with violation fields

        Returns:
            New Violation instance
        """
        level_val = data.get("enforcement_level", "advisory")
        if isinstance(level_val, str):
            level = EnforcementLevel.from_string(level_val)
        else:
            level = level_val

        rule_name = data["rule_name"]
        resource_id = data.get("resource_id", "")
        message = data.get("message", "")

        return cls(
            id=data.get("id") or generate_violation_id(rule_name, resource_id, message),
            rule_name=rule_name,
            resource_id=resource_id,
            resource_kind=data.get("resource_kind", ""),
            message=message,
            enforcement_level=level,
            description=data.get("description", ""),
            remediation=data.get("remediation", ""),
        )


class ViolationCollection:
    """
    A collection of Violation objects with filtering capabilities.

    Preserves insertion order, which is the order the evaluator reported
    violations in.
    """

    def __init__(self, violations: list[Violation] | None = None) -> None:
        """
        Initialize collection with optional list of violations.

        Args:
            violations: Initial list of violations (defaults to empty list)
        """
        self._violations: list[Violation] = violations if violations is not None else []

    @property
    def violations(self) -> list[Violation]:
        """Get the list of violations."""
        return self._violations

    def __len__(self) -> int:
        """Return number of violations in collection."""
        return len(self._violations)

    def __iter__(self) -> Iterator[Violation]:
        """Iterate over violations in collection."""
        return iter(self._violations)

    def __getitem__(self, index: int) -> Violation:
        """Get violation by index."""
        return self._violations[index]

    def add(self, violation: Violation) -> None:
        """Add a violation to the collection."""
        self._violations.append(violation)

    def extend(self, violations: list[Violation]) -> None:
        """Add multiple violations to the collection."""
        self._violations.extend(violations)

    def filter_by_level(self, level: EnforcementLevel) -> ViolationCollection:
        """
        Filter violations by enforcement level.

        Args:
            level: Enforcement level to filter by

        Returns:
            New ViolationCollection containing only matching violations
        """
        return ViolationCollection(
            [v for v in self._violations if v.enforcement_level == level]
        )

    def filter_by_rule(self, rule_name: str) -> ViolationCollection:
        """
        Filter violations by rule name.

        Args:
            rule_name: Rule name to filter by

        Returns:
            New ViolationCollection containing only matching violations
        """
        return ViolationCollection(
            [v for v in self._violations if v.rule_name == rule_name]
        )

    def filter_by_resource(self, resource_id: str) -> ViolationCollection:
        """
        Filter violations by resource identity.

        Args:
            resource_id: Resource identity to filter by

        Returns:
            New ViolationCollection containing only matching violations
        """
        return ViolationCollection(
            [v for v in self._violations if v.resource_id == resource_id]
        )

    def blocking(self) -> ViolationCollection:
        """Filter to violations that fail the run."""
        return self.filter_by_level(EnforcementLevel.MANDATORY)

    def advisory(self) -> ViolationCollection:
        """Filter to violations that are reported only."""
        return self.filter_by_level(EnforcementLevel.ADVISORY)

    def has_blocking(self) -> bool:
        """Check whether any violation fails the run."""
        return any(v.is_blocking() for v in self._violations)

    def count_by_level(self) -> dict[str, int]:
        """
        Count violations grouped by enforcement level.

        Returns:
            Dictionary mapping level string to count
        """
        counts = {
            EnforcementLevel.MANDATORY.value: 0,
            EnforcementLevel.ADVISORY.value: 0,
        }
        for violation in self._violations:
            key = violation.enforcement_level.value
            counts[key] = counts.get(key, 0) + 1
        return counts

    def count_by_rule(self) -> dict[str, int]:
        """
        Count violations grouped by rule name.

        Returns:
            Dictionary mapping rule name to count
        """
        counts: dict[str, int] = {}
        for violation in self._violations:
            counts[violation.rule_name] = counts.get(violation.rule_name, 0) + 1
        return counts

    def to_list(self) -> list[dict[str, Any]]:
        """Convert collection to list of dictionaries."""
        return [violation.to_dict() for violation in self._violations]

    def to_json(self) -> str:
        """Convert collection to JSON string."""
        return json.dumps(self.to_list(), indent=2, default=str)

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> ViolationCollection:
        """Create collection from list of dictionaries."""
        return cls([Violation.from_dict(item) for item in data])

    def merge(self, other: ViolationCollection) -> ViolationCollection:
        """
        Merge with another collection.

        Args:
            other: Another ViolationCollection to merge

        Returns:
            New ViolationCollection with violations from both collections
        """
        return ViolationCollection(self._violations + other._violations)
