"""
Pack configuration for policypack.

Holds the few tunables of the rule set: the capability allow-list, the
disallowed instance-type prefixes, worker pool size and per-rule
enforcement overrides. Configuration is read once when the rule set is
built and never changes afterwards.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from policypack.models import EnforcementLevel

# Linux capabilities a container may add (Pod Security Standards Baseline)
ALLOWED_CAPABILITIES: tuple[str, ...] = (
    "AUDIT_WRITE",
    "CHOWN",
    "DAC_OVERRIDE",
    "FOWNER",
    "FSETID",
    "KILL",
    "MKNOD",
    "NET_BIND_SERVICE",
    "SETFCAP",
    "SETGID",
    "SETPCAP",
    "SETUID",
    "SYS_CHROOT",
)

# Instance families that may not be provisioned, checked in order
DISALLOWED_INSTANCE_PREFIXES: tuple[str, ...] = ("g", "p")


@dataclass
class PackConfig:
    """
    Configuration for building and running the rule set.

    Attributes:
        allowed_capabilities: Capabilities containers may add
        disallowed_instance_prefixes: Ordered instance family prefixes to reject
        max_workers: Worker pool size for whole-run evaluation (1 = sequential)
        enforcement_overrides: Rule name to enforcement level
        disabled_rules: Rule names to leave out of the rule set
    """

    allowed_capabilities: list[str] = field(
        default_factory=lambda: list(ALLOWED_CAPABILITIES)
    )
    disallowed_instance_prefixes: list[str] = field(
        default_factory=lambda: list(DISALLOWED_INSTANCE_PREFIXES)
    )
    max_workers: int = 4
    enforcement_overrides: dict[str, str] = field(default_factory=dict)
    disabled_rules: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If a value is out of range or malformed
        """
        for name in ("allowed_capabilities", "disallowed_instance_prefixes", "disabled_rules"):
            if not isinstance(getattr(self, name), (list, tuple)):
                raise ValueError(f"{name} must be a list")
        if not isinstance(self.enforcement_overrides, dict):
            raise ValueError("enforcement_overrides must be a mapping")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if any(not p for p in self.disallowed_instance_prefixes):
            raise ValueError("disallowed_instance_prefixes must not contain empty prefixes")
        for rule_name, level in self.enforcement_overrides.items():
            try:
                EnforcementLevel.from_string(level)
            except ValueError:
                raise ValueError(
                    f"Invalid enforcement level '{level}' for rule {rule_name}"
                )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "allowed_capabilities": self.allowed_capabilities,
            "disallowed_instance_prefixes": self.disallowed_instance_prefixes,
            "max_workers": self.max_workers,
            "enforcement_overrides": self.enforcement_overrides,
            "disabled_rules": self.disabled_rules,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackConfig:
        """
        Create from dictionary.

        Keys that are missing or null (an empty YAML key) take their
        defaults.
        """

        def value(key: str, default: Any) -> Any:
            found = data.get(key)
            return default if found is None else found

        return cls(
            allowed_capabilities=value("allowed_capabilities", list(ALLOWED_CAPABILITIES)),
            disallowed_instance_prefixes=value(
                "disallowed_instance_prefixes", list(DISALLOWED_INSTANCE_PREFIXES)
            ),
            max_workers=int(value("max_workers", 4)),
            enforcement_overrides=value("enforcement_overrides", {}),
            disabled_rules=value("disabled_rules", []),
        )

    @classmethod
    def from_json(cls, json_str: str) -> PackConfig:
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_file(cls, path: str) -> PackConfig:
        """Load configuration from a JSON or YAML file."""
        path = os.path.expanduser(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: configuration must be a mapping")
        return cls.from_dict(data)

    def save(self, path: str) -> None:
        """Save configuration to a JSON or YAML file."""
        path = os.path.expanduser(path)
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            if path.endswith(".json"):
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False)


def load_config_from_env() -> PackConfig:
    """
    Load configuration from environment variables.

    Environment variables:
        POLICYPACK_CONFIG_FILE: Path to configuration file
        POLICYPACK_MAX_WORKERS: Worker pool size
        POLICYPACK_DISABLED_RULES: Comma-separated rule names to disable

    Returns:
        PackConfig instance
    """
    config_file = os.getenv("POLICYPACK_CONFIG_FILE")
    if config_file and os.path.exists(config_file):
        config = PackConfig.from_file(config_file)
    else:
        config = PackConfig()

    max_workers = os.getenv("POLICYPACK_MAX_WORKERS")
    if max_workers:
        config.max_workers = int(max_workers)

    disabled = os.getenv("POLICYPACK_DISABLED_RULES")
    if disabled:
        config.disabled_rules = [r.strip() for r in disabled.split(",") if r.strip()]

    config.validate()
    return config
