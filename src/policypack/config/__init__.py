"""
Configuration management for policypack.

Provides the PackConfig class holding the tunables of the rule set.
"""

from policypack.config.pack_config import (
    ALLOWED_CAPABILITIES,
    DISALLOWED_INSTANCE_PREFIXES,
    PackConfig,
    load_config_from_env,
)

__all__ = [
    "ALLOWED_CAPABILITIES",
    "DISALLOWED_INSTANCE_PREFIXES",
    "PackConfig",
    "load_config_from_env",
]
