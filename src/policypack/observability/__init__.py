"""
Observability for policypack.

Provides structured and human-readable logging for evaluation runs.
"""

from policypack.observability.logging import (
    HumanReadableFormatter,
    PackLogger,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "HumanReadableFormatter",
    "PackLogger",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
