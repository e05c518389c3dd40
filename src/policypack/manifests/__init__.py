"""
Manifest loading for policypack.

Reads resource declarations from YAML and JSON files.
"""

from policypack.manifests.loader import (
    FILE_EXTENSIONS,
    ManifestLoadError,
    ManifestLoader,
    load_manifests,
)

__all__ = [
    "FILE_EXTENSIONS",
    "ManifestLoadError",
    "ManifestLoader",
    "load_manifests",
]
