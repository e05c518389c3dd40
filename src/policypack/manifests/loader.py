"""
Manifest loading for policypack.

Reads resource declarations from YAML (multi-document) and JSON files
and turns them into Resource objects for the engine. Two document
shapes are understood:

- Kubernetes objects: ``kind``, ``metadata.name`` and the rest of the
  object as properties.
- Resource envelopes: ``type`` (or ``kind``), ``name``, optional ``urn``
  and a ``properties`` mapping. This is how Helm releases, Helm charts
  and compute instances are declared.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

import yaml

from policypack.models import Resource, ResourceCollection, ResourceKind
from policypack.observability import get_logger

logger = get_logger("manifests")

FILE_EXTENSIONS = (".yaml", ".yml", ".json")

# Kubernetes object fields that are not part of the resource properties
_K8S_HEADER_FIELDS = ("apiVersion", "kind")


class ManifestLoadError(Exception):
    """Exception raised when a manifest cannot be loaded."""

    def __init__(self, message: str, source_path: str | None = None):
        self.source_path = source_path
        prefix = f"{source_path}: " if source_path else ""
        super().__init__(f"{prefix}{message}")


class ManifestLoader:
    """
    Loads resources from manifest files and directories.

    Documents whose kind is not known to the rule set are skipped, or
    rejected with ManifestLoadError in strict mode.
    """

    def __init__(self, strict: bool = False):
        """
        Initialize the loader.

        Args:
            strict: Raise on documents without a recognizable kind
        """
        self.strict = strict

    def load_paths(self, paths: Iterable[str | Path]) -> ResourceCollection:
        """
        Load resources from files and directories.

        Directories are searched recursively for YAML and JSON files.

        Args:
            paths: Files or directories

        Returns:
            ResourceCollection in file and document order

        Raises:
            ManifestLoadError: If a path is missing or a file cannot be parsed
        """
        collection = ResourceCollection()

        for path in paths:
            for file_path in self._discover(Path(path)):
                collection.extend(self.load_file(file_path))

        return collection

    def load_file(self, file_path: str | Path) -> list[Resource]:
        """
        Load resources from one file.

        Args:
            file_path: YAML or JSON file

        Returns:
            List of resources in document order

        Raises:
            ManifestLoadError: If the file cannot be read or parsed
        """
        path = Path(file_path)
        try:
            content = path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise ManifestLoadError(f"Cannot read file: {e}", str(path))

        return self.load_content(content, source=str(path), is_json=path.suffix == ".json")

    def load_content(
        self,
        content: str,
        source: str = "<string>",
        is_json: bool = False,
    ) -> list[Resource]:
        """
        Load resources from manifest text.

        Args:
            content: YAML or JSON text
            source: Source name recorded on each resource
            is_json: Parse as JSON instead of YAML

        Returns:
            List of resources in document order

        Raises:
            ManifestLoadError: If the content cannot be parsed
        """
        try:
            if is_json:
                documents = [json.loads(content)]
            else:
                documents = list(yaml.safe_load_all(content))
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ManifestLoadError(f"Parse error: {e}", source)

        resources = []
        for document in self._flatten(documents):
            resource = self.document_to_resource(document, source)
            if resource is not None:
                resources.append(resource)

        logger.debug(f"Loaded {len(resources)} resources from {source}")
        return resources

    def document_to_resource(self, document: Any, source: str = "<string>") -> Resource | None:
        """
        Convert one parsed document to a Resource.

        Args:
            document: Parsed document
            source: Source name for messages

        Returns:
            Resource, or None when the document is skipped

        Raises:
            ManifestLoadError: In strict mode, if the kind is not recognized
        """
        if not isinstance(document, dict):
            return self._skip(f"Document is not a mapping: {type(document).__name__}", source)

        kind_value = document.get("type") or document.get("kind")
        if not isinstance(kind_value, str):
            return self._skip("Document has no type or kind", source)

        try:
            kind = ResourceKind.from_string(kind_value)
        except ValueError:
            return self._skip(f"Unsupported kind: {kind_value}", source)

        metadata = document.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}

        if "properties" in document:
            properties = document.get("properties") or {}
            name = document.get("name") or metadata.get("name") or "unnamed"
            urn = document.get("urn")
        else:
            properties = {
                k: v for k, v in document.items() if k not in _K8S_HEADER_FIELDS
            }
            name = metadata.get("name") or "unnamed"
            namespace = metadata.get("namespace")
            if namespace:
                name = f"{namespace}/{name}"
            urn = None

        if not isinstance(properties, dict):
            raise ManifestLoadError(f"Properties of {name} must be a mapping", source)

        return Resource(
            kind=kind,
            name=str(name),
            properties=properties,
            urn=urn,
            source=source,
        )

    def _skip(self, reason: str, source: str) -> None:
        if self.strict:
            raise ManifestLoadError(reason, source)
        logger.debug(f"Skipping document in {source}: {reason}")
        return None

    def _flatten(self, documents: list[Any]) -> Iterable[Any]:
        """Expand JSON arrays and Kubernetes List objects into documents."""
        for document in documents:
            if document is None:
                continue
            if isinstance(document, list):
                yield from self._flatten(document)
            elif isinstance(document, dict) and document.get("kind") == "List":
                yield from self._flatten(document.get("items") or [])
            else:
                yield document

    def _discover(self, path: Path) -> list[Path]:
        """Find manifest files under a path."""
        if not path.exists():
            raise ManifestLoadError("Path does not exist", str(path))

        if path.is_file():
            return [path]

        files = [
            p for p in path.rglob("*")
            if p.is_file() and not p.is_symlink() and p.suffix.lower() in FILE_EXTENSIONS
        ]
        return sorted(files)


def load_manifests(
    paths: Iterable[str | Path],
    strict: bool = False,
) -> ResourceCollection:
    """
    Convenience function to load resources from manifest paths.

    Args:
        paths: Files or directories
        strict: Raise on documents without a recognizable kind

    Returns:
        ResourceCollection

    Example:
        >>> resources = load_manifests(["k8s/"])
        >>> print(resources.count_by_kind())
    """
    return ManifestLoader(strict=strict).load_paths(paths)
