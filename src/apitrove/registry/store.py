# ABOUTME: Durable storage for the MetadataRegistry as a YAML file.
# ABOUTME: Loaded once at run start, saved once at run end by atomically replacing the file.

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from apitrove.registry.catalog import DEFAULT_DRIVER, MetadataRegistry
from apitrove.registry.mapping import dict_to_metadata, metadata_to_dict
from apitrove.registry.types import CandidateMetadata

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path("metadata") / "registry.yaml"


class RegistryError(Exception):
    """Raised when the registry file cannot be read, parsed or written."""


def _parse_tree(data: dict[Any, Any]) -> MetadataRegistry:
    tree: dict[str, tuple[str, dict[str, dict[str, CandidateMetadata]]]] = {}
    for provider, entry in data.items():
        if not isinstance(entry, dict):
            raise RegistryError(f"Provider {provider!r} is not a mapping")
        services: dict[str, dict[str, CandidateMetadata]] = {}
        for service, versions in (entry.get("apis") or {}).items():
            if not isinstance(versions, dict):
                raise RegistryError(f"Service {provider}:{service} is not a mapping")
            services[str(service or "")] = {
                str(version): dict_to_metadata(md or {}) for version, md in versions.items()
            }
        tree[str(provider)] = (str(entry.get("driver") or DEFAULT_DRIVER), services)
    return MetadataRegistry.from_tree(tree)


def load_registry(path: Path | None = None) -> MetadataRegistry:
    """Load the registry from disk.

    A missing file is an empty registry, not an error.

    Args:
        path: Registry file. Defaults to metadata/registry.yaml.

    Raises:
        RegistryError: If the file exists but cannot be parsed.
    """
    registry_path = path or DEFAULT_REGISTRY_PATH
    if not registry_path.exists():
        logger.info("No registry at %s, starting empty", registry_path)
        return MetadataRegistry()
    try:
        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise RegistryError(f"Cannot read registry {registry_path}: {exc}") from exc
    if data is None:
        return MetadataRegistry()
    if not isinstance(data, dict):
        raise RegistryError(f"Registry {registry_path} is not a mapping")
    try:
        return _parse_tree(data)
    except (TypeError, ValueError, AttributeError) as exc:
        raise RegistryError(f"Malformed registry {registry_path}: {exc}") from exc


def registry_to_dict(registry: MetadataRegistry) -> dict[str, Any]:
    """Plain-dict form of the registry, as written to disk."""
    result: dict[str, Any] = {}
    for provider, entry in sorted(registry.tree().items()):
        result[provider] = {
            "driver": entry.driver,
            "apis": {
                service: {
                    version: metadata_to_dict(md) for version, md in sorted(versions.items())
                }
                for service, versions in sorted(entry.services.items())
            },
        }
    return result


def save_registry(registry: MetadataRegistry, path: Path | None = None) -> None:
    """Write the registry to disk, replacing the previous file atomically.

    The content is written to a temporary file in the same directory and
    then renamed over the target, so readers see either the old or the new
    registry, never a partial one.

    Raises:
        RegistryError: If the file cannot be written.
    """
    registry_path = path or DEFAULT_REGISTRY_PATH
    content = yaml.safe_dump(
        registry_to_dict(registry), sort_keys=False, allow_unicode=True, default_flow_style=False,
    )
    try:
        registry_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=registry_path.parent, prefix=".registry-", suffix=".tmp")
    except OSError as exc:
        raise RegistryError(f"Cannot write registry {registry_path}: {exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, registry_path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise RegistryError(f"Cannot write registry {registry_path}: {exc}") from exc
    logger.info("Saved %d candidate(s) to %s", len(registry), registry_path)
