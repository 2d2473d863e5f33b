# ABOUTME: Public API for the apitrove metadata registry.
# ABOUTME: Exports the registry tree, its record types, and durable load/save.

from apitrove.registry.catalog import DuplicateVersionError, MetadataRegistry, ProviderEntry
from apitrove.registry.store import (
    DEFAULT_REGISTRY_PATH,
    RegistryError,
    load_registry,
    save_registry,
)
from apitrove.registry.types import Candidate, CandidateKey, CandidateMetadata, SourceInfo

__all__ = [
    "DEFAULT_REGISTRY_PATH",
    "Candidate",
    "CandidateKey",
    "CandidateMetadata",
    "DuplicateVersionError",
    "MetadataRegistry",
    "ProviderEntry",
    "RegistryError",
    "SourceInfo",
    "load_registry",
    "save_registry",
]
