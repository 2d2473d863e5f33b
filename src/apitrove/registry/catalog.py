# ABOUTME: MetadataRegistry, the in-memory provider -> service -> version tree of candidate metadata.
# ABOUTME: Every mutation swaps in a rebuilt read-only tree, so version moves are a single step.

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from apitrove.registry.types import Candidate, CandidateKey, CandidateMetadata

logger = logging.getLogger(__name__)

DEFAULT_DRIVER = "url"

Versions = Mapping[str, CandidateMetadata]
Services = Mapping[str, Versions]


class DuplicateVersionError(Exception):
    """Raised when inserting or relocating onto a key that is already occupied."""


@dataclass(frozen=True)
class ProviderEntry:
    """One provider's driver kind and its read-only services tree."""

    driver: str
    services: Services


def _freeze(services: Mapping[str, Mapping[str, CandidateMetadata]]) -> Services:
    return MappingProxyType(
        {name: MappingProxyType(dict(versions)) for name, versions in services.items()}
    )


class MetadataRegistry:
    """Tracks every known (provider, service, version) and its metadata.

    The tree itself is copy-on-write: readers only ever see read-only
    mappings, and insert/delete/relocate each build a new tree and publish
    it with one assignment. A relocation therefore never exposes a state in
    which both the old and new version keys (or neither) exist. The
    CandidateMetadata records inside are shared and mutated in place.
    """

    def __init__(self, providers: Mapping[str, ProviderEntry] | None = None) -> None:
        self._providers: Mapping[str, ProviderEntry] = MappingProxyType(dict(providers or {}))

    @classmethod
    def from_tree(
        cls, tree: Mapping[str, tuple[str, Mapping[str, Mapping[str, CandidateMetadata]]]],
    ) -> "MetadataRegistry":
        """Build a registry from {provider: (driver, {service: {version: metadata}})}."""
        return cls({
            provider: ProviderEntry(driver=driver, services=_freeze(services))
            for provider, (driver, services) in tree.items()
        })

    def _publish(self, provider: str, entry: ProviderEntry | None) -> None:
        providers = dict(self._providers)
        if entry is None:
            providers.pop(provider, None)
        else:
            providers[provider] = entry
        self._providers = MappingProxyType(providers)

    def _with_versions(self, key: CandidateKey, versions: dict[str, CandidateMetadata]) -> ProviderEntry:
        entry = self._providers.get(key.provider)
        driver = entry.driver if entry else DEFAULT_DRIVER
        services = {name: dict(v) for name, v in (entry.services.items() if entry else ())}
        if versions:
            services[key.service] = versions
        else:
            services.pop(key.service, None)
        return ProviderEntry(driver=driver, services=_freeze(services))

    def _versions(self, provider: str, service: str) -> Versions:
        entry = self._providers.get(provider)
        if entry is None:
            return MappingProxyType({})
        return entry.services.get(service, MappingProxyType({}))

    def get(self, key: CandidateKey) -> CandidateMetadata | None:
        """Return the metadata stored at key, or None."""
        return self._versions(key.provider, key.service).get(key.version)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, CandidateKey) and self.get(key) is not None

    def __len__(self) -> int:
        return sum(
            len(versions)
            for entry in self._providers.values()
            for versions in entry.services.values()
        )

    def providers(self) -> list[str]:
        """Provider names in stable (sorted) order."""
        return sorted(self._providers)

    def driver(self, provider: str) -> str | None:
        entry = self._providers.get(provider)
        return entry.driver if entry else None

    def ensure_provider(self, provider: str, driver: str = DEFAULT_DRIVER) -> None:
        """Create an empty provider entry if the provider is not yet known."""
        if provider not in self._providers:
            self._publish(provider, ProviderEntry(driver=driver, services=_freeze({})))

    def insert(self, key: CandidateKey, metadata: CandidateMetadata) -> None:
        """Store metadata at key, creating the provider (driver "url") if needed.

        Raises:
            DuplicateVersionError: If key is already occupied.
        """
        if key in self:
            raise DuplicateVersionError(f"{key} already exists in the registry")
        versions = dict(self._versions(key.provider, key.service))
        versions[key.version] = metadata
        self._publish(key.provider, self._with_versions(key, versions))

    def delete(self, key: CandidateKey) -> CandidateMetadata:
        """Remove and return the metadata at key.

        Empty services are dropped; the provider entry itself is kept.

        Raises:
            KeyError: If key is not in the registry.
        """
        versions = dict(self._versions(key.provider, key.service))
        metadata = versions.pop(key.version)
        self._publish(key.provider, self._with_versions(key, versions))
        logger.info("Removed %s from registry", key)
        return metadata

    def relocate(self, key: CandidateKey, new_version: str) -> CandidateKey:
        """Move the metadata at key to new_version in one step.

        Returns:
            The new key.

        Raises:
            KeyError: If key is not in the registry.
            DuplicateVersionError: If new_version is already occupied.
        """
        new_key = CandidateKey(key.provider, key.service, new_version)
        if new_key == key:
            return key
        versions = dict(self._versions(key.provider, key.service))
        if new_version in versions:
            raise DuplicateVersionError(f"Cannot move {key}: {new_key} already exists")
        versions[new_version] = versions.pop(key.version)
        self._publish(key.provider, self._with_versions(key, versions))
        logger.info("Relocated %s to version %s", key, new_version)
        return new_key

    def candidates(self, provider: str | None = None) -> list[Candidate]:
        """All candidates ordered by provider, service and version.

        Args:
            provider: Restrict the result to a single provider.
        """
        result: list[Candidate] = []
        for name in self.providers():
            if provider is not None and name != provider:
                continue
            entry = self._providers[name]
            for service in sorted(entry.services):
                versions = entry.services[service]
                for version in sorted(versions):
                    result.append(Candidate(
                        key=CandidateKey(name, service, version),
                        driver=entry.driver,
                        metadata=versions[version],
                    ))
        return result

    def tree(self) -> Mapping[str, ProviderEntry]:
        """The current read-only provider tree."""
        return self._providers
