# ABOUTME: Record types for tracked API documents: source info, candidate metadata, candidate keys.
# ABOUTME: CandidateMetadata is the durable per-version record the reconciler mutates each run.

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class SourceInfo:
    """Where a document is fetched from and the format it declared there."""

    url: str
    format: str | None = None
    version: str | None = None


@dataclass
class CandidateMetadata:
    """Durable metadata for one (provider, service, version) document.

    added is set once when the document is first stored and never changes.
    history is append-only: every source the document has been fetched from,
    oldest first. status_code and media_type are only set while the source
    is failing.
    """

    source: SourceInfo
    filename: str = ""
    name: str = ""
    spec_version: str | None = None
    hash: str | None = None
    added: datetime | None = None
    updated: datetime | None = None
    history: list[SourceInfo] = field(default_factory=list)
    patch: dict[str, Any] | None = None
    preferred: bool | None = None
    status_code: int | None = None
    media_type: str | None = None
    endpoints: int = 0
    valid: bool | None = None
    auto_upgrade: bool = False


@dataclass(frozen=True, order=True)
class CandidateKey:
    """Registry address of one document. service is "" when the provider has a single API."""

    provider: str
    service: str
    version: str

    def __str__(self) -> str:
        return f"{self.provider} {self.service or '-'} {self.version}"


@dataclass
class Candidate:
    """A registry entry as seen by pipeline steps: its key, driver and metadata."""

    key: CandidateKey
    driver: str
    metadata: CandidateMetadata

    @property
    def provider(self) -> str:
        return self.key.provider

    @property
    def service(self) -> str:
        return self.key.service

    @property
    def version(self) -> str:
        return self.key.version
