# ABOUTME: RunContext bundles the collaborators every pipeline step works against.
# ABOUTME: One context per run: a single registry, fetcher, resolution cache and run timestamp.

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from apitrove.core.storage import DEFAULT_APIS_DIR
from apitrove.documents.resolver import ResolutionCache
from apitrove.fetch.http import DocumentFetcher
from apitrove.registry.catalog import MetadataRegistry


@dataclass
class RunContext:
    """State shared by all candidates of one run.

    now is taken once when the run starts, so every candidate updated in the
    same run gets the same timestamp.
    """

    registry: MetadataRegistry
    fetcher: DocumentFetcher
    cache: ResolutionCache = field(default_factory=ResolutionCache)
    apis_dir: Path = DEFAULT_APIS_DIR
    now: datetime = field(default_factory=lambda: datetime.now(UTC))
    force: bool = False
