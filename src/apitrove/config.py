# ABOUTME: Run configuration for apitrove: file locations, fetch timeout and cache behaviour.
# ABOUTME: Assembled by the CLI from options and APITROVE_* environment variables.

from dataclasses import dataclass
from pathlib import Path

from apitrove.core.storage import DEFAULT_APIS_DIR
from apitrove.fetch.http import DEFAULT_CACHE_PATH, DEFAULT_TIMEOUT, DocumentFetcher, RefreshMode
from apitrove.registry.store import DEFAULT_REGISTRY_PATH


@dataclass(frozen=True)
class Settings:
    """Everything a run needs to know about where things live and how to fetch.

    cache_path None disables the HTTP cache.
    """

    registry_path: Path = DEFAULT_REGISTRY_PATH
    apis_dir: Path = DEFAULT_APIS_DIR
    cache_path: Path | None = DEFAULT_CACHE_PATH
    timeout: float = DEFAULT_TIMEOUT
    refresh: RefreshMode = RefreshMode.DEFAULT
    force: bool = False

    def build_fetcher(self) -> DocumentFetcher:
        return DocumentFetcher(
            timeout=self.timeout, cache_path=self.cache_path, refresh=self.refresh,
        )
