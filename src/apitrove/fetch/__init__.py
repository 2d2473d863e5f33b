# ABOUTME: Fetch package for retrieving API description documents from their sources.
# ABOUTME: Exports DocumentFetcher and its result and error types.

from apitrove.fetch.http import (
    DEFAULT_CACHE_PATH,
    DEFAULT_TIMEOUT,
    DocumentFetcher,
    FetchResult,
    RefreshMode,
    SourceMissingError,
    SourceUnreadableError,
    is_remote,
    join_locator,
    locator_to_path,
)

__all__ = [
    "DEFAULT_CACHE_PATH",
    "DEFAULT_TIMEOUT",
    "DocumentFetcher",
    "FetchResult",
    "RefreshMode",
    "SourceMissingError",
    "SourceUnreadableError",
    "is_remote",
    "join_locator",
    "locator_to_path",
]
