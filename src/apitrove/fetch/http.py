# ABOUTME: DocumentFetcher retrieves raw API description documents from source locators.
# ABOUTME: Network locators go through a keep-alive, cache-backed httpx client; files are read from disk.

import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urljoin, urlparse
from urllib.request import url2pathname

import httpx
from hishel import SyncSqliteStorage
from hishel.httpx import SyncCacheTransport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1.0
DEFAULT_CACHE_PATH = Path("metadata") / "main.cache"

# Status reported for timeouts and transport failures, when no HTTP status exists.
UNAVAILABLE_STATUS = 599


class SourceMissingError(Exception):
    """Raised when a local source file does not exist.

    A missing local file means the tracked artifact is gone, not that the
    source is temporarily unavailable, so it is never retried.
    """


class SourceUnreadableError(Exception):
    """Raised when a local source file exists but cannot be read as UTF-8 text."""


class RefreshMode(StrEnum):
    """How the HTTP cache treats a stored response."""

    DEFAULT = "default"
    REVALIDATE = "revalidate"
    FORCE = "force"


_REFRESH_HEADERS = {
    RefreshMode.DEFAULT: {},
    RefreshMode.REVALIDATE: {"Cache-Control": "max-age=0"},
    RefreshMode.FORCE: {"Cache-Control": "no-cache"},
}


@dataclass
class FetchResult:
    """Outcome of a single retrieve() call."""

    status: int
    ok: bool
    content: str | None = None
    media_type: str | None = None


def is_remote(locator: str) -> bool:
    """Whether the locator is a network (http/https) URL."""
    return urlparse(locator).scheme in ("http", "https")


def locator_to_path(locator: str) -> Path:
    """Convert a file:// URL or bare filesystem path to a Path."""
    parsed = urlparse(locator)
    if parsed.scheme == "file":
        return Path(url2pathname(unquote(parsed.path)))
    return Path(locator)


def join_locator(base: str, reference: str) -> str:
    """Resolve a relative reference against the locator it appeared in."""
    if is_remote(reference) or urlparse(reference).scheme == "file":
        return reference
    if is_remote(base) or urlparse(base).scheme == "file":
        return urljoin(base, reference)
    return str((Path(base).parent / reference).resolve())


class DocumentFetcher:
    """Retrieves document text from network URLs, file URLs and bare paths.

    Network requests use a single keep-alive client with a short timeout and
    no retries; a later run is the retry. When a cache path is given the
    client is wrapped in an RFC 9111 cache so unchanged documents can be
    revalidated instead of downloaded again.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        cache_path: Path | None = None,
        refresh: RefreshMode = RefreshMode.DEFAULT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": "apitrove/0.1.0"},
            "timeout": timeout,
            "follow_redirects": True,
        }
        if cache_path is not None:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            transport = SyncCacheTransport(
                next_transport=transport or httpx.HTTPTransport(),
                storage=SyncSqliteStorage(database_path=str(cache_path)),
            )
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)
        self._refresh = refresh

    def __enter__(self) -> "DocumentFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def retrieve(self, locator: str, refresh: RefreshMode | None = None) -> FetchResult:
        """Fetch the text behind a locator.

        Args:
            locator: Network URL, file:// URL or bare filesystem path.
            refresh: Cache refresh mode for this request, overriding the default.

        Returns:
            FetchResult; ok is False for non-2xx statuses and timeouts, with
            the status preserved (599 when there was no response at all).

        Raises:
            SourceMissingError: If a local file locator does not exist.
            SourceUnreadableError: If a local file cannot be read or decoded.
        """
        if is_remote(locator):
            return self._retrieve_remote(locator, refresh or self._refresh)

        path = locator_to_path(locator)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise SourceMissingError(f"Source file not found: {path}") from exc
        except UnicodeDecodeError as exc:
            raise SourceUnreadableError(f"Source file is not UTF-8 text: {path}: {exc.reason}") from exc
        except OSError as exc:
            raise SourceUnreadableError(f"Cannot read source file {path}: {exc}") from exc
        return FetchResult(status=200, ok=True, content=content)

    def _retrieve_remote(self, url: str, refresh: RefreshMode) -> FetchResult:
        try:
            response = self._client.get(url, headers=_REFRESH_HEADERS[refresh])
        except httpx.TimeoutException:
            logger.warning("Timed out fetching %s", url)
            return FetchResult(status=UNAVAILABLE_STATUS, ok=False)
        except httpx.HTTPError as exc:
            logger.warning("Request failed: %s: %s", url, exc)
            return FetchResult(status=UNAVAILABLE_STATUS, ok=False)

        media_type = response.headers.get("content-type")
        if not response.is_success:
            return FetchResult(status=response.status_code, ok=False, media_type=media_type)
        return FetchResult(
            status=response.status_code,
            ok=True,
            content=response.text,
            media_type=media_type,
        )
