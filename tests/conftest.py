# ABOUTME: Shared pytest fixtures for apitrove tests.
# ABOUTME: Provides a fake httpx transport, an uncached fetcher, source files and a run context.

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from apitrove.core.context import RunContext
from apitrove.fetch.http import DocumentFetcher
from apitrove.registry.catalog import MetadataRegistry
from tests.fixtures.api_documents import PETSTORE_OPENAPI
from tests.fixtures.transport import FakeTransport

RUN_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def transport() -> FakeTransport:
    """An empty fake transport; tests add routes as needed."""
    return FakeTransport()


@pytest.fixture
def fetcher(transport: FakeTransport) -> Iterator[DocumentFetcher]:
    """A fetcher without the HTTP cache, backed by the fake transport."""
    with DocumentFetcher(cache_path=None, transport=transport) as f:
        yield f


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[..., Path]:
    """Write document text to a source file and return its path."""

    def _write(text: str, name: str = "openapi.yaml", subdir: str = "sources") -> Path:
        path = tmp_path / subdir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def petstore_source(write_source: Callable[..., Path]) -> Path:
    """A valid OpenAPI 3 source file on disk."""
    return write_source(PETSTORE_OPENAPI)


@pytest.fixture
def apis_dir(tmp_path: Path) -> Path:
    return tmp_path / "APIs"


@pytest.fixture
def run_context(fetcher: DocumentFetcher, apis_dir: Path) -> RunContext:
    """A run context over an empty registry with a fixed run time."""
    return RunContext(
        registry=MetadataRegistry(), fetcher=fetcher, apis_dir=apis_dir, now=RUN_TIME,
    )
