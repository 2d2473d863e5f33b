# ABOUTME: Unit tests for the normalization pipeline.
# ABOUTME: Covers each document family, the patched-upgrade rule and failures at each stage.

from collections.abc import Callable
from pathlib import Path

from apitrove.documents.normalizer import NormalizedDocument, normalize_document
from apitrove.documents.resolver import ResolutionCache
from apitrove.fetch.http import DocumentFetcher
from tests.fixtures.api_documents import (
    BROKEN_OPENAPI,
    PATCHABLE_SWAGGER,
    PETSTORE_OPENAPI,
    PETSTORE_SWAGGER,
    STREETLIGHTS_ASYNCAPI,
)


def _normalize(text: str, fetcher: DocumentFetcher, source: str = "/tmp/openapi.yaml") -> NormalizedDocument:
    return normalize_document(text, source, fetcher=fetcher, cache=ResolutionCache())


class TestNormalizeDocument:
    """Tests for normalize_document."""

    def test_openapi3_passes_through(self, fetcher: DocumentFetcher) -> None:
        """A valid OpenAPI 3 document is kept as-is."""
        result = _normalize(PETSTORE_OPENAPI, fetcher)
        assert result.valid
        assert not result.was_patched
        assert result.document["openapi"] == "3.0.3"
        assert result.authoritative() is result.document

    def test_clean_swagger_keeps_source_form(self, fetcher: DocumentFetcher) -> None:
        """A Swagger document that upgrades cleanly stays authoritative in Swagger form."""
        result = _normalize(PETSTORE_SWAGGER, fetcher)
        assert result.valid
        assert result.patches_applied == 0
        assert result.upgraded["openapi"] == "3.0.0"
        assert result.authoritative()["swagger"] == "2.0"

    def test_patched_swagger_upgrades(self, fetcher: DocumentFetcher) -> None:
        """When patches were needed the upgraded document is authoritative."""
        result = _normalize(PATCHABLE_SWAGGER, fetcher)
        assert result.valid
        assert result.was_patched
        assert result.patches_applied == 2
        assert result.authoritative()["openapi"] == "3.0.0"

    def test_auto_upgrade_flag_selects_upgraded(self, fetcher: DocumentFetcher) -> None:
        """A remembered auto-upgrade keeps the upgraded form authoritative."""
        result = _normalize(PETSTORE_SWAGGER, fetcher)
        assert result.authoritative(auto_upgrade=True)["openapi"] == "3.0.0"

    def test_asyncapi(self, fetcher: DocumentFetcher) -> None:
        """AsyncAPI documents are validated without conversion."""
        result = _normalize(STREETLIGHTS_ASYNCAPI, fetcher)
        assert result.valid
        assert result.authoritative()["asyncapi"] == "2.6.0"

    def test_parse_failure(self, fetcher: DocumentFetcher) -> None:
        """Unparseable text fails in the parse stage."""
        result = _normalize("a: [", fetcher)
        assert not result.valid
        assert result.context == "parse"

    def test_resolution_failure(self, tmp_path: Path, fetcher: DocumentFetcher) -> None:
        """A broken external reference fails in the resolve stage."""
        text = PETSTORE_OPENAPI.replace("'#/components/schemas/Pets'", "'missing.yaml#/Pets'")
        result = _normalize(text, fetcher, source=str(tmp_path / "openapi.yaml"))
        assert not result.valid
        assert result.context == "resolve"

    def test_unknown_family(self, fetcher: DocumentFetcher) -> None:
        """Documents declaring no family are invalid."""
        result = _normalize("info:\n  title: x\n", fetcher)
        assert not result.valid

    def test_unsupported_openapi_version(self, fetcher: DocumentFetcher) -> None:
        """Only OpenAPI 3.x is accepted as canonical."""
        result = _normalize("openapi: 4.0.0\ninfo: {title: t, version: '1'}\npaths: {}\n", fetcher)
        assert not result.valid
        assert result.context == "#/openapi"

    def test_schema_failure(self, fetcher: DocumentFetcher) -> None:
        """Schema violations carry their JSON pointer context."""
        result = _normalize(BROKEN_OPENAPI, fetcher)
        assert not result.valid
        assert result.context == "#/paths"

    def test_external_refs_resolved(
        self, write_source: Callable[..., Path], fetcher: DocumentFetcher,
    ) -> None:
        """External schemas are inlined before validation."""
        write_source("Pets:\n  type: array\n", name="schemas.yaml")
        text = PETSTORE_OPENAPI.replace("'#/components/schemas/Pets'", "'schemas.yaml#/Pets'")
        source = write_source(text)
        result = _normalize(text, fetcher, source=str(source))
        assert result.valid
        schema = result.document["paths"]["/pets"]["get"]["responses"]["200"]["content"]
        assert schema["application/json"]["schema"] == {"type": "array"}
