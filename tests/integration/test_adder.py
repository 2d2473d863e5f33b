# ABOUTME: Integration tests for adding new sources to the registry.
# ABOUTME: Covers provider naming, operator options, forced adds and duplicate rejection.

from collections.abc import Callable
from pathlib import Path

import httpx
import yaml

from apitrove.core.adder import AddOptions, add_source
from apitrove.core.context import RunContext
from apitrove.core.reconciler import ReconciliationEngine
from apitrove.core.results import CandidateState, FailureKind
from apitrove.registry.types import CandidateKey
from tests.fixtures.api_documents import (
    BROKEN_OPENAPI,
    PATCHABLE_SWAGGER,
    PETSTORE_OPENAPI,
    PETSTORE_SWAGGER,
    STREETLIGHTS_ASYNCAPI,
)
from tests.fixtures.transport import FakeTransport


class TestAddSource:
    """Tests for add_source."""

    def test_add_openapi(self, run_context: RunContext, petstore_source: Path, apis_dir: Path) -> None:
        """A valid document is stored under the provider from its first server."""
        outcome = add_source(run_context, str(petstore_source))
        key = CandidateKey("petstore.example", "", "1.0.0")
        assert outcome.ok
        assert outcome.key == key
        assert outcome.trail[-2:] == [CandidateState.CONTENT_CHANGED, CandidateState.PERSISTED]

        metadata = run_context.registry.get(key)
        assert metadata.filename == str(apis_dir / "petstore.example" / "1.0.0" / "openapi.yaml")
        assert metadata.added == metadata.updated == run_context.now
        assert metadata.source.format == "openapi"
        assert metadata.source.version == "3.0"
        assert [s.url for s in metadata.history] == [str(petstore_source)]
        assert metadata.endpoints == 2
        assert run_context.registry.driver("petstore.example") == "url"
        assert Path(metadata.filename).with_suffix(".json").exists()

    def test_add_remote_with_service(self, run_context: RunContext, transport: FakeTransport) -> None:
        """Remote sources work and the service name becomes part of the key."""
        url = "https://raw.example.org/petstore/swagger.yaml"
        transport.routes[url] = httpx.Response(200, text=PETSTORE_SWAGGER)
        outcome = add_source(run_context, url, AddOptions(service="pets"))
        assert outcome.key == CandidateKey("petstore.example", "pets", "2.0.0")
        metadata = run_context.registry.get(outcome.key)
        assert metadata.name == "swagger.yaml"
        assert metadata.spec_version == "2.0"
        info = yaml.safe_load(Path(metadata.filename).read_text())["info"]
        assert info["x-serviceName"] == "pets"

    def test_provider_is_registrable_domain(
        self, run_context: RunContext, write_source: Callable[..., Path],
    ) -> None:
        """A server on a subdomain is filed under its registrable domain."""
        source = write_source(PETSTORE_OPENAPI.replace(
            "https://api.petstore.example/v1", "https://petstore.swagger.io/v2",
        ))
        outcome = add_source(run_context, str(source))
        assert outcome.key == CandidateKey("swagger.io", "", "1.0.0")

    def test_host_override(self, run_context: RunContext, write_source: Callable[..., Path]) -> None:
        """A host override replaces the Swagger host and names the provider."""
        source = write_source(PETSTORE_SWAGGER, name="swagger.yaml")
        outcome = add_source(run_context, str(source), AddOptions(host="www.pets.example"))
        assert outcome.key.provider == "pets.example"
        stored = yaml.safe_load(Path(run_context.registry.get(outcome.key).filename).read_text())
        assert stored["host"] == "www.pets.example"

    def test_options_stamped(self, run_context: RunContext, petstore_source: Path) -> None:
        """Logo, categories and the unofficial flag end up in info."""
        outcome = add_source(run_context, str(petstore_source), AddOptions(
            logo="https://pets.example/logo.png",
            categories=["ecommerce", "ecommerce", "pets"],
            unofficial=True,
        ))
        metadata = run_context.registry.get(outcome.key)
        info = yaml.safe_load(Path(metadata.filename).read_text())["info"]
        assert info["x-logo"] == {"url": "https://pets.example/logo.png"}
        assert info["x-apisguru-categories"] == ["ecommerce", "pets"]
        assert info["x-unofficialSpec"] is True
        assert metadata.patch["info"]["x-apisguru-categories"] == ["ecommerce", "pets"]

    def test_overlay_survives_update(self, run_context: RunContext, petstore_source: Path) -> None:
        """Operator choices are re-applied on update, so nothing looks changed."""
        outcome = add_source(run_context, str(petstore_source), AddOptions(
            logo="https://pets.example/logo.png", host="petstore.example",
        ))
        candidate = run_context.registry.candidates()[0]
        update = ReconciliationEngine(run_context).update(candidate)
        assert update.visited(CandidateState.UNCHANGED)
        assert outcome.key == update.key

    def test_patched_document_upgraded(self, run_context: RunContext, write_source: Callable[..., Path]) -> None:
        """A document that needed patches is added in upgraded form and flagged."""
        source = write_source(PATCHABLE_SWAGGER, name="swagger.yaml")
        outcome = add_source(run_context, str(source))
        metadata = run_context.registry.get(outcome.key)
        assert outcome.key.provider == "sloppy.example"
        assert metadata.auto_upgrade is True
        assert metadata.name == "openapi.yaml"
        assert metadata.source.format == "swagger"

    def test_asyncapi_provider_from_servers(
        self, run_context: RunContext, write_source: Callable[..., Path],
    ) -> None:
        """AsyncAPI server maps name the provider too."""
        source = write_source(STREETLIGHTS_ASYNCAPI, name="asyncapi.yaml")
        outcome = add_source(run_context, str(source))
        assert outcome.key == CandidateKey("streetlights.example", "", "1.0.0")
        assert run_context.registry.get(outcome.key).name == "asyncapi.yaml"

    def test_invalid_rejected(self, run_context: RunContext, write_source: Callable[..., Path]) -> None:
        """Invalid documents are not added."""
        source = write_source(BROKEN_OPENAPI)
        outcome = add_source(run_context, str(source), AddOptions(host="broken.example"))
        assert outcome.failure.kind is FailureKind.VALIDATION
        assert len(run_context.registry) == 0

    def test_invalid_forced(self, run_context: RunContext, write_source: Callable[..., Path]) -> None:
        """force stores an invalid document anyway, marked invalid."""
        source = write_source(BROKEN_OPENAPI)
        outcome = add_source(run_context, str(source), AddOptions(host="broken.example", force=True))
        assert outcome.ok
        assert outcome.key.provider == "broken.example"
        assert run_context.registry.get(outcome.key).valid is False

    def test_duplicate_rejected(self, run_context: RunContext, petstore_source: Path) -> None:
        """Adding onto an existing key is rejected and the original kept."""
        first = add_source(run_context, str(petstore_source))
        original = run_context.registry.get(first.key)
        second = add_source(run_context, str(petstore_source))
        assert second.failure.kind is FailureKind.VALIDATION
        assert run_context.registry.get(first.key) is original

    def test_network_failure(self, run_context: RunContext) -> None:
        """An unreachable source is a network failure."""
        outcome = add_source(run_context, "https://nowhere.example/openapi.yaml")
        assert outcome.failure.kind is FailureKind.NETWORK
        assert outcome.failure.status == 404

    def test_missing_file(self, run_context: RunContext, tmp_path: Path) -> None:
        """A missing local file is a filesystem failure."""
        outcome = add_source(run_context, str(tmp_path / "nope.yaml"))
        assert outcome.failure.kind is FailureKind.FILESYSTEM

    def test_undecodable_file(self, run_context: RunContext, tmp_path: Path) -> None:
        """A source that is not UTF-8 text is a filesystem failure."""
        source = tmp_path / "latin1.yaml"
        source.write_bytes("title: caf\xe9\n".encode("latin-1"))
        outcome = add_source(run_context, str(source))
        assert outcome.failure.kind is FailureKind.FILESYSTEM
        assert len(run_context.registry) == 0

    def test_existing_provider_keeps_driver(self, run_context: RunContext, petstore_source: Path) -> None:
        """Adding to a known provider leaves its driver alone."""
        run_context.registry.ensure_provider("petstore.example", driver="external")
        outcome = add_source(run_context, str(petstore_source))
        assert outcome.ok
        assert run_context.registry.driver("petstore.example") == "external"

    def test_no_provider(self, run_context: RunContext, write_source: Callable[..., Path]) -> None:
        """Without servers, host or a remote locator the provider cannot be named."""
        source = write_source("openapi: 3.0.0\ninfo: {title: t, version: '1'}\npaths: {}\n")
        outcome = add_source(run_context, str(source))
        assert outcome.failure.kind is FailureKind.VALIDATION
