# ABOUTME: The add path: registers a new source document as a candidate.
# ABOUTME: Fetches, normalizes, names the provider, stamps identity, writes and inserts the entry.

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from apitrove.core.context import RunContext
from apitrove.core.provider import provider_from_url
from apitrove.core.reconciler import (
    CATEGORIES_KEY,
    DEFAULT_INFO_VERSION,
    apply_overlay,
    stamp_identity,
    with_origin,
)
from apitrove.core.results import CandidateOutcome, CandidateState, Failure, FailureKind
from apitrove.core.storage import document_path, write_document
from apitrove.documents.hashing import compute_fingerprint
from apitrove.documents.normalizer import normalize_document
from apitrove.documents.serialize import dump_yaml
from apitrove.documents.types import DocumentFormat, detect_format, endpoint_count, spec_version
from apitrove.fetch.http import SourceMissingError, SourceUnreadableError
from apitrove.registry.types import CandidateKey, CandidateMetadata, SourceInfo

logger = logging.getLogger(__name__)


@dataclass
class AddOptions:
    """Operator choices for a newly added source."""

    service: str = ""
    host: str | None = None
    logo: str | None = None
    categories: list[str] = field(default_factory=list)
    unofficial: bool = False
    force: bool = False


def _server_origin(document: dict[str, Any], fallback: str) -> str:
    """The URL or host the provider name is taken from."""
    servers = document.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        if servers[0].get("url"):
            return str(servers[0]["url"])
    # AsyncAPI 2 keeps servers in a mapping keyed by name
    if isinstance(servers, dict):
        for server in servers.values():
            if isinstance(server, dict) and server.get("url"):
                return str(server["url"])
    if document.get("host"):
        return str(document["host"])
    return fallback


def _provider_for(origin: str, locator: str) -> str:
    try:
        return provider_from_url(origin)
    except ValueError:
        return provider_from_url(locator)


def build_overlay(document: dict[str, Any], options: AddOptions) -> dict[str, Any] | None:
    """The patch overlay recording the operator's choices.

    Stored with the candidate so every later update re-applies it.
    """
    info: dict[str, Any] = {}
    if options.logo:
        info["x-logo"] = {"url": options.logo}
    if options.unofficial:
        info["x-unofficialSpec"] = True
    if options.categories:
        info[CATEGORIES_KEY] = list(dict.fromkeys(options.categories))
    overlay: dict[str, Any] = {"info": info} if info else {}
    if options.host:
        if document.get("host") or "swagger" in document:
            overlay["host"] = options.host
        elif isinstance(document.get("servers"), list) or "openapi" in document:
            url = options.host if "://" in options.host else f"http://{options.host}"
            overlay["servers"] = [{"url": url}]
    return overlay or None


def add_source(
    ctx: RunContext, locator: str, options: AddOptions | None = None,
) -> CandidateOutcome:
    """Fetch a new source and register it.

    The document is stored when it validates, or regardless when
    options.force is set. added and updated are both set to the run time.

    Args:
        ctx: Run context; the registry is mutated in place.
        locator: Network URL, file URL or path of the source document.
        options: Service name, host override, logo, categories and flags.

    Returns:
        CandidateOutcome whose key is the newly created registry key.
    """
    opts = options or AddOptions()
    outcome = CandidateOutcome(key=CandidateKey("", opts.service, ""))

    try:
        fetched = ctx.fetcher.retrieve(locator)
    except (SourceMissingError, SourceUnreadableError) as exc:
        return outcome.fail(Failure(FailureKind.FILESYSTEM, str(exc)))
    if not fetched.ok or fetched.content is None:
        return outcome.fail(Failure(
            FailureKind.NETWORK, f"HTTP {fetched.status}", status=fetched.status,
        ))
    outcome.advance(CandidateState.FETCHED)

    normalized = normalize_document(fetched.content, locator, fetcher=ctx.fetcher, cache=ctx.cache)
    if not normalized.valid and not (opts.force or ctx.force):
        return outcome.fail(Failure(
            FailureKind.VALIDATION,
            normalized.error or "Validation failure",
            context=normalized.context,
        ))
    outcome.advance(CandidateState.VALIDATED)

    document = copy.deepcopy(normalized.authoritative())
    origin = opts.host or _server_origin(document, locator)
    try:
        provider = _provider_for(origin, locator)
    except ValueError as exc:
        return outcome.fail(Failure(FailureKind.VALIDATION, str(exc)))

    info = document.setdefault("info", {})
    if info.get("version") in (None, ""):
        info["version"] = DEFAULT_INFO_VERSION

    upstream = detect_format(normalized.document)
    stored = detect_format(document)
    name = stored.format.filename if stored else DocumentFormat.OPENAPI.filename
    key = CandidateKey(provider, opts.service, str(info["version"]))
    if key in ctx.registry:
        return outcome.fail(Failure(FailureKind.VALIDATION, f"{key} already exists in the registry"))

    metadata = CandidateMetadata(
        source=SourceInfo(
            url=locator,
            format=upstream.format.value if upstream else None,
            version=upstream.family_version if upstream else None,
        ),
        filename=str(document_path(ctx.apis_dir, key, name)),
        name=name,
        spec_version=spec_version(document),
        added=ctx.now,
        updated=ctx.now,
        valid=normalized.valid,
        auto_upgrade=normalized.was_patched,
        patch=build_overlay(document, opts),
    )
    document = apply_overlay(document, metadata.patch)

    metadata.history = with_origin(metadata.history, metadata.source)
    stamp_identity(document, key, metadata.preferred, metadata.history)
    content = dump_yaml(document)
    metadata.hash = compute_fingerprint(content)
    metadata.endpoints = endpoint_count(document)

    try:
        write_document(Path(metadata.filename), content, document)
    except OSError as exc:
        return outcome.fail(Failure(FailureKind.FILESYSTEM, str(exc), context=metadata.filename))
    ctx.registry.ensure_provider(provider)
    ctx.registry.insert(key, metadata)
    logger.info("Wrote new %s in %s %s", key, name.split(".")[0], metadata.spec_version)

    outcome.key = key
    outcome.advance(CandidateState.CONTENT_CHANGED)
    return outcome.advance(CandidateState.PERSISTED)
