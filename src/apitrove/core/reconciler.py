# ABOUTME: ReconciliationEngine drives one candidate through fetch, normalize, diff and persist.
# ABOUTME: Failures are recorded on the outcome; the registry is only changed on success or purge.

import copy
import logging
from pathlib import Path
from typing import Any

from apitrove.core.context import RunContext
from apitrove.core.results import CandidateOutcome, CandidateState, Failure, FailureKind
from apitrove.core.storage import (
    document_path,
    move_document,
    relocated_path,
    write_document,
)
from apitrove.documents.hashing import compute_fingerprint
from apitrove.documents.merge import deep_merge
from apitrove.documents.normalizer import normalize_document
from apitrove.documents.serialize import dump_yaml
from apitrove.documents.types import (
    DocumentFormat,
    detect_format,
    endpoint_count,
    info_version,
    spec_version,
)
from apitrove.fetch.http import SourceMissingError, SourceUnreadableError
from apitrove.registry.mapping import source_to_dict
from apitrove.registry.types import Candidate, CandidateKey, SourceInfo

logger = logging.getLogger(__name__)

EXTERNAL_DRIVER = "external"
DEFAULT_INFO_VERSION = "1.0.0"
CATEGORIES_KEY = "x-apisguru-categories"


def with_origin(history: list[SourceInfo], source: SourceInfo) -> list[SourceInfo]:
    """History with source as its latest entry.

    A new url is appended; the same url as the latest entry replaces that
    entry, so its format tag follows the source.
    """
    result = list(history)
    if result and result[-1].url == source.url:
        result[-1] = copy.deepcopy(source)
    else:
        result.append(copy.deepcopy(source))
    return result


def stamp_identity(
    document: dict[str, Any],
    key: CandidateKey,
    preferred: bool | None,
    history: list[SourceInfo],
) -> None:
    """Write provider/service identity, preference and origin chain into info."""
    info = document.setdefault("info", {})
    info["x-providerName"] = key.provider
    if key.service:
        info["x-serviceName"] = key.service
    if preferred is not None:
        info["x-preferred"] = preferred
    info["x-origin"] = [source_to_dict(s) for s in history]


def apply_overlay(document: dict[str, Any], patch: dict[str, Any] | None) -> dict[str, Any]:
    """Merge the stored patch overlay and de-duplicate categories."""
    if patch:
        document = deep_merge(document, patch)
    info = document.get("info")
    if isinstance(info, dict) and isinstance(info.get(CATEGORIES_KEY), list):
        info[CATEGORIES_KEY] = list(dict.fromkeys(info[CATEGORIES_KEY]))
    return document


def _refreshed_source(source: SourceInfo, upstream: dict[str, Any]) -> SourceInfo:
    declared = detect_format(upstream)
    if declared is None or declared.format is not DocumentFormat.OPENAPI:
        return source
    return SourceInfo(url=source.url, format=declared.format.value, version=declared.family_version)


class ReconciliationEngine:
    """Brings one registry candidate in line with its upstream source.

    Per candidate: fetch, normalize, overlay the stored patch, extend the
    origin history, stamp identity, serialize and fingerprint, relocate on a
    declared version change, write the document, then commit the new
    metadata. Network, validation and write failures leave the metadata as
    it was; a missing local source or a failed relocation purges the
    candidate.
    """

    def __init__(self, context: RunContext) -> None:
        self._ctx = context

    def update(self, candidate: Candidate) -> CandidateOutcome:
        outcome = CandidateOutcome(key=candidate.key)
        metadata = candidate.metadata

        if candidate.driver == EXTERNAL_DRIVER:
            outcome.detail = "external driver"
            return outcome.advance(CandidateState.SKIPPED)

        url = metadata.source.url
        if not url:
            return outcome.fail(Failure(FailureKind.VALIDATION, "No source url"))

        try:
            fetched = self._ctx.fetcher.retrieve(url)
        except SourceMissingError as exc:
            return self._purge(candidate, outcome, str(exc))
        except SourceUnreadableError as exc:
            logger.warning("%s: %s", candidate.key, exc)
            return outcome.fail(Failure(FailureKind.FILESYSTEM, str(exc), context="source"))

        if not fetched.ok or fetched.content is None:
            metadata.status_code = fetched.status
            metadata.media_type = fetched.media_type
            logger.warning("%s: HTTP %d from %s", candidate.key, fetched.status, url)
            return outcome.fail(Failure(
                FailureKind.NETWORK,
                f"HTTP {fetched.status}",
                status=fetched.status,
                context=fetched.media_type,
            ))
        outcome.advance(CandidateState.FETCHED)

        normalized = normalize_document(
            fetched.content, url, fetcher=self._ctx.fetcher, cache=self._ctx.cache,
        )
        if not normalized.valid:
            logger.warning("%s: %s (%s)", candidate.key, normalized.error, normalized.context)
            return outcome.fail(Failure(
                FailureKind.VALIDATION,
                normalized.error or "Validation failure",
                context=normalized.context,
            ))
        outcome.advance(CandidateState.VALIDATED)

        auto_upgrade = metadata.auto_upgrade or normalized.was_patched
        if auto_upgrade and not metadata.auto_upgrade:
            logger.info("%s: valid only after %d patch(es), upgrading", candidate.key, normalized.patches_applied)
        document = copy.deepcopy(normalized.authoritative(auto_upgrade=auto_upgrade))
        info = document.setdefault("info", {})
        if info.get("version") in (None, ""):
            info["version"] = DEFAULT_INFO_VERSION
        document = apply_overlay(document, metadata.patch)

        declared = detect_format(document)
        name = metadata.name or (declared.format.filename if declared else "openapi.yaml")
        old_path = Path(metadata.filename or document_path(self._ctx.apis_dir, candidate.key, name))
        path = old_path
        key = candidate.key
        source = metadata.source
        new_version = info_version(document) or candidate.version
        new_spec = spec_version(document)
        relocating = new_version != candidate.version or new_spec != metadata.spec_version
        if relocating:
            key = CandidateKey(key.provider, key.service, new_version)
            if key != candidate.key and key in self._ctx.registry:
                return self._purge(
                    candidate, outcome, f"Relocation failed: {key} already exists in the registry",
                )
            name = declared.format.filename if declared else name
            path = relocated_path(old_path, new_version if key != candidate.key else None, name)
            source = _refreshed_source(source, normalized.document)

        history = with_origin(metadata.history, source)
        stamp_identity(document, key, metadata.preferred, history)
        content = dump_yaml(document)
        fingerprint = compute_fingerprint(content)

        try:
            if path != old_path:
                logger.info("%s: moving to %s (%s %s)", candidate.key, path, name.split(".")[0], new_spec)
                move_document(old_path, path)
            write_document(path, content, document)
        except OSError as exc:
            if path != old_path:
                return self._purge(candidate, outcome, f"Relocation failed: {exc}")
            logger.warning("%s: cannot write %s: %s", candidate.key, path, exc)
            return outcome.fail(Failure(FailureKind.FILESYSTEM, str(exc), context=str(path)))

        if key != candidate.key:
            self._ctx.registry.relocate(candidate.key, key.version)
            outcome.key = key
            outcome.advance(CandidateState.VERSION_MOVED)

        metadata.filename = str(path)
        metadata.name = name
        metadata.spec_version = new_spec
        metadata.source = source
        metadata.history = history
        metadata.auto_upgrade = auto_upgrade
        if metadata.hash != fingerprint:
            metadata.hash = fingerprint
            metadata.updated = self._ctx.now
            outcome.advance(CandidateState.CONTENT_CHANGED)
        else:
            outcome.advance(CandidateState.UNCHANGED)
        if metadata.added is None:
            metadata.added = self._ctx.now
        metadata.endpoints = endpoint_count(document)
        metadata.valid = True
        metadata.status_code = None
        metadata.media_type = None
        return outcome.advance(CandidateState.PERSISTED)

    def _purge(self, candidate: Candidate, outcome: CandidateOutcome, message: str) -> CandidateOutcome:
        logger.warning("%s: %s; removing from registry", candidate.key, message)
        if candidate.key in self._ctx.registry:
            self._ctx.registry.delete(candidate.key)
        return outcome.fail(Failure(FailureKind.FILESYSTEM, message), CandidateState.PURGED)
