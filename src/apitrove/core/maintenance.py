# ABOUTME: Maintenance steps that work on the stored documents rather than their sources.
# ABOUTME: validate, ci, purge, paths, urls and rewrite; each returns a CandidateOutcome.

import logging
from datetime import timedelta
from pathlib import Path

from apitrove.core.context import RunContext
from apitrove.core.results import CandidateOutcome, CandidateState, Failure, FailureKind
from apitrove.core.storage import remove_document, write_document
from apitrove.documents.normalizer import normalize_document
from apitrove.documents.serialize import DocumentParseError, dump_yaml, parse_document
from apitrove.documents.types import endpoint_count
from apitrove.registry.types import Candidate

logger = logging.getLogger(__name__)

# Candidates updated within this window are re-validated by the ci step.
CI_WINDOW = timedelta(hours=36)


def _read_stored(candidate: Candidate) -> str:
    return Path(candidate.metadata.filename).read_text(encoding="utf-8")


def validate_stored(ctx: RunContext, candidate: Candidate) -> CandidateOutcome:
    """Re-run the normalization pipeline over the stored document."""
    outcome = CandidateOutcome(key=candidate.key)
    try:
        text = _read_stored(candidate)
    except FileNotFoundError:
        return outcome.fail(Failure(
            FailureKind.FILESYSTEM, f"Stored document missing: {candidate.metadata.filename}",
        ))
    except UnicodeDecodeError as exc:
        return outcome.fail(Failure(FailureKind.FILESYSTEM, str(exc), context=candidate.metadata.filename))
    outcome.advance(CandidateState.FETCHED)

    normalized = normalize_document(
        text, candidate.metadata.filename, fetcher=ctx.fetcher, cache=ctx.cache,
    )
    candidate.metadata.valid = normalized.valid
    if not normalized.valid:
        return outcome.fail(Failure(
            FailureKind.VALIDATION,
            normalized.error or "Validation failure",
            context=normalized.context,
        ))
    return outcome.advance(CandidateState.VALIDATED)


def ci_check(ctx: RunContext, candidate: Candidate) -> CandidateOutcome:
    """Validate only the candidates that changed recently."""
    updated = candidate.metadata.updated
    if updated is not None and abs(ctx.now - updated) <= CI_WINDOW:
        return validate_stored(ctx, candidate)
    outcome = CandidateOutcome(key=candidate.key, detail="not recently updated")
    return outcome.advance(CandidateState.SKIPPED)


def purge_missing(ctx: RunContext, candidate: Candidate) -> CandidateOutcome:
    """Drop the registry entry when its stored document no longer exists."""
    outcome = CandidateOutcome(key=candidate.key)
    if Path(candidate.metadata.filename).exists():
        return outcome.advance(CandidateState.UNCHANGED)
    ctx.registry.delete(candidate.key)
    outcome.detail = "backing file missing"
    return outcome.advance(CandidateState.PURGED)


def count_endpoints(ctx: RunContext, candidate: Candidate) -> CandidateOutcome:
    """Recount paths/channels; a document with none is deleted along with its entry."""
    outcome = CandidateOutcome(key=candidate.key)
    try:
        document = parse_document(_read_stored(candidate))
    except (FileNotFoundError, UnicodeDecodeError, DocumentParseError) as exc:
        return outcome.fail(Failure(FailureKind.FILESYSTEM, str(exc), context="paths"))

    candidate.metadata.endpoints = endpoint_count(document)
    outcome.detail = f"p:{candidate.metadata.endpoints}"
    if candidate.metadata.endpoints == 0:
        remove_document(Path(candidate.metadata.filename))
        ctx.registry.delete(candidate.key)
        return outcome.advance(CandidateState.PURGED)
    return outcome.advance(CandidateState.UNCHANGED)


def list_source(ctx: RunContext, candidate: Candidate) -> CandidateOutcome:
    """Report the candidate's source locator."""
    outcome = CandidateOutcome(key=candidate.key, detail=candidate.metadata.source.url)
    return outcome.advance(CandidateState.UNCHANGED)


def rewrite_document(ctx: RunContext, candidate: Candidate) -> CandidateOutcome:
    """Re-serialize the stored document with canonical key order."""
    outcome = CandidateOutcome(key=candidate.key)
    path = Path(candidate.metadata.filename)
    try:
        document = parse_document(_read_stored(candidate))
    except (FileNotFoundError, UnicodeDecodeError, DocumentParseError) as exc:
        return outcome.fail(Failure(FailureKind.FILESYSTEM, str(exc), context="rewrite"))
    write_document(path, dump_yaml(document), document)
    return outcome.advance(CandidateState.PERSISTED)
