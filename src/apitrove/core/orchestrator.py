# ABOUTME: Orchestrator: runs a pipeline step over every registry candidate, provider by provider.
# ABOUTME: Clears the resolution cache at provider boundaries and never lets one candidate stop the batch.

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from apitrove.config import Settings
from apitrove.core.adder import AddOptions, add_source
from apitrove.core.context import RunContext
from apitrove.core.maintenance import (
    ci_check,
    count_endpoints,
    list_source,
    purge_missing,
    rewrite_document,
    validate_stored,
)
from apitrove.core.reconciler import ReconciliationEngine
from apitrove.core.results import CandidateOutcome, CandidateState, Failure, FailureKind
from apitrove.registry.store import load_registry, save_registry
from apitrove.registry.types import Candidate, CandidateKey

logger = logging.getLogger(__name__)

Step = Callable[[RunContext, Candidate], CandidateOutcome]
OutcomeFn = Callable[[Candidate, CandidateOutcome], None]


def update_candidate(ctx: RunContext, candidate: Candidate) -> CandidateOutcome:
    """Reconcile one candidate with its upstream source."""
    return ReconciliationEngine(ctx).update(candidate)


STEPS: dict[str, Step] = {
    "update": update_candidate,
    "validate": validate_stored,
    "ci": ci_check,
    "purge": purge_missing,
    "paths": count_endpoints,
    "urls": list_source,
    "rewrite": rewrite_document,
}


@dataclass
class BatchResult:
    """Summary of running one step over a batch of candidates."""

    processed: int = 0
    passed: int = 0
    failed: int = 0
    purged: int = 0
    skipped: int = 0
    outcomes: list[CandidateOutcome] = field(default_factory=list)

    def record(self, outcome: CandidateOutcome) -> None:
        self.processed += 1
        self.outcomes.append(outcome)
        if outcome.state is CandidateState.PURGED:
            self.purged += 1
        if outcome.state is CandidateState.SKIPPED:
            self.skipped += 1
        if outcome.ok:
            self.passed += 1
        else:
            self.failed += 1

    @property
    def failures(self) -> list[tuple[CandidateKey, Failure]]:
        return [(o.key, o.failure) for o in self.outcomes if o.failure is not None]

    def ledger(self) -> dict[str, dict[str, Any]]:
        """Failure ledger keyed by "provider service version"."""
        return {str(key): failure.to_dict() for key, failure in self.failures}


def run_batch(
    ctx: RunContext,
    step: Step,
    candidates: Iterable[Candidate] | None = None,
    *,
    provider: str | None = None,
    on_outcome: OutcomeFn | None = None,
) -> BatchResult:
    """Run a step over candidates sequentially, grouped by provider.

    The resolution cache is cleared whenever the provider changes. Expected
    failures come back as outcomes; any exception raised by a step is
    recorded against that candidate. Nothing a single candidate does stops
    the batch.

    Args:
        ctx: Run context shared by all candidates.
        step: The pipeline step to apply.
        candidates: Candidates to process; defaults to the whole registry in
            provider/service/version order.
        provider: Restrict the default candidate list to one provider.
        on_outcome: Called after each candidate, for progress reporting.

    Returns:
        BatchResult with counts and the failure ledger.
    """
    if candidates is None:
        candidates = ctx.registry.candidates(provider)
    result = BatchResult()
    current_provider: str | None = None

    for candidate in candidates:
        if candidate.provider != current_provider:
            ctx.cache.clear()
            current_provider = candidate.provider
            logger.debug("Provider %s: resolution cache cleared", current_provider)

        try:
            outcome = step(ctx, candidate)
        except OSError as exc:
            logger.warning("%s: %s", candidate.key, exc)
            outcome = CandidateOutcome(key=candidate.key).fail(
                Failure(FailureKind.FILESYSTEM, str(exc)),
            )
        except Exception as exc:
            logger.exception("%s: unexpected error", candidate.key)
            outcome = CandidateOutcome(key=candidate.key).fail(
                Failure(FailureKind.INTERNAL, f"{type(exc).__name__}: {exc}"),
            )
        result.record(outcome)
        if on_outcome is not None:
            on_outcome(candidate, outcome)

    return result


def run_pipeline(
    settings: Settings,
    step_name: str,
    *,
    provider: str | None = None,
    on_outcome: OutcomeFn | None = None,
) -> BatchResult:
    """Load the registry, run one named step over it, and save it.

    The registry is saved even when the run is interrupted.

    Raises:
        KeyError: If step_name is not a known step.
        RegistryError: If the registry cannot be loaded or saved.
    """
    step = STEPS[step_name]
    registry = load_registry(settings.registry_path)
    try:
        with settings.build_fetcher() as fetcher:
            ctx = RunContext(
                registry=registry, fetcher=fetcher, apis_dir=settings.apis_dir, force=settings.force,
            )
            result = run_batch(ctx, step, provider=provider, on_outcome=on_outcome)
    finally:
        # files may already have moved; the registry must follow them
        save_registry(registry, settings.registry_path)
    logger.info(
        "%s: %d processed, %d passed, %d failed",
        step_name, result.processed, result.passed, result.failed,
    )
    return result


def add_to_registry(
    settings: Settings, locator: str, options: AddOptions | None = None,
) -> CandidateOutcome:
    """Load the registry, add one source, and save it if the add succeeded."""
    registry = load_registry(settings.registry_path)
    with settings.build_fetcher() as fetcher:
        ctx = RunContext(
            registry=registry, fetcher=fetcher, apis_dir=settings.apis_dir, force=settings.force,
        )
        outcome = add_source(ctx, locator, options)
    if outcome.ok:
        save_registry(registry, settings.registry_path)
    return outcome
