# ABOUTME: Typed outcomes for one candidate passing through a pipeline step.
# ABOUTME: Expected network, validation and filesystem failures are values here, not exceptions.

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from apitrove.registry.types import CandidateKey


class CandidateState(StrEnum):
    """States a candidate moves through during reconciliation."""

    FETCHED = "fetched"
    VALIDATED = "validated"
    UNCHANGED = "unchanged"
    VERSION_MOVED = "version_moved"
    CONTENT_CHANGED = "content_changed"
    PERSISTED = "persisted"
    FAILED = "failed"
    PURGED = "purged"
    SKIPPED = "skipped"


class FailureKind(StrEnum):
    NETWORK = "network"
    VALIDATION = "validation"
    FILESYSTEM = "filesystem"
    # an exception no step anticipated
    INTERNAL = "internal"


@dataclass
class Failure:
    """One failure ledger record."""

    kind: FailureKind
    message: str
    status: int | None = None
    context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.status is not None:
            result["status"] = self.status
        if self.context is not None:
            result["context"] = self.context
        return result


@dataclass
class CandidateOutcome:
    """What happened to one candidate.

    trail lists every state visited in order; state is the last of them.
    key is the candidate's key after the step, which differs from the
    starting key when the document moved to a new version.
    """

    key: CandidateKey
    trail: list[CandidateState] = field(default_factory=list)
    failure: Failure | None = None
    detail: str | None = None

    @property
    def state(self) -> CandidateState | None:
        return self.trail[-1] if self.trail else None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def visited(self, state: CandidateState) -> bool:
        return state in self.trail

    def advance(self, state: CandidateState) -> "CandidateOutcome":
        self.trail.append(state)
        return self

    def fail(self, failure: Failure, state: CandidateState = CandidateState.FAILED) -> "CandidateOutcome":
        self.failure = failure
        self.trail.append(state)
        return self
