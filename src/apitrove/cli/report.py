# ABOUTME: Shared console reporting for the batch commands.
# ABOUTME: Runs a pipeline step, prints a line per candidate and a summary, and sets the exit code.

from pathlib import Path

import yaml
from rich.console import Console
from rich.markup import escape

from apitrove.config import Settings
from apitrove.core.orchestrator import BatchResult, run_pipeline
from apitrove.core.results import CandidateOutcome, CandidateState
from apitrove.registry.store import RegistryError
from apitrove.registry.types import Candidate

_STATE_STYLE = {
    CandidateState.CONTENT_CHANGED: "green",
    CandidateState.PERSISTED: "green",
    CandidateState.VERSION_MOVED: "cyan",
    CandidateState.PURGED: "magenta",
    CandidateState.SKIPPED: "dim",
    CandidateState.FAILED: "red",
}


def _describe(outcome: CandidateOutcome) -> str:
    if outcome.failure is not None:
        text = f"{outcome.failure.kind}: {escape(outcome.failure.message)}"
        if outcome.failure.context:
            text += f" [dim]({escape(outcome.failure.context)})[/dim]"
        return text
    if outcome.visited(CandidateState.VERSION_MOVED):
        return f"moved to {outcome.key.version}"
    if outcome.visited(CandidateState.CONTENT_CHANGED):
        return "updated"
    return escape(outcome.detail or str(outcome.state))


def print_summary(console: Console, step_name: str, result: BatchResult) -> None:
    parts = [f"{result.processed} processed"]
    if result.passed:
        parts.append(f"[green]{result.passed} passed[/green]")
    if result.skipped:
        parts.append(f"[dim]{result.skipped} skipped[/dim]")
    if result.purged:
        parts.append(f"[magenta]{result.purged} purged[/magenta]")
    if result.failed:
        parts.append(f"[red]{result.failed} failed[/red]")
    console.print(f"\n[bold]{step_name}[/bold]: " + ", ".join(parts))


def write_ledger(path: Path, result: BatchResult) -> None:
    """Write the failure ledger as YAML keyed by candidate."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(result.ledger(), sort_keys=True, allow_unicode=True),
        encoding="utf-8",
    )


def run_step_command(
    step_name: str,
    settings: Settings,
    *,
    provider: str | None = None,
    failures_path: Path | None = None,
    verbose: bool = True,
) -> None:
    """Run one step end to end for a CLI command.

    Exits with status 1 when any candidate failed and 2 when the registry
    itself cannot be read or written.
    """
    console = Console()

    def on_outcome(candidate: Candidate, outcome: CandidateOutcome) -> None:
        if not verbose and outcome.ok:
            return
        style = _STATE_STYLE.get(outcome.state, "white") if outcome.state else "white"
        console.print(f"[{style}]{escape(str(candidate.key))}[/{style}] {_describe(outcome)}")

    try:
        result = run_pipeline(settings, step_name, provider=provider, on_outcome=on_outcome)
    except RegistryError as exc:
        console.print(f"[red]Registry error:[/red] {escape(str(exc))}")
        raise SystemExit(2) from exc

    print_summary(console, step_name, result)
    if failures_path is not None:
        write_ledger(failures_path, result)
        console.print(f"Failure ledger written to {failures_path}")
    if result.failed:
        raise SystemExit(1)
