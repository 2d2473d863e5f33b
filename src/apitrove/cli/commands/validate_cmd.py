# ABOUTME: The `apitrove validate` and `apitrove ci` commands.
# ABOUTME: Re-run normalization over stored documents, either all of them or only recent changes.

from pathlib import Path

import click

from apitrove.cli.options import failures_option, provider_option, settings_options
from apitrove.cli.report import run_step_command
from apitrove.config import Settings


@click.command("validate")
@provider_option
@failures_option
@settings_options
def validate(provider: str | None, failures_path: Path | None, settings: Settings) -> None:
    """Validate every stored document."""
    run_step_command("validate", settings, provider=provider, failures_path=failures_path)


@click.command("ci")
@provider_option
@failures_option
@settings_options
def ci(provider: str | None, failures_path: Path | None, settings: Settings) -> None:
    """Validate only the documents updated recently."""
    run_step_command(
        "ci", settings, provider=provider, failures_path=failures_path, verbose=False,
    )
