# ABOUTME: The `apitrove purge` and `apitrove paths` commands for registry housekeeping.
# ABOUTME: Drop entries whose files vanished, and recount endpoints, dropping empty documents.

import click

from apitrove.cli.options import provider_option, settings_options
from apitrove.cli.report import run_step_command
from apitrove.config import Settings


@click.command("purge")
@provider_option
@settings_options
def purge(provider: str | None, settings: Settings) -> None:
    """Remove registry entries whose stored document is missing."""
    run_step_command("purge", settings, provider=provider, verbose=False)


@click.command("paths")
@provider_option
@settings_options
def paths(provider: str | None, settings: Settings) -> None:
    """Recount endpoints; documents with none are deleted."""
    run_step_command("paths", settings, provider=provider)
