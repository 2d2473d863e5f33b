# ABOUTME: The `apitrove rewrite` command.
# ABOUTME: Re-serializes stored documents with canonical key order and refreshes the JSON copies.

import click

from apitrove.cli.options import provider_option, settings_options
from apitrove.cli.report import run_step_command
from apitrove.config import Settings


@click.command("rewrite")
@provider_option
@settings_options
def rewrite(provider: str | None, settings: Settings) -> None:
    """Rewrite every stored document in canonical form."""
    run_step_command("rewrite", settings, provider=provider, verbose=False)
