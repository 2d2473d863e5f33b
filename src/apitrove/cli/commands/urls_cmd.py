# ABOUTME: The `apitrove urls` command listing each candidate's source locator.

import click

from apitrove.cli.options import provider_option, settings_options
from apitrove.cli.report import run_step_command
from apitrove.config import Settings


@click.command("urls")
@provider_option
@settings_options
def urls(provider: str | None, settings: Settings) -> None:
    """List the source locator of every candidate."""
    run_step_command("urls", settings, provider=provider)
