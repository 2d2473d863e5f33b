# ABOUTME: The `apitrove update` command for reconciling the registry with upstream sources.
# ABOUTME: Fetches every candidate's source, stores changed documents and moves renamed versions.

from pathlib import Path

import click

from apitrove.cli.options import failures_option, provider_option, settings_options
from apitrove.cli.report import run_step_command
from apitrove.config import Settings


@click.command("update")
@provider_option
@failures_option
@click.option(
    "-q", "--quiet",
    is_flag=True,
    default=False,
    help="Only report candidates that failed.",
)
@settings_options
def update(
    provider: str | None, failures_path: Path | None, quiet: bool, settings: Settings,
) -> None:
    """Fetch every tracked source and bring the stored documents up to date."""
    run_step_command(
        "update", settings, provider=provider, failures_path=failures_path, verbose=not quiet,
    )
