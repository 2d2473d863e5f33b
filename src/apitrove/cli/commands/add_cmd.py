# ABOUTME: The `apitrove add` command for registering a new source document.
# ABOUTME: Fetches and normalizes the source, then stores it under a derived provider name.

import click
from rich.console import Console
from rich.markup import escape

from apitrove.cli.options import settings_options
from apitrove.config import Settings
from apitrove.core.adder import AddOptions
from apitrove.core.orchestrator import add_to_registry
from apitrove.registry.store import RegistryError


@click.command("add")
@click.argument("locator")
@click.option(
    "-s", "--service",
    default="",
    help="Service name within the provider.",
)
@click.option(
    "-H", "--host",
    default=None,
    help="Override the host the document declares.",
)
@click.option(
    "-l", "--logo",
    default=None,
    help="Logo URL recorded as info.x-logo.",
)
@click.option(
    "-c", "--categories",
    default="",
    help="Comma-separated categories stored as a patch overlay.",
)
@click.option(
    "-u", "--unofficial",
    is_flag=True,
    default=False,
    help="Mark the document as an unofficial description.",
)
@settings_options
def add(
    locator: str,
    service: str,
    host: str | None,
    logo: str | None,
    categories: str,
    unofficial: bool,
    settings: Settings,
) -> None:
    """Fetch LOCATOR (URL or path) and add it to the registry."""
    console = Console()
    options = AddOptions(
        service=service,
        host=host,
        logo=logo,
        categories=[c.strip() for c in categories.split(",") if c.strip()],
        unofficial=unofficial,
        force=settings.force,
    )
    try:
        outcome = add_to_registry(settings, locator, options)
    except RegistryError as exc:
        console.print(f"[red]Registry error:[/red] {escape(str(exc))}")
        raise SystemExit(2) from exc

    if outcome.failure is not None:
        message = escape(outcome.failure.message)
        if outcome.failure.context:
            message += f" [dim]({escape(outcome.failure.context)})[/dim]"
        console.print(f"[red]Add failed:[/red] {message}")
        raise SystemExit(1)
    console.print(f"[green]Added[/green] {escape(str(outcome.key))}")
