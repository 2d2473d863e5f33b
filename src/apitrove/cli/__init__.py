# ABOUTME: CLI package for apitrove, built on Click.
# ABOUTME: Defines the root command group, wires up logging and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from apitrove.cli.commands import (
    add_cmd,
    purge_cmd,
    rewrite_cmd,
    update_cmd,
    urls_cmd,
    validate_cmd,
)


def configure_logging(debug: bool) -> None:
    """Route stdlib logging through rich; DEBUG with --debug, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="apitrove")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging.")
def cli(debug: bool) -> None:
    """apitrove - harvest, normalize and reconcile API description documents."""
    configure_logging(debug)


cli.add_command(add_cmd.add)
cli.add_command(update_cmd.update)
cli.add_command(validate_cmd.validate)
cli.add_command(validate_cmd.ci)
cli.add_command(purge_cmd.purge)
cli.add_command(purge_cmd.paths)
cli.add_command(urls_cmd.urls)
cli.add_command(rewrite_cmd.rewrite)
