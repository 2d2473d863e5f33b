# ABOUTME: Shared Click options for apitrove CLI commands.
# ABOUTME: Builds the run Settings from flags and their APITROVE_* environment variables.

import functools
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from apitrove.config import Settings
from apitrove.core.storage import DEFAULT_APIS_DIR
from apitrove.fetch.http import DEFAULT_CACHE_PATH, DEFAULT_TIMEOUT, RefreshMode
from apitrove.registry.store import DEFAULT_REGISTRY_PATH

provider_option = click.option(
    "-p", "--provider",
    default=None,
    envvar="APITROVE_PROVIDER",
    help="Only process candidates of this provider.",
)

failures_option = click.option(
    "--failures",
    "failures_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the failure ledger to this YAML file.",
)


def settings_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the run configuration options and pass a Settings as `settings`."""

    @click.option(
        "--registry",
        "registry_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=DEFAULT_REGISTRY_PATH,
        envvar="APITROVE_REGISTRY",
        show_default=True,
        help="Path to the registry file.",
    )
    @click.option(
        "--apis-dir",
        type=click.Path(file_okay=False, path_type=Path),
        default=DEFAULT_APIS_DIR,
        envvar="APITROVE_APIS_DIR",
        show_default=True,
        help="Root directory of the stored documents.",
    )
    @click.option(
        "--cache-path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=DEFAULT_CACHE_PATH,
        envvar="APITROVE_CACHE_PATH",
        show_default=True,
        help="HTTP cache database.",
    )
    @click.option(
        "--cache/--no-cache",
        "use_cache",
        default=True,
        envvar="APITROVE_CACHE",
        help="Cache network responses between runs.",
    )
    @click.option(
        "--timeout",
        type=click.FloatRange(min=0.0, min_open=True),
        default=DEFAULT_TIMEOUT,
        envvar="APITROVE_TIMEOUT",
        show_default=True,
        help="Network fetch timeout in seconds.",
    )
    @click.option(
        "--refresh",
        type=click.Choice([m.value for m in RefreshMode]),
        default=RefreshMode.DEFAULT.value,
        envvar="APITROVE_REFRESH",
        show_default=True,
        help="Cache refresh mode for network sources.",
    )
    @click.option(
        "-f", "--force",
        is_flag=True,
        default=False,
        envvar="APITROVE_FORCE",
        help="Store documents even when they fail validation.",
    )
    @functools.wraps(func)
    def wrapper(
        *args: Any,
        registry_path: Path,
        apis_dir: Path,
        cache_path: Path,
        use_cache: bool,
        timeout: float,
        refresh: str,
        force: bool,
        **kwargs: Any,
    ) -> Any:
        settings = Settings(
            registry_path=registry_path,
            apis_dir=apis_dir,
            cache_path=cache_path if use_cache else None,
            timeout=timeout,
            refresh=RefreshMode(refresh),
            force=force,
        )
        return func(*args, settings=settings, **kwargs)

    return wrapper
