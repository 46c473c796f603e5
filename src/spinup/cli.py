"""
spinup command line.

    spinup [PATH] [--shell] [--target NAME] [--config FILE] [--no-cache]

Scaffolds the chosen target into PATH (default: current directory), builds
it and optionally drops into its REPL.
"""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path

import typer

from ._version import get_version
from .cli_ui import print_error, print_info, print_success, print_targets
from .core.cache import BuildCache
from .core.config import get_default_config_path, load_config
from .core.errors import SpinupError
from .core.resolver import TargetResolver

LOG_LEVEL_ENV_VAR = "SPINUP_LOG_LEVEL"


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging from --verbose or SPINUP_LOG_LEVEL (default WARNING)."""
    if verbose:
        level = logging.INFO
    else:
        name = os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").strip().upper()
        level = getattr(logging, name, logging.WARNING)
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(level)


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"spinup version {get_version()}")
        typer.echo(f"  Python:   {platform.python_implementation()} {platform.python_version()}")
        typer.echo(f"  Platform: {platform.system()} {platform.release()}")
        typer.echo(f"  Config:   {get_default_config_path()}")
        raise typer.Exit()


app = typer.Typer(
    help="Generate dynamic, scripting language projects with dependencies for quick CLI feedback loops.",
    add_completion=False,
)


@app.command()
def spinup(
    path: Path = typer.Argument(  # noqa: B008
        Path("."),
        help="Path to create the project in",
    ),
    shell: bool = typer.Option(
        False,
        "--shell",
        "-s",
        help="Drop into the REPL after building",
    ),
    target: str | None = typer.Option(
        None,
        "--target",
        "-t",
        help="Target to build (a language and dependencies pairing, repo or directory)",
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Config file (default: $SPINUP_CONFIG or ~/.config/spinup/config.yaml)",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Rebuild even if a cached build matches",
    ),
    list_targets: bool = typer.Option(
        False,
        "--list-targets",
        help="List configured targets and exit",
    ),
    clear_cache: bool = typer.Option(
        False,
        "--clear-cache",
        help="Remove the cached build of the target and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every step",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
) -> None:
    """
    Scaffold and build a target.

    Examples:
        spinup scratch                  # Default target into ./scratch
        spinup scratch -t elixir -s     # Elixir project, then iex
        spinup --list-targets           # Show what the config declares
    """
    configure_logging(verbose)

    try:
        spinup_config = load_config(config)

        if list_targets:
            print_targets(spinup_config)
            raise typer.Exit()

        if clear_cache:
            name, _ = spinup_config.get_target(target)
            if BuildCache(spinup_config.build_dir).clear(name):
                print_success(f"Cleared cached build of {name}")
            else:
                print_info(f"No cached build of {name}")
            raise typer.Exit()

        resolver = TargetResolver(spinup_config)
        resolver.resolve_named(target, path, want_shell=shell, no_cache=no_cache)
    except SpinupError as e:
        print_error(str(e))
        raise typer.Exit(code=1)

    print_success(f"Project ready in {path.expanduser().resolve()}")


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
