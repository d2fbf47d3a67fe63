"""CLI command for one-off notifications."""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from ..logging import setup_logging
from ..notify import coerce_level
from ..runtime import build_dispatcher
from ._common import CONFIG_OPTION, settings_or_exit


def notify_main(
    message: str = typer.Argument(..., help="Message text, or - to read stdin."),
    level: str = typer.Option(
        "normal",
        "-l",
        "--level",
        help="normal, urgent or emergency.",
    ),
    config: Path | None = CONFIG_OPTION,
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Suppress output."),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    """Dispatch MESSAGE and wait for every channel to finish."""
    setup_logging(debug=debug)

    if message == "-":
        message = sys.stdin.read()
    if not message.strip():
        if not quiet:
            typer.echo("error: empty message", err=True)
        raise typer.Exit(code=1)

    try:
        parsed = coerce_level(level)
    except ValueError as exc:
        if not quiet:
            typer.echo(f"error: unknown level {level!r}", err=True)
        raise typer.Exit(code=1) from exc

    settings, config_path = settings_or_exit(config, quiet=quiet)
    dispatcher = build_dispatcher(settings.notify)
    if not dispatcher.notifiers:
        dispatcher.close()
        if not quiet:
            typer.echo(f"error: no notifiers configured in {config_path}", err=True)
        raise typer.Exit(code=1)

    try:
        futures = dispatcher.dispatch(parsed, message)
        results = [future.result() for future in futures]
    finally:
        dispatcher.close()

    if not futures:
        if not quiet:
            typer.echo("suppressed")
        raise typer.Exit(code=0)
    if not quiet:
        typer.echo(f"sent {sum(results)}/{len(results)}")
    raise typer.Exit(code=0 if all(results) else 1)
