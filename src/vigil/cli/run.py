"""CLI command for running the vigil daemon."""

from __future__ import annotations

import signal
import threading
from pathlib import Path

import typer

from ..brain import load_brain
from ..config import ConfigError
from ..logging import get_logger, setup_logging
from ..runtime import Runtime, build_dispatcher
from ._common import CONFIG_OPTION, settings_or_exit

logger = get_logger(__name__)


def _wait_for_signal() -> None:
    stop = threading.Event()

    def _handle(signum: int, _frame: object) -> None:
        logger.info("runtime.signal", signal=signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)
    while not stop.wait(1.0):
        pass


def run_main(
    config: Path | None = CONFIG_OPTION,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging.",
    ),
) -> None:
    """Start the daemon and block until SIGINT/SIGTERM."""
    setup_logging(debug=debug)
    settings, config_path = settings_or_exit(config)

    if settings.brain is None:
        typer.echo(f"error: no brain configured in {config_path}", err=True)
        typer.echo('Set brain = "package.module:factory" at the top level.', err=True)
        raise typer.Exit(code=1)

    dispatcher = build_dispatcher(settings.notify)
    try:
        brain = load_brain(settings.brain, dispatcher=dispatcher)
    except ConfigError as exc:
        dispatcher.close()
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    runtime = Runtime(settings, brain, dispatcher=dispatcher)
    runtime.start()
    try:
        _wait_for_signal()
    finally:
        runtime.stop()
