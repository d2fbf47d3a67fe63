"""vigil command line."""

from __future__ import annotations

import typer

from .history import history_main
from .jobs import app as jobs_app
from .notify import notify_main
from .run import run_main

app = typer.Typer(
    help="Heartbeat scheduling and notification dispatch.",
    no_args_is_help=True,
)
app.command("run", help="Run the scheduler, workers and heartbeat.")(run_main)
app.command("notify", help="Send a notification through the configured channels.")(
    notify_main
)
app.command("history", help="Show recent heartbeat cycles.")(history_main)
app.add_typer(jobs_app, name="jobs")


def main() -> None:
    app()
