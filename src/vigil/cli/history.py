"""CLI command for inspecting heartbeat history."""

from __future__ import annotations

from pathlib import Path

import typer

from ..heartbeat import load_state
from ..runtime import HEARTBEAT_JOB
from ._common import CONFIG_OPTION, settings_or_exit


def history_main(
    limit: int = typer.Option(10, "-n", "--limit", min=1),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Print the most recent heartbeat cycles, newest last."""
    settings, _ = settings_or_exit(config)
    try:
        state = load_state(
            HEARTBEAT_JOB, Path(settings.heartbeat.history_dir).expanduser()
        )
    except (OSError, ValueError) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not state.runs:
        typer.echo("No heartbeat cycles recorded.")
        return

    for run in state.runs[-limit:]:
        line = f"  {run.started_at}  {run.outcome:<7}  {run.duration_ms}ms"
        if run.decision:
            line += f"  {run.decision}"
        if run.error:
            line += f"  error: {run.error}"
        typer.echo(line)
