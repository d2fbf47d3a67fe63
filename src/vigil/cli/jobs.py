"""CLI commands for managing persisted cron jobs."""

from __future__ import annotations

from pathlib import Path

import typer
from apscheduler.triggers.cron import CronTrigger

from ..scheduler import JobRecord, JobStoreError, JsonJobStore
from ..settings import VigilSettings
from ._common import CONFIG_OPTION, settings_or_exit

app = typer.Typer(help="Manage persisted cron jobs.", no_args_is_help=True)


def _store(settings: VigilSettings) -> JsonJobStore:
    return JsonJobStore(Path(settings.jobs.store_path).expanduser())


@app.command("list")
def list_jobs(config: Path | None = CONFIG_OPTION) -> None:
    """List persisted jobs."""
    settings, _ = settings_or_exit(config)
    try:
        records = _store(settings).list_all()
    except JobStoreError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if not records:
        typer.echo("No jobs persisted.")
        return

    width = max(len(record.name) for record in records)
    for record in sorted(records, key=lambda r: r.name):
        line = f"  {record.name:<{width}}  {record.cron_spec}  {record.task_type}"
        if record.description:
            line += f"  {record.description}"
        typer.echo(line)


@app.command("add")
def add_job(
    name: str = typer.Argument(..., help="Unique job name."),
    schedule: str = typer.Argument(..., help='Five-field cron spec, e.g. "30 6 * * *".'),
    task_type: str = typer.Argument(..., help="Registered task type to run."),
    description: str = typer.Option("", "--description", "-d"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Add or replace a job. The daemon picks it up on its next start."""
    settings, _ = settings_or_exit(config)
    try:
        CronTrigger.from_crontab(schedule)
    except ValueError as exc:
        typer.echo(f"error: invalid cron spec {schedule!r}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    store = _store(settings)
    try:
        # one job per task type; load_jobs would drop the newer row
        owner = next(
            (
                record.name
                for record in store.list_all()
                if record.task_type == task_type and record.name != name
            ),
            None,
        )
        if owner is not None:
            typer.echo(
                f"error: task type '{task_type}' already used by job '{owner}'",
                err=True,
            )
            typer.echo(f"Remove it first: vigil jobs remove {owner}", err=True)
            raise typer.Exit(code=1)
        store.upsert(
            JobRecord(
                name=name,
                cron_spec=schedule,
                task_type=task_type,
                description=description,
            )
        )
    except JobStoreError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"saved {name} ({schedule}) -> {task_type}")


@app.command("remove")
def remove_job(
    name: str = typer.Argument(..., help="Job name to delete."),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Delete a persisted job."""
    settings, _ = settings_or_exit(config)
    try:
        removed = _store(settings).delete(name)
    except JobStoreError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not removed:
        typer.echo(f"error: job '{name}' not found", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"removed {name}")
