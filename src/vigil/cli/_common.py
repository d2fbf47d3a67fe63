from __future__ import annotations

from pathlib import Path

import typer

from ..config import ConfigError
from ..settings import VigilSettings, load_settings

CONFIG_OPTION = typer.Option(
    None,
    "-c",
    "--config",
    help="Path to vigil.toml (defaults to $VIGIL_CONFIG or ~/.vigil/vigil.toml).",
)


def settings_or_exit(
    config: Path | None, *, quiet: bool = False
) -> tuple[VigilSettings, Path]:
    try:
        return load_settings(config)
    except ConfigError as exc:
        if not quiet:
            typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
