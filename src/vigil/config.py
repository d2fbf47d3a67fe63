"""Config file discovery and reading."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

HOME_CONFIG_PATH = Path.home() / ".vigil" / "vigil.toml"
CONFIG_ENV_VAR = "VIGIL_CONFIG"


class ConfigError(RuntimeError):
    pass


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Pick the config path: explicit argument, then $VIGIL_CONFIG, then home."""
    if path is not None:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return HOME_CONFIG_PATH


def read_config(config_path: Path) -> dict[str, Any]:
    if config_path.exists() and not config_path.is_file():
        raise ConfigError(f"Config path {config_path} exists but is not a file.")
    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {config_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {config_path}: {e}") from None


def ensure_table(
    config: dict[str, Any],
    key: str,
    *,
    config_path: Path,
    label: str | None = None,
) -> dict[str, Any]:
    value = config.get(key)
    if value is None:
        table: dict[str, Any] = {}
        config[key] = table
        return table
    if not isinstance(value, dict):
        name = label or key
        raise ConfigError(f"Invalid `{name}` in {config_path}; expected a table.")
    return value
