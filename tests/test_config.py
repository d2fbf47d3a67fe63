"""Tests for config discovery and reading."""

from __future__ import annotations

from pathlib import Path

import pytest

from vigil.config import (
    CONFIG_ENV_VAR,
    HOME_CONFIG_PATH,
    ConfigError,
    ensure_table,
    read_config,
    resolve_config_path,
)


class TestResolveConfigPath:
    """Tests for resolve_config_path precedence."""

    def test_explicit_path_wins(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "env.toml"))
        assert resolve_config_path(tmp_path / "cli.toml") == tmp_path / "cli.toml"

    def test_env_var(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "env.toml"))
        assert resolve_config_path() == tmp_path / "env.toml"

    def test_home_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert resolve_config_path() == HOME_CONFIG_PATH


class TestReadConfig:
    """Tests for read_config errors."""

    def test_reads_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "vigil.toml"
        path.write_text('brain = "pkg:make"\n', encoding="utf-8")
        assert read_config(path) == {"brain": "pkg:make"}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Missing config file"):
            read_config(tmp_path / "nope.toml")

    def test_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not a file"):
            read_config(tmp_path)

    def test_malformed(self, tmp_path: Path) -> None:
        path = tmp_path / "vigil.toml"
        path.write_text("[heartbeat\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Malformed TOML"):
            read_config(path)


class TestEnsureTable:
    """Tests for ensure_table."""

    def test_creates_missing_table(self, tmp_path: Path) -> None:
        config: dict = {}
        assert ensure_table(config, "notify", config_path=tmp_path) == {}
        assert config == {"notify": {}}

    def test_rejects_non_table(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="expected a table"):
            ensure_table({"notify": "yes"}, "notify", config_path=tmp_path)
