"""Validated settings loaded from vigil.toml."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from apscheduler.triggers.cron import CronTrigger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)

from .config import ConfigError, ensure_table, read_config, resolve_config_path

VIGIL_HOME = Path.home() / ".vigil"


def _validate_crontab(value: str) -> str:
    try:
        CronTrigger.from_crontab(value)
    except ValueError as exc:
        raise ValueError(f"invalid cron schedule {value!r}: {exc}") from exc
    return value


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class TelegramSettings(_Model):
    bot_token: str = Field(min_length=1)
    chat_id: StrictInt


class LineSettings(_Model):
    token: str = Field(min_length=1)


class NotifySettings(_Model):
    cooldown_s: float = Field(default=600.0, ge=0)
    quiet_start: int = Field(default=23, ge=0, le=23)
    quiet_end: int = Field(default=7, ge=0, le=23)
    send_timeout_s: float = Field(default=15.0, gt=0)
    telegram: TelegramSettings | None = None
    line: LineSettings | None = None


class HeartbeatSettings(_Model):
    enabled: bool = True
    schedule: str = "*/5 * * * *"
    timeout_s: float = Field(default=120.0, gt=0)
    history_dir: str = str(VIGIL_HOME / "heartbeats")
    max_runs: int = Field(default=50, ge=1)

    @field_validator("schedule")
    @classmethod
    def _check_schedule(cls, value: str) -> str:
        return _validate_crontab(value)


class WorkerSettings(_Model):
    count: int = Field(default=3, ge=1)
    queue_size: int = Field(default=100, ge=1)


class SystemJobSettings(_Model):
    name: str = Field(min_length=1)
    schedule: str
    task_type: str = Field(min_length=1)
    description: str = ""

    @field_validator("schedule")
    @classmethod
    def _check_schedule(cls, value: str) -> str:
        return _validate_crontab(value)


def _default_system_jobs() -> list[SystemJobSettings]:
    return [
        SystemJobSettings(
            name="daily_morning_briefing",
            schedule="30 6 * * *",
            task_type="morning_briefing",
            description="Morning briefing at 06:30",
        ),
    ]


class JobsSettings(_Model):
    store_path: str = str(VIGIL_HOME / "jobs.json")
    system_jobs: list[SystemJobSettings] = Field(default_factory=_default_system_jobs)

    @model_validator(mode="after")
    def _unique_names(self) -> JobsSettings:
        names = [job.name for job in self.system_jobs]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate system job names: {', '.join(duplicates)}")
        return self


class VigilSettings(_Model):
    brain: str | None = None
    heartbeat: HeartbeatSettings = Field(default_factory=HeartbeatSettings)
    notify: NotifySettings = Field(default_factory=NotifySettings)
    workers: WorkerSettings = Field(default_factory=WorkerSettings)
    jobs: JobsSettings = Field(default_factory=JobsSettings)

    @field_validator("brain")
    @classmethod
    def _check_brain(cls, value: str | None) -> str | None:
        if value is None:
            return None
        module, sep, attr = value.partition(":")
        if not sep or not module or not attr:
            raise ValueError("brain must look like 'package.module:factory'")
        return value


def validate_settings_data(data: dict[str, Any], *, config_path: Path) -> VigilSettings:
    try:
        return VigilSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {config_path}: {exc}") from exc


def load_settings(path: str | Path | None = None) -> tuple[VigilSettings, Path]:
    """Read and validate settings, returning them with the resolved path."""
    config_path = resolve_config_path(path)
    data = read_config(config_path)
    for key in ("heartbeat", "notify", "workers", "jobs"):
        ensure_table(data, key, config_path=config_path)
    return validate_settings_data(data, config_path=config_path), config_path
