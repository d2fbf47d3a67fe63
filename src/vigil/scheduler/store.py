"""Durable storage for recurring job definitions."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from ..utils.json_state import atomic_write_json, read_json


class JobStoreError(RuntimeError):
    pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class JobRecord:
    """A persisted job row."""

    name: str
    cron_spec: str
    task_type: str
    description: str = ""
    created_at: str = field(default_factory=_now_iso)


class JobStore(Protocol):
    def upsert(self, record: JobRecord) -> None: ...

    def get(self, name: str) -> JobRecord | None: ...

    def list_all(self) -> list[JobRecord]: ...

    def delete(self, name: str) -> bool: ...


def _record_from_dict(data: Any, *, path: Path) -> JobRecord:
    if not isinstance(data, dict):
        raise JobStoreError(f"Invalid job entry in {path}: {data!r}")
    try:
        return JobRecord(
            name=str(data["name"]),
            cron_spec=str(data["cron_spec"]),
            task_type=str(data["task_type"]),
            description=str(data.get("description") or ""),
            created_at=str(data.get("created_at") or ""),
        )
    except KeyError as exc:
        raise JobStoreError(f"Job entry in {path} is missing {exc}") from None


class JsonJobStore:
    """Job rows kept in a single JSON document.

    The file is re-read on every call so a CLI process and a running daemon
    observe each other's writes.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> dict[str, JobRecord]:
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as exc:
            raise JobStoreError(f"Failed to read job store {self.path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict) or not isinstance(data.get("jobs", []), list):
            raise JobStoreError(f"Malformed job store {self.path}")
        records: dict[str, JobRecord] = {}
        for entry in data.get("jobs", []):
            record = _record_from_dict(entry, path=self.path)
            records[record.name] = record
        return records

    def _write(self, records: dict[str, JobRecord]) -> None:
        payload = {"jobs": [asdict(record) for record in records.values()]}
        try:
            atomic_write_json(self.path, payload)
        except OSError as exc:
            raise JobStoreError(f"Failed to write job store {self.path}: {exc}") from exc

    def upsert(self, record: JobRecord) -> None:
        """Insert or update by name, keeping the original creation time."""
        with self._lock:
            records = self._read()
            existing = records.get(record.name)
            if existing is not None and existing.created_at:
                record = JobRecord(
                    name=record.name,
                    cron_spec=record.cron_spec,
                    task_type=record.task_type,
                    description=record.description,
                    created_at=existing.created_at,
                )
            records[record.name] = record
            self._write(records)

    def get(self, name: str) -> JobRecord | None:
        with self._lock:
            return self._read().get(name)

    def list_all(self) -> list[JobRecord]:
        with self._lock:
            return list(self._read().values())

    def delete(self, name: str) -> bool:
        with self._lock:
            records = self._read()
            if records.pop(name, None) is None:
                return False
            self._write(records)
            return True
