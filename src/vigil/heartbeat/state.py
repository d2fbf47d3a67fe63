"""Persist heartbeat cycle history."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..logging import get_logger
from ..utils.json_state import atomic_write_json, read_json

logger = get_logger(__name__)

HEARTBEAT_STATE_DIR = Path.home() / ".vigil" / "heartbeats"


@dataclass(slots=True)
class HeartbeatRun:
    """Record of a single heartbeat cycle."""

    started_at: str
    completed_at: str | None = None
    outcome: str = ""
    decision: str | None = None
    reason: str | None = None
    duration_ms: int | None = None
    error: str | None = None


@dataclass(slots=True)
class HeartbeatState:
    """Persistent state for a heartbeat."""

    name: str
    last_run_at: str | None = None
    runs: list[HeartbeatRun] = field(default_factory=list)
    max_runs: int = 50


def load_state(name: str, state_dir: Path | None = None) -> HeartbeatState:
    """Load heartbeat state from disk."""
    path = (state_dir or HEARTBEAT_STATE_DIR) / f"{name}.json"
    data = read_json(path)
    if data is None:
        return HeartbeatState(name=name)
    if not isinstance(data, dict):
        raise ValueError(f"Malformed heartbeat state {path}: expected an object")
    raw_runs = data.get("runs", [])
    if not isinstance(raw_runs, list) or not all(isinstance(r, dict) for r in raw_runs):
        raise ValueError(f"Malformed heartbeat state {path}: runs must be objects")

    runs = [
        HeartbeatRun(
            started_at=r.get("started_at", ""),
            completed_at=r.get("completed_at"),
            outcome=r.get("outcome", ""),
            decision=r.get("decision"),
            reason=r.get("reason"),
            duration_ms=r.get("duration_ms"),
            error=r.get("error"),
        )
        for r in raw_runs
    ]

    return HeartbeatState(
        name=name,
        last_run_at=data.get("last_run_at"),
        runs=runs,
    )


def save_state(state: HeartbeatState, state_dir: Path | None = None) -> None:
    """Save heartbeat state to disk."""
    # Trim runs to max
    if len(state.runs) > state.max_runs:
        state.runs = state.runs[-state.max_runs :]

    payload = {
        "last_run_at": state.last_run_at,
        "runs": [
            {
                "started_at": r.started_at,
                "completed_at": r.completed_at,
                "outcome": r.outcome,
                "decision": r.decision,
                "reason": r.reason,
                "duration_ms": r.duration_ms,
                "error": r.error,
            }
            for r in state.runs
        ],
    }

    path = (state_dir or HEARTBEAT_STATE_DIR) / f"{state.name}.json"
    atomic_write_json(path, payload)


class HeartbeatHistory:
    """Append-only run log for one controller."""

    def __init__(self, name: str, state_dir: Path | None = None, *, max_runs: int = 50) -> None:
        self.name = name
        self.state_dir = state_dir
        self.max_runs = max_runs

    def record(self, run: HeartbeatRun) -> None:
        try:
            state = load_state(self.name, self.state_dir)
            state.max_runs = self.max_runs
            state.last_run_at = run.completed_at
            state.runs.append(run)
            save_state(state, self.state_dir)
        except (OSError, ValueError) as exc:
            logger.warning("heartbeat.history.error", name=self.name, error=str(exc))

    def load(self) -> HeartbeatState:
        return load_state(self.name, self.state_dir)
