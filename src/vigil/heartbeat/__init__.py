"""Heartbeat: periodic autonomous sense/think/act cycles."""

from .controller import CycleOutcome, CycleResult, HeartbeatController
from .state import HeartbeatHistory, HeartbeatRun, HeartbeatState, load_state, save_state

__all__ = [
    "CycleOutcome",
    "CycleResult",
    "HeartbeatController",
    "HeartbeatHistory",
    "HeartbeatRun",
    "HeartbeatState",
    "load_state",
    "save_state",
]
