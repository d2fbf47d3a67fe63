"""Shared data types: jobs, notification levels, and Brain decisions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol, TypeAlias, runtime_checkable


class NotificationLevel(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"


@dataclass(frozen=True, slots=True)
class ScheduledJob:
    """A recurring job as the registry exposes it."""

    name: str
    cron_spec: str
    task_type: str
    description: str = ""
    next_run_time: datetime | None = None


@runtime_checkable
class BackgroundJob(Protocol):
    """One-shot unit of work for the worker pool."""

    @property
    def name(self) -> str: ...

    def execute(self) -> None: ...


# Decisions returned by Brain.think


@dataclass(frozen=True, slots=True)
class NoOp:
    pass


@dataclass(frozen=True, slots=True)
class Execute:
    reason: str = ""


@dataclass(frozen=True, slots=True)
class SelfTest:
    pass


@dataclass(frozen=True, slots=True)
class Notify:
    reason: str = ""


Decision: TypeAlias = NoOp | Execute | SelfTest | Notify

DECISION_SEPARATOR = "|"

_SENTINELS: dict[str, type[NoOp] | type[Execute] | type[SelfTest] | type[Notify]] = {
    "IDLE": NoOp,
    "EXECUTE": Execute,
    "SELF_TEST": SelfTest,
    "NOTIFY": Notify,
}


def parse_decision(raw: object) -> Decision:
    """Parse the wire form `SENTINEL[|reason]`.

    Anything unrecognised is a no-op; this never raises.
    """
    if not isinstance(raw, str):
        return NoOp()
    head, _, reason = raw.strip().partition(DECISION_SEPARATOR)
    kind = _SENTINELS.get(head.strip().upper())
    if kind is Execute:
        return Execute(reason=reason.strip())
    if kind is Notify:
        return Notify(reason=reason.strip())
    if kind is SelfTest:
        return SelfTest()
    return NoOp()


def format_decision(decision: Decision) -> str:
    """Render a decision back to its wire form."""
    match decision:
        case Execute(reason=reason):
            head, tail = "EXECUTE", reason
        case Notify(reason=reason):
            head, tail = "NOTIFY", reason
        case SelfTest():
            head, tail = "SELF_TEST", ""
        case _:
            head, tail = "IDLE", ""
    return f"{head}{DECISION_SEPARATOR}{tail}" if tail else head


def decision_reason(decision: Decision) -> str:
    match decision:
        case Execute(reason=reason) | Notify(reason=reason):
            return reason
        case _:
            return ""


DECISION_TYPES = (NoOp, Execute, SelfTest, Notify)


def coerce_decision(value: object) -> Decision:
    """Accept a Decision as-is, parse anything else from its wire form."""
    if isinstance(value, DECISION_TYPES):
        return value
    return parse_decision(value)
