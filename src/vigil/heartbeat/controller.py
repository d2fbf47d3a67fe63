"""Single-flight sense/think/act cycle driven by the cron engine."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sized
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import anyio

from ..brain import Brain
from ..logging import get_logger
from ..model import Decision, NoOp, coerce_decision, decision_reason, format_decision
from .state import HeartbeatHistory, HeartbeatRun

logger = get_logger(__name__)

DEFAULT_CYCLE_TIMEOUT_S = 120.0


class CycleOutcome(str, Enum):
    BUSY = "busy"
    EMPTY = "empty"
    PATROL = "patrol"
    ACTED = "acted"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class CycleResult:
    outcome: CycleOutcome
    decision: Decision | None = None
    duration_ms: int = 0
    error: str | None = None


def _is_empty(snapshot: Any) -> bool:
    if snapshot is None:
        return True
    if isinstance(snapshot, str):
        return not snapshot.strip()
    if isinstance(snapshot, Sized):
        return len(snapshot) == 0
    return False


class HeartbeatController:
    """Runs at most one Brain cycle at a time.

    Ticks that arrive while a cycle is in flight are dropped, not queued.
    The guard is a non-blocking lock acquire so the cron thread never waits
    on it.
    """

    def __init__(
        self,
        brain: Brain,
        *,
        timeout_s: float = DEFAULT_CYCLE_TIMEOUT_S,
        on_complete: Callable[[], None] | None = None,
        history: HeartbeatHistory | None = None,
    ) -> None:
        self.brain = brain
        self.timeout_s = timeout_s
        self.on_complete = on_complete
        self.history = history
        self._guard = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._guard.locked()

    def pulse(self) -> CycleResult:
        """Run one cycle from a synchronous context such as a cron thread."""
        if not self._guard.acquire(blocking=False):
            logger.info("heartbeat.busy")
            return CycleResult(CycleOutcome.BUSY)
        try:
            return anyio.run(self._cycle)
        finally:
            self._release()

    async def run_cycle(self) -> CycleResult:
        """Run one cycle from inside an event loop."""
        if not self._guard.acquire(blocking=False):
            logger.info("heartbeat.busy")
            return CycleResult(CycleOutcome.BUSY)
        try:
            return await self._cycle()
        finally:
            self._release()

    def _release(self) -> None:
        self._guard.release()
        if self.on_complete is None:
            return
        try:
            self.on_complete()
        except Exception:
            logger.exception("heartbeat.on_complete.failed")

    async def _cycle(self) -> CycleResult:
        start = time.monotonic()
        started_at = datetime.now(timezone.utc).isoformat()
        logger.debug("heartbeat.cycle.started")

        try:
            with anyio.fail_after(self.timeout_s):
                outcome, decision, error = await self._sense_think_act()
        except TimeoutError:
            outcome, decision = CycleOutcome.TIMEOUT, None
            error = f"cycle exceeded {self.timeout_s}s"
            logger.warning("heartbeat.timeout", timeout_s=self.timeout_s)

        duration_ms = int((time.monotonic() - start) * 1000)
        rendered = format_decision(decision) if decision is not None else None
        logger.info(
            "heartbeat.cycle.done",
            outcome=outcome.value,
            decision=rendered,
            duration_ms=duration_ms,
        )

        if self.history is not None:
            run = HeartbeatRun(
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
                outcome=outcome.value,
                decision=rendered,
                reason=decision_reason(decision) if decision is not None else None,
                duration_ms=duration_ms,
                error=error,
            )
            await anyio.to_thread.run_sync(self.history.record, run)

        return CycleResult(
            outcome=outcome,
            decision=decision,
            duration_ms=duration_ms,
            error=error,
        )

    async def _sense_think_act(
        self,
    ) -> tuple[CycleOutcome, Decision | None, str | None]:
        try:
            snapshot = await self.brain.collect_env()
        except Exception as exc:
            logger.error("heartbeat.sense.failed", error=str(exc))
            return CycleOutcome.ERROR, None, str(exc)
        if _is_empty(snapshot):
            logger.debug("heartbeat.sense.empty")
            return CycleOutcome.EMPTY, None, None

        try:
            decision = coerce_decision(await self.brain.think(snapshot))
        except Exception as exc:
            logger.error("heartbeat.think.failed", error=str(exc))
            return CycleOutcome.ERROR, None, str(exc)

        if isinstance(decision, NoOp):
            try:
                await self.brain.run_patrol()
            except Exception as exc:
                logger.warning("heartbeat.patrol.failed", error=str(exc))
                return CycleOutcome.ERROR, decision, str(exc)
            return CycleOutcome.PATROL, decision, None

        try:
            await self.brain.execute_decision(decision)
        except Exception as exc:
            logger.error(
                "heartbeat.act.failed",
                decision=format_decision(decision),
                error=str(exc),
            )
            return CycleOutcome.ERROR, decision, str(exc)
        return CycleOutcome.ACTED, decision, None
