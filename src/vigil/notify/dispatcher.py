"""Fan-out of messages to notifiers with dedup and quiet hours."""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime

import anyio

from ..logging import get_logger
from ..model import NotificationLevel
from .base import Notifier
from .dedup import DEFAULT_COOLDOWN_S, Deduper

logger = get_logger(__name__)

DEFAULT_SEND_TIMEOUT_S = 15.0


@dataclass(frozen=True, slots=True)
class QuietHours:
    """Local hour range [start, end) during which only urgent messages go out."""

    start: int = 23
    end: int = 7

    def contains(self, now: datetime) -> bool:
        hour = now.hour
        if self.start == self.end:
            return False
        if self.start < self.end:
            return self.start <= hour < self.end
        return hour >= self.start or hour < self.end


def coerce_level(level: NotificationLevel | str) -> NotificationLevel:
    if isinstance(level, NotificationLevel):
        return level
    return NotificationLevel(str(level).strip().lower())


class Dispatcher:
    """Sends each accepted message to every registered notifier.

    Sends run on a thread pool, each under its own timeout; `dispatch`
    returns as soon as they are scheduled.
    """

    def __init__(
        self,
        *,
        cooldown_s: float = DEFAULT_COOLDOWN_S,
        quiet_hours: QuietHours | None = None,
        send_timeout_s: float = DEFAULT_SEND_TIMEOUT_S,
        clock: Callable[[], datetime] = datetime.now,
        max_workers: int | None = None,
    ) -> None:
        self.quiet_hours = quiet_hours if quiet_hours is not None else QuietHours()
        self.send_timeout_s = send_timeout_s
        self._clock = clock
        self._deduper = Deduper(cooldown_s, clock=clock)
        self._notifiers: list[Notifier] = []
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="vigil-notify"
        )

    @property
    def notifiers(self) -> list[Notifier]:
        with self._lock:
            return list(self._notifiers)

    @property
    def deduper(self) -> Deduper:
        return self._deduper

    def register(self, notifier: Notifier) -> None:
        with self._lock:
            self._notifiers.append(notifier)
        logger.info("notify.registered", notifier=notifier.name)

    def is_quiet_hours(self, now: datetime | None = None) -> bool:
        return self.quiet_hours.contains(now if now is not None else self._clock())

    def dispatch(self, level: NotificationLevel | str, message: str) -> list[Future[bool]]:
        """Schedule delivery of a message; returns one future per notifier."""
        level = coerce_level(level)

        # reserved bypass level, currently never delivered
        if level is NotificationLevel.EMERGENCY:
            logger.info("notify.emergency_noop")
            return []

        now = self._clock()
        if not self._deduper.should_send(message, now):
            logger.info("notify.duplicate", level=level.value)
            return []

        if self.quiet_hours.contains(now) and level is not NotificationLevel.URGENT:
            logger.info("notify.quiet_hours", level=level.value, hour=now.hour)
            return []

        notifiers = self.notifiers
        if not notifiers:
            logger.debug("notify.no_notifiers", level=level.value)
        return [
            self._executor.submit(self._send_one, notifier, message)
            for notifier in notifiers
        ]

    def close(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _send_one(self, notifier: Notifier, message: str) -> bool:
        try:
            anyio.run(self._send_with_timeout, notifier, message)
        except TimeoutError:
            logger.error(
                "notify.failed",
                notifier=notifier.name,
                error=f"timed out after {self.send_timeout_s}s",
            )
            return False
        except Exception as exc:
            logger.error("notify.failed", notifier=notifier.name, error=str(exc))
            return False
        logger.info("notify.sent", notifier=notifier.name)
        return True

    async def _send_with_timeout(self, notifier: Notifier, message: str) -> None:
        with anyio.fail_after(self.send_timeout_s):
            await notifier.send(message)
