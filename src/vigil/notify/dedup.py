"""Suppress repeated message bodies inside a cooldown window."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

DEFAULT_COOLDOWN_S = 600.0


def content_hash(message: str) -> str:
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class DedupEntry:
    content_hash: str
    last_sent_at: datetime


class Deduper:
    """Remembers when each message body was last accepted.

    Times come from the wall clock, so clock changes shift expiry.
    """

    def __init__(
        self,
        cooldown_s: float = DEFAULT_COOLDOWN_S,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.cooldown = timedelta(seconds=cooldown_s)
        self._clock = clock
        self._entries: dict[str, DedupEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def should_send(self, message: str, now: datetime | None = None) -> bool:
        """Return False for a body already accepted within the cooldown.

        An accepted body has its timestamp refreshed, and expired entries are
        purged on the way out.
        """
        now = now if now is not None else self._clock()
        digest = content_hash(message)
        with self._lock:
            entry = self._entries.get(digest)
            if entry is not None and now - entry.last_sent_at < self.cooldown:
                return False
            self._entries[digest] = DedupEntry(content_hash=digest, last_sent_at=now)
            self._purge_locked(now)
            return True

    def purge(self, now: datetime | None = None) -> int:
        now = now if now is not None else self._clock()
        with self._lock:
            return self._purge_locked(now)

    def _purge_locked(self, now: datetime) -> int:
        expired = [
            digest
            for digest, entry in self._entries.items()
            if now - entry.last_sent_at > self.cooldown
        ]
        for digest in expired:
            del self._entries[digest]
        return len(expired)
