"""Delivery channel contract."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class NotifierError(RuntimeError):
    pass


@runtime_checkable
class Notifier(Protocol):
    name: str

    async def send(self, message: str) -> None:
        """Deliver one message or raise."""
        ...
