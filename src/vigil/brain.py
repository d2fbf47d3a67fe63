"""The decision-making collaborator driven by the heartbeat."""

from __future__ import annotations

import importlib
from typing import Any, Protocol, runtime_checkable

from .config import ConfigError
from .model import Decision

BRAIN_METHODS = (
    "collect_env",
    "think",
    "execute_decision",
    "run_patrol",
    "generate_morning_briefing",
)


@runtime_checkable
class Brain(Protocol):
    async def collect_env(self) -> Any:
        """Return an environment snapshot; an empty one means nothing to do."""
        ...

    async def think(self, snapshot: Any) -> Decision | str:
        """Decide what to do about a snapshot.

        A plain string is accepted in the `SENTINEL|reason` wire form.
        """
        ...

    async def execute_decision(self, decision: Decision) -> None: ...

    async def run_patrol(self) -> None: ...

    async def generate_morning_briefing(self) -> None: ...


def load_brain(spec: str, **kwargs: Any) -> Brain:
    """Build a Brain from a `package.module:factory` reference."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Invalid brain reference {spec!r}; expected 'module:factory'.")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import brain module {module_name!r}: {exc}") from exc
    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ConfigError(f"Brain factory {attr!r} not found in {module_name!r}.")
    brain = factory(**kwargs)
    missing = [name for name in BRAIN_METHODS if not callable(getattr(brain, name, None))]
    if missing:
        raise ConfigError(
            f"Brain from {spec!r} is missing methods: {', '.join(missing)}"
        )
    return brain
