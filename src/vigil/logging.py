"""Structured logging setup."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

_TOKEN_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")
_REDACTED = "bot[REDACTED]"


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return _TOKEN_RE.sub(_REDACTED, value)
    return value


class RedactTokenFilter(logging.Filter):
    """Strip Telegram bot tokens from stdlib log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = _redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(_redact(arg) for arg in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: _redact(v) for k, v in record.args.items()}
        return True


def _redact_event(
    _logger: Any, _method: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    return {key: _redact(value) for key, value in event_dict.items()}


def setup_logging(*, debug: bool = False) -> None:
    """Configure stdlib logging and structlog for the process."""
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RedactTokenFilter())
    # apscheduler and httpx are chatty at INFO
    logging.getLogger("apscheduler").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        _redact_event,
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend(
            [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger bound to a module name."""
    return structlog.get_logger(name)
