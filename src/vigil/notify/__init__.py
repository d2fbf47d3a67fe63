"""Notification dispatch to pluggable delivery channels."""

from .base import Notifier, NotifierError
from .dedup import Deduper, DedupEntry, content_hash
from .dispatcher import Dispatcher, QuietHours, coerce_level
from .line import LineNotifier
from .telegram import TelegramNotifier, split_message

__all__ = [
    "DedupEntry",
    "Deduper",
    "Dispatcher",
    "LineNotifier",
    "Notifier",
    "NotifierError",
    "QuietHours",
    "TelegramNotifier",
    "coerce_level",
    "content_hash",
    "split_message",
]
