"""Telegram delivery channel."""

from __future__ import annotations

from typing import Any

import httpx

from ..logging import get_logger
from .base import NotifierError

logger = get_logger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_MESSAGE_MAX_CHARS = 4096


def split_message(text: str, *, max_chars: int = TELEGRAM_MESSAGE_MAX_CHARS) -> list[str]:
    """Split text into chunks of at most max_chars, preferring line breaks."""
    if not text:
        return []
    max_chars = max(1, int(max_chars))

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + max_chars, len(text))
        if end < len(text):
            last_break = text.rfind("\n", start, end)
            if last_break > start:
                end = last_break + 1
        chunks.append(text[start:end])
        start = end

    return chunks


class TelegramNotifier:
    """Send messages to one chat through the Bot API."""

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: int,
        *,
        parse_mode: str | None = None,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not bot_token:
            raise ValueError("Telegram token is empty")
        self.chat_id = chat_id
        self.parse_mode = parse_mode
        self.timeout_s = timeout_s
        self._url = f"{TELEGRAM_API_BASE}/bot{bot_token}/sendMessage"
        self._transport = transport

    async def send(self, message: str) -> None:
        chunks = split_message(message)
        async with httpx.AsyncClient(
            timeout=self.timeout_s, transport=self._transport
        ) as client:
            for idx, chunk in enumerate(chunks):
                await self._send_chunk(
                    client, chunk, disable_notification=True if idx > 0 else None
                )

    async def _send_chunk(
        self,
        client: httpx.AsyncClient,
        text: str,
        *,
        disable_notification: bool | None,
    ) -> None:
        payload: dict[str, Any] = {
            "chat_id": self.chat_id,
            "text": text,
            "link_preview_options": {"is_disabled": True},
        }
        if disable_notification is not None:
            payload["disable_notification"] = disable_notification
        if self.parse_mode is not None:
            payload["parse_mode"] = self.parse_mode

        try:
            resp = await client.post(self._url, json=payload)
            if resp.status_code == 400 and self.parse_mode is not None:
                # formatting rejected, resend as plain text
                logger.warning("telegram.parse_mode.rejected", parse_mode=self.parse_mode)
                payload.pop("parse_mode")
                resp = await client.post(self._url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise NotifierError(
                f"telegram http error {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NotifierError(f"telegram network error: {exc}") from exc
        except ValueError as exc:
            raise NotifierError(f"telegram bad response: {exc}") from exc

        if not isinstance(data, dict) or not data.get("ok", False):
            description = data.get("description") if isinstance(data, dict) else data
            raise NotifierError(f"telegram api error: {description}")
