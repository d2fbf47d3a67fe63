"""LINE Notify delivery channel."""

from __future__ import annotations

import httpx

from .base import NotifierError

LINE_NOTIFY_URL = "https://notify-api.line.me/api/notify"


class LineNotifier:
    name = "line"

    def __init__(
        self,
        token: str,
        *,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ValueError("LINE Notify token is empty")
        self._token = token
        self.timeout_s = timeout_s
        self._transport = transport

    async def send(self, message: str) -> None:
        async with httpx.AsyncClient(
            timeout=self.timeout_s, transport=self._transport
        ) as client:
            try:
                resp = await client.post(
                    LINE_NOTIFY_URL,
                    headers={"Authorization": f"Bearer {self._token}"},
                    data={"message": message},
                )
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise NotifierError(
                    f"line http error {exc.response.status_code}: {exc.response.text}"
                ) from exc
            except httpx.HTTPError as exc:
                raise NotifierError(f"line network error: {exc}") from exc
