"""Tests for Telegram and LINE notifiers."""

from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest

from vigil.notify import LineNotifier, NotifierError, TelegramNotifier, split_message
from vigil.notify.line import LINE_NOTIFY_URL
from vigil.notify.telegram import TELEGRAM_MESSAGE_MAX_CHARS


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})


class TestSplitMessage:
    """Tests for split_message."""

    def test_short_message_single_chunk(self) -> None:
        assert split_message("hello") == ["hello"]

    def test_empty(self) -> None:
        assert split_message("") == []

    def test_prefers_line_breaks(self) -> None:
        text = "aaaa\nbbbb\ncccc"
        assert split_message(text, max_chars=10) == ["aaaa\nbbbb\n", "cccc"]

    def test_hard_split_without_breaks(self) -> None:
        chunks = split_message("x" * 25, max_chars=10)
        assert chunks == ["x" * 10, "x" * 10, "x" * 5]

    def test_limit(self) -> None:
        chunks = split_message("y" * (TELEGRAM_MESSAGE_MAX_CHARS + 1))
        assert [len(c) for c in chunks] == [TELEGRAM_MESSAGE_MAX_CHARS, 1]


class TestTelegramNotifier:
    """Tests for TelegramNotifier.send."""

    @pytest.mark.anyio
    async def test_posts_send_message(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return _ok(request)

        notifier = TelegramNotifier(
            "123:abc", 42, transport=httpx.MockTransport(handler)
        )
        await notifier.send("backup done")

        assert len(requests) == 1
        assert str(requests[0].url) == "https://api.telegram.org/bot123:abc/sendMessage"
        payload = json.loads(requests[0].content)
        assert payload["chat_id"] == 42
        assert payload["text"] == "backup done"
        assert "disable_notification" not in payload
        assert "parse_mode" not in payload

    @pytest.mark.anyio
    async def test_long_message_sent_in_chunks(self) -> None:
        payloads: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            payloads.append(json.loads(request.content))
            return _ok(request)

        notifier = TelegramNotifier("t", 1, transport=httpx.MockTransport(handler))
        await notifier.send("z" * (TELEGRAM_MESSAGE_MAX_CHARS + 10))

        assert len(payloads) == 2
        assert "disable_notification" not in payloads[0]
        assert payloads[1]["disable_notification"] is True

    @pytest.mark.anyio
    async def test_parse_mode_rejected_retries_plain(self) -> None:
        payloads: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            payloads.append(payload)
            if "parse_mode" in payload:
                return httpx.Response(400, json={"ok": False, "description": "bad entities"})
            return _ok(request)

        notifier = TelegramNotifier(
            "t", 1, parse_mode="HTML", transport=httpx.MockTransport(handler)
        )
        await notifier.send("<b>unclosed")

        assert len(payloads) == 2
        assert "parse_mode" not in payloads[1]

    @pytest.mark.anyio
    async def test_api_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": False, "description": "chat not found"})

        notifier = TelegramNotifier("t", 1, transport=httpx.MockTransport(handler))
        with pytest.raises(NotifierError, match="chat not found"):
            await notifier.send("hi")

    @pytest.mark.anyio
    async def test_http_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        notifier = TelegramNotifier("t", 1, transport=httpx.MockTransport(handler))
        with pytest.raises(NotifierError, match="502"):
            await notifier.send("hi")

    @pytest.mark.anyio
    async def test_network_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        notifier = TelegramNotifier("t", 1, transport=httpx.MockTransport(handler))
        with pytest.raises(NotifierError, match="network"):
            await notifier.send("hi")

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValueError):
            TelegramNotifier("", 1)


class TestLineNotifier:
    """Tests for LineNotifier.send."""

    @pytest.mark.anyio
    async def test_posts_form(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"status": 200, "message": "ok"})

        notifier = LineNotifier("line-token", transport=httpx.MockTransport(handler))
        await notifier.send("morning briefing ready")

        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == LINE_NOTIFY_URL
        assert request.headers["Authorization"] == "Bearer line-token"
        assert parse_qs(request.content.decode()) == {"message": ["morning briefing ready"]}

    @pytest.mark.anyio
    async def test_unauthorized_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"status": 401, "message": "Invalid access token"})

        notifier = LineNotifier("bad", transport=httpx.MockTransport(handler))
        with pytest.raises(NotifierError, match="401"):
            await notifier.send("hi")

    def test_name(self) -> None:
        assert LineNotifier("x").name == "line"
