"""Tests for message deduplication."""

from __future__ import annotations

from datetime import datetime, timedelta

from vigil.notify import Deduper, content_hash

T0 = datetime(2026, 3, 1, 12, 0, 0)


class TestDeduper:
    """Tests for Deduper.should_send."""

    def test_first_message_is_sent(self) -> None:
        assert Deduper(600).should_send("disk full", T0) is True

    def test_repeat_within_cooldown_is_suppressed(self) -> None:
        deduper = Deduper(600)
        deduper.should_send("disk full", T0)

        assert deduper.should_send("disk full", T0 + timedelta(seconds=599)) is False

    def test_repeat_after_cooldown_is_sent(self) -> None:
        deduper = Deduper(600)
        deduper.should_send("disk full", T0)

        assert deduper.should_send("disk full", T0 + timedelta(seconds=600)) is True

    def test_different_messages_are_independent(self) -> None:
        deduper = Deduper(600)
        deduper.should_send("disk full", T0)

        assert deduper.should_send("cpu hot", T0) is True

    def test_suppressed_repeat_does_not_extend_window(self) -> None:
        deduper = Deduper(600)
        deduper.should_send("disk full", T0)
        deduper.should_send("disk full", T0 + timedelta(seconds=300))

        assert deduper.should_send("disk full", T0 + timedelta(seconds=601)) is True

    def test_expired_entries_are_purged(self) -> None:
        deduper = Deduper(600)
        deduper.should_send("old", T0)
        deduper.should_send("new", T0 + timedelta(seconds=700))

        assert len(deduper) == 1

    def test_purge(self) -> None:
        deduper = Deduper(60)
        deduper.should_send("a", T0)
        deduper.should_send("b", T0)

        assert deduper.purge(T0 + timedelta(seconds=61)) == 2
        assert len(deduper) == 0

    def test_uses_clock(self) -> None:
        now = [T0]
        deduper = Deduper(60, clock=lambda: now[0])
        deduper.should_send("a")

        now[0] = T0 + timedelta(seconds=30)
        assert deduper.should_send("a") is False


def test_content_hash_is_stable() -> None:
    assert content_hash("hello") == content_hash("hello")
    assert content_hash("hello") != content_hash("hello ")
