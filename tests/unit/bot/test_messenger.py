"""Unit tests for the messenger boundary and the Notifier facade."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from modules.bot.exceptions import MessengerError
from modules.bot.messenger import InMemoryMessenger, Notifier

pytestmark = pytest.mark.unit


@pytest.fixture()
def messenger():
    return InMemoryMessenger()


@pytest.fixture()
def notifier(messenger):
    return Notifier(messenger)


class TestInMemoryMessenger:
    def test_records_calls_and_returns_ids(self, messenger):
        first = messenger.send_text("1", "hello", [[("OK", "ok")]])
        second = messenger.send_photo("1", "file-9", caption="proof")
        assert second == first + 1
        assert [c.method for c in messenger.sent_to("1")] == ["send_text", "send_photo"]
        assert messenger.calls[0].button_data == ["ok"]

    def test_blocked_actor_raises(self, messenger):
        messenger.blocked.add("1")
        with pytest.raises(MessengerError):
            messenger.send_text("1", "hello")
        assert messenger.calls == []

    def test_resolve_download_url(self, messenger):
        assert messenger.resolve_download_url("abc") == "memory://files/abc"

    def test_texts_and_last(self, messenger):
        messenger.send_text("1", "a")
        messenger.send_document("1", b"xx", "r.xlsx", "application/x", caption="b")
        messenger.delete_message("1", 1)
        assert messenger.texts_for("1") == ["a", "b"]
        assert messenger.last_for("1").method == "send_document"


class TestNotifier:
    def test_notify_delivers(self, notifier, messenger):
        assert notifier.notify("1", "hi") is True
        assert messenger.texts_for("1") == ["hi"]

    def test_notify_swallows_platform_errors(self, notifier, messenger):
        messenger.blocked.add("1")
        assert notifier.notify("1", "hi") is False
        assert notifier.notify_photo("1", "f") is False
        assert notifier.send("1", "hi") is None
        assert notifier.send_document("1", b"", "x", "y") is False
        assert notifier.edit("1", 5, "hi") is False
        notifier.delete("1", 5)

    def test_swallows_unexpected_errors(self):
        broken = MagicMock()
        broken.send_text.side_effect = ConnectionError("network down")
        broken.acknowledge_button_press.side_effect = TimeoutError()
        broken.resolve_download_url.side_effect = RuntimeError()
        notifier = Notifier(broken)

        assert notifier.notify("1", "hi") is False
        notifier.acknowledge("cb-1")
        assert notifier.download_url("f") is None

    def test_send_returns_message_id(self, notifier):
        assert isinstance(notifier.send("1", "hi"), int)
