from __future__ import annotations

import asyncio
import io
import json
import urllib.error

import pytest

from adapters import telegram_bot_notifier
from adapters.telegram_bot_notifier import TelegramBotNotifier
from core.errors import ChatAPIError


class FakeResponse:
    def __init__(self, payload: dict) -> None:
        self._body = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        return None


def _http_error(code: int, description: str) -> urllib.error.HTTPError:
    body = json.dumps({"ok": False, "error_code": code, "description": description}).encode("utf-8")
    return urllib.error.HTTPError("https://api.telegram.org", code, "Bad Request", {}, io.BytesIO(body))


def _install(monkeypatch, responder) -> list:
    calls = []

    def fake_urlopen(request, timeout=None):
        payload = json.loads(request.data.decode("utf-8"))
        calls.append((request.full_url, payload, timeout))
        return responder(request.full_url, payload)

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    return calls


def test_send_posts_html_with_buttons(monkeypatch) -> None:
    calls = _install(monkeypatch, lambda url, payload: FakeResponse({"ok": True, "result": {"message_id": 321}}))
    notifier = TelegramBotNotifier("123:abc", "@yahnc", timeout=5)

    message_id = asyncio.run(notifier.send("<b>t</b> https://x", [("Score: 1+", "https://x")]))

    assert message_id == 321
    url, payload, timeout = calls[0]
    assert url == "https://api.telegram.org/bot123:abc/sendMessage"
    assert payload["chat_id"] == "@yahnc"
    assert payload["parse_mode"] == "HTML"
    assert payload["reply_markup"] == {"inline_keyboard": [[{"text": "Score: 1+", "url": "https://x"}]]}
    assert timeout == 5


def test_edit_with_identical_content_is_not_an_error(monkeypatch) -> None:
    def responder(url, payload):
        raise _http_error(400, "Bad Request: message is not modified: specified new message content is the same")

    _install(monkeypatch, responder)
    asyncio.run(TelegramBotNotifier("t", "@c").edit(9, "same", []))


def test_delete_of_missing_message_is_not_an_error(monkeypatch) -> None:
    def responder(url, payload):
        raise _http_error(400, "Bad Request: message to delete not found")

    _install(monkeypatch, responder)
    asyncio.run(TelegramBotNotifier("t", "@c").delete(9))


def test_other_api_errors_raise_chat_api_error(monkeypatch) -> None:
    def responder(url, payload):
        raise _http_error(403, "Forbidden: bot is not a member of the channel chat")

    _install(monkeypatch, responder)
    with pytest.raises(ChatAPIError) as excinfo:
        asyncio.run(TelegramBotNotifier("t", "@c").edit(9, "text", []))
    assert "not a member" in excinfo.value.description


def test_network_errors_raise_chat_api_error(monkeypatch) -> None:
    def responder(url, payload):
        raise urllib.error.URLError("timed out")

    _install(monkeypatch, responder)
    with pytest.raises(ChatAPIError):
        asyncio.run(TelegramBotNotifier("t", "@c").send("text", []))
