"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so the channel is managed by a bot account.
"""

from __future__ import annotations

import asyncio
import json
import socket
import urllib.error
import urllib.request
from typing import Any

from core.config import CALL_TIMEOUT
from core.errors import ChatAPIError
from core.urls import telegram_api

# Editing with identical content is a no-op on Telegram's side.
NOT_MODIFIED = "message is not modified"
# Deleting a message that is already gone leaves the channel as wanted.
DELETE_NOT_FOUND = "message to delete not found"


def _inline_keyboard(buttons: list[tuple[str, str]]) -> dict:
    return {"inline_keyboard": [[{"text": label, "url": url} for label, url in buttons]]}


class TelegramBotNotifier:
    """Notifier adapter that manages channel posts via the Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = CALL_TIMEOUT.total_seconds(),
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout

    def _call(self, method: str, payload: dict) -> Any:
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(telegram_api(self._bot_token, method), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raw = e.read().decode("utf-8", errors="replace")
            try:
                description = json.loads(raw).get("description", raw)
            except (json.JSONDecodeError, AttributeError):
                description = raw
            raise ChatAPIError(f"Bot API error {e.code} on {method}: {description}", description) from e
        except (urllib.error.URLError, socket.timeout, OSError) as e:
            raise ChatAPIError(f"Bot API {method} failed: {e}") from e
        except json.JSONDecodeError as e:
            raise ChatAPIError(f"Bot API {method} returned malformed JSON") from e

        if not body.get("ok"):
            description = body.get("description", "unknown error")
            raise ChatAPIError(f"Bot API {method} not ok: {description}", description)
        return body.get("result")

    async def send(self, text: str, buttons: list[tuple[str, str]]) -> int:
        """Post a new message and return its message id."""

        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "HTML",
            "reply_markup": _inline_keyboard(buttons),
        }
        result = await asyncio.to_thread(self._call, "sendMessage", payload)
        try:
            return int(result["message_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ChatAPIError("sendMessage result has no message_id") from e

    async def edit(self, message_id: int, text: str, buttons: list[tuple[str, str]]) -> None:
        """Replace the text and buttons of an existing message."""

        payload = {
            "chat_id": self._chat_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": "HTML",
            "reply_markup": _inline_keyboard(buttons),
        }
        try:
            await asyncio.to_thread(self._call, "editMessageText", payload)
        except ChatAPIError as e:
            if NOT_MODIFIED not in e.description.lower():
                raise

    async def delete(self, message_id: int) -> None:
        payload = {"chat_id": self._chat_id, "message_id": message_id}
        try:
            await asyncio.to_thread(self._call, "deleteMessage", payload)
        except ChatAPIError as e:
            if DELETE_NOT_FOUND not in e.description.lower():
                raise
