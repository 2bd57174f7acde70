"""Telegram notification adapter backed by a Telethon client.

The client is logged in as the channel's bot (see ``client.build_client``),
which lets the MTProto API post, edit, and delete channel messages.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from telethon import Button, errors

from core.config import CALL_TIMEOUT
from core.errors import ChatAPIError

T = TypeVar("T")


class TelegramClientNotifier:
    """Notifier adapter that manages channel posts through Telethon."""

    def __init__(self, client, chat_id: str, timeout: float = CALL_TIMEOUT.total_seconds()) -> None:
        self._client = client
        self._chat_id = chat_id
        self._timeout = timeout

    async def _bounded(self, action: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ChatAPIError(f"{action} timed out after {self._timeout}s") from e

    @staticmethod
    def _buttons(buttons: list[tuple[str, str]]):
        return [[Button.url(label, url) for label, url in buttons]]

    async def send(self, text: str, buttons: list[tuple[str, str]]) -> int:
        """Post a new message and return its message id."""

        try:
            message = await self._bounded(
                "send_message",
                self._client.send_message(
                    self._chat_id,
                    text,
                    parse_mode="html",
                    buttons=self._buttons(buttons),
                ),
            )
        except errors.RPCError as e:
            raise ChatAPIError(f"send_message failed: {e}", str(e)) from e
        return int(message.id)

    async def edit(self, message_id: int, text: str, buttons: list[tuple[str, str]]) -> None:
        try:
            await self._bounded(
                "edit_message",
                self._client.edit_message(
                    self._chat_id,
                    message_id,
                    text,
                    parse_mode="html",
                    buttons=self._buttons(buttons),
                ),
            )
        except errors.MessageNotModifiedError:
            return
        except errors.RPCError as e:
            raise ChatAPIError(f"edit_message {message_id} failed: {e}", str(e)) from e

    async def delete(self, message_id: int) -> None:
        # Telegram reports nothing for ids that are already gone.
        try:
            await self._bounded(
                "delete_messages",
                self._client.delete_messages(self._chat_id, [message_id]),
            )
        except errors.RPCError as e:
            raise ChatAPIError(f"delete_messages {message_id} failed: {e}", str(e)) from e
