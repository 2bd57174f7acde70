"""Exceptions raised across the core/adapters boundary."""

from __future__ import annotations

from typing import Optional


class HNChannelError(Exception):
    """Base class for hnchannel errors."""


class FeedError(HNChannelError):
    """The feed or item API could not be reached or returned a bad shape."""


class StorageError(HNChannelError):
    """The record store is unavailable."""


class QueueError(HNChannelError):
    """The task queue rejected an operation."""


class ChatAPIError(HNChannelError):
    """A Telegram call failed."""

    def __init__(self, message: str, description: Optional[str] = None) -> None:
        super().__init__(message)
        self.description = description or message
