"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from core.urls import news_url


@dataclass(frozen=True)
class Story:
    """A Hacker News item as seen by the delivery actuator."""

    id: int
    title: str
    url: Optional[str]
    score: int
    comments: int
    item_type: str = "story"
    dead: bool = False
    deleted: bool = False

    @property
    def link(self) -> str:
        # Text posts (Ask HN, etc.) have no external url.
        return self.url or news_url(self.id)


@dataclass(frozen=True)
class DeliveryRecord:
    """Persisted link between an item and its outbound chat message."""

    item_id: int
    message_id: int = 0
    last_saved: Optional[datetime] = None
    title: str = ""
    url: str = ""
    score: int = 0
    comments: int = 0


class TaskKind(str, Enum):
    SEND = "send"
    EDIT = "edit"
    DELETE = "delete"


@dataclass(frozen=True)
class Task:
    """Typed payload carried by the durable task queue."""

    kind: TaskKind
    item_id: int
    message_id: int = 0


@dataclass(frozen=True)
class ClaimedTask:
    """A task leased from the queue, identified by its queue row id."""

    task_id: int
    task: Task
    attempts: int


@dataclass(frozen=True)
class Delivered:
    """The actuation went through; ``message_id`` is the chat message."""

    message_id: int
    story: Optional[Story] = None


@dataclass(frozen=True)
class Ineligible:
    """The item should not be delivered; nothing must be recorded."""

    reason: str


@dataclass(frozen=True)
class Failed:
    """The actuation failed with a hard error."""

    cause: Exception


DeliveryOutcome = Union[Delivered, Ineligible, Failed]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TickSummary:
    """Counts of tasks dispatched by one poll or cleanup tick."""

    sent: int = 0
    edited: int = 0
    deleted: int = 0
    failed: int = 0
    aborted: bool = False

    @property
    def dispatched(self) -> int:
        return self.sent + self.edited + self.deleted
