"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the feed, storage, queue, and delivery
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol

from core.models import ClaimedTask, DeliveryOutcome, DeliveryRecord, Story, Task


class FeedPort(Protocol):
    """Source of the current top item identifiers."""

    async def top_stories(self, limit: int) -> list[int]:
        ...


class ItemSourcePort(Protocol):
    """Point lookups of item details; ``None`` when the item does not exist."""

    async def item(self, item_id: int) -> Optional[Story]:
        ...


class RecordStorePort(Protocol):
    """Durable map of item id to delivery record."""

    def get(self, item_id: int) -> Optional[DeliveryRecord]:
        ...

    def get_many(self, item_ids: Iterable[int]) -> dict[int, Optional[DeliveryRecord]]:
        ...

    def put(self, record: DeliveryRecord) -> None:
        ...

    def delete(self, item_id: int) -> None:
        ...

    def saved_before(self, cutoff: datetime) -> list[DeliveryRecord]:
        ...


class TaskQueuePort(Protocol):
    """Durable run-later-at-least-once queue of typed tasks."""

    async def enqueue(self, task: Task) -> None:
        ...

    async def claim(self, limit: int) -> list[ClaimedTask]:
        ...

    async def ack(self, task_id: int) -> None:
        ...

    async def release(self, task_id: int, error: str) -> None:
        ...


class ActuatorPort(Protocol):
    """Performs exactly one chat-side action per call."""

    async def send(self, record: DeliveryRecord) -> DeliveryOutcome:
        ...

    async def edit(self, record: DeliveryRecord) -> DeliveryOutcome:
        ...

    async def delete(self, record: DeliveryRecord) -> DeliveryOutcome:
        ...


class NotifierPort(Protocol):
    """Chat operations against the single configured channel."""

    async def send(self, text: str, buttons: list[tuple[str, str]]) -> int:
        ...

    async def edit(self, message_id: int, text: str, buttons: list[tuple[str, str]]) -> None:
        ...

    async def delete(self, message_id: int) -> None:
        ...
