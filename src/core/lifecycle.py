"""Delivery record lifecycle task bodies.

Each handler performs a single actuation and then closes the loop on the
stored record:

- send:   absent -> delivered (record written on success)
- edit:   delivered -> delivered (record rewritten, last_saved refreshed)
- delete: delivered -> absent (record removed on success)

An ``Ineligible`` outcome leaves the store untouched, and so does a
``Failed`` one; the next poll or cleanup tick is the retry path. Handlers
never raise so the queue worker does not redeliver (and re-actuate) them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from core.errors import StorageError
from core.models import (
    Delivered,
    DeliveryOutcome,
    DeliveryRecord,
    Failed,
    Ineligible,
    TaskKind,
    utc_now,
)
from core.ports import ActuatorPort, RecordStorePort

LOGGER = logging.getLogger(__name__)


class DeliveryLifecycle:
    """Send, edit, and delete handlers bound to one store and actuator."""

    def __init__(
        self,
        store: RecordStorePort,
        actuator: ActuatorPort,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._actuator = actuator
        self._clock = clock

    def handlers(self) -> dict:
        """Return the task handler registry for :class:`core.dispatch.TaskWorker`."""

        return {
            TaskKind.SEND: lambda task: self.send(task.item_id),
            TaskKind.EDIT: lambda task: self.edit(task.item_id, task.message_id),
            TaskKind.DELETE: lambda task: self.delete(task.item_id, task.message_id),
        }

    async def send(self, item_id: int) -> None:
        LOGGER.info("Sending message: id %s", item_id)
        record = DeliveryRecord(item_id=item_id)
        outcome = await self._actuate("send", self._actuator.send, record)
        if isinstance(outcome, Delivered):
            self._save(record, outcome)

    async def edit(self, item_id: int, message_id: int) -> None:
        LOGGER.info("Editing message: id %s, message id %s", item_id, message_id)
        record = DeliveryRecord(item_id=item_id, message_id=message_id)
        outcome = await self._actuate("edit", self._actuator.edit, record)
        if isinstance(outcome, Delivered):
            self._save(record, outcome)

    async def delete(self, item_id: int, message_id: int) -> None:
        LOGGER.info("Deleting message: id %s, message id %s", item_id, message_id)
        record = DeliveryRecord(item_id=item_id, message_id=message_id)
        outcome = await self._actuate("delete", self._actuator.delete, record)
        if not isinstance(outcome, Delivered):
            # The record stays, so the next cleanup tick schedules the delete again.
            return
        try:
            self._store.delete(item_id)
        except StorageError:
            LOGGER.exception("Message %s deleted but record %s could not be removed", message_id, item_id)

    async def _actuate(self, action: str, call, record: DeliveryRecord) -> DeliveryOutcome:
        try:
            outcome = await call(record)
        except Exception as exc:
            LOGGER.exception("Unexpected error during %s of item %s", action, record.item_id)
            return Failed(exc)

        if isinstance(outcome, Ineligible):
            LOGGER.debug("Skipping %s of item %s: %s", action, record.item_id, outcome.reason)
        elif isinstance(outcome, Failed):
            LOGGER.error("Failed to %s item %s: %s", action, record.item_id, outcome.cause)
        return outcome

    def _save(self, record: DeliveryRecord, outcome: Delivered) -> None:
        story = outcome.story
        saved = DeliveryRecord(
            item_id=record.item_id,
            message_id=outcome.message_id,
            last_saved=self._clock(),
            title=story.title if story else record.title,
            url=story.link if story else record.url,
            score=story.score if story else record.score,
            comments=story.comments if story else record.comments,
        )
        try:
            self._store.put(saved)
        except StorageError:
            LOGGER.exception(
                "Message %s delivered but record %s could not be saved",
                outcome.message_id,
                record.item_id,
            )
