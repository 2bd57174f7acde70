"""Cleanup tick: schedule deletes for records past the retention window."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from core.config import DeliveryConfig
from core.dispatch import fan_out
from core.errors import StorageError
from core.models import Task, TaskKind, TickSummary, utc_now
from core.ports import RecordStorePort, TaskQueuePort

LOGGER = logging.getLogger(__name__)


class Expirer:
    """Fans out one delete task per expired delivery record."""

    def __init__(
        self,
        store: RecordStorePort,
        queue: TaskQueuePort,
        config: DeliveryConfig,
        clock: Callable[[], datetime] = utc_now,
        concurrency: int = 10,
    ) -> None:
        self._store = store
        self._queue = queue
        self._config = config
        self._clock = clock
        self._concurrency = concurrency

    async def tick(self) -> TickSummary:
        """Run one cleanup tick. Never raises; failures are logged."""

        cutoff = self._clock() - self._config.retention
        try:
            expired = self._store.saved_before(cutoff)
        except StorageError:
            LOGGER.exception("Cleanup tick aborted: record store unavailable")
            return TickSummary(aborted=True)

        if not expired:
            LOGGER.debug("Nothing saved before %s", cutoff.isoformat())
            return TickSummary()

        tasks = [Task(TaskKind.DELETE, record.item_id, record.message_id) for record in expired]
        failed = await fan_out(self._queue, tasks, self._concurrency)
        summary = TickSummary(deleted=len(tasks) - len(failed), failed=len(failed))
        LOGGER.info("Cleanup tick dispatched %s delete tasks (%s failed)", summary.deleted, summary.failed)
        return summary
