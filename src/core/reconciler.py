"""Poll tick: reconcile the current top stories against delivered records.

Every item in the feed batch gets exactly one task. Known items (a stored
record exists) are edited to pick up score/comment drift, unknown items are
sent. Which branch an item takes depends only on the batched store read.
"""

from __future__ import annotations

import logging

from core.config import DeliveryConfig
from core.dispatch import fan_out
from core.errors import FeedError, StorageError
from core.models import Task, TaskKind, TickSummary
from core.ports import FeedPort, RecordStorePort, TaskQueuePort

LOGGER = logging.getLogger(__name__)


class Reconciler:
    """Diffs the feed against the record store and fans out send/edit tasks."""

    def __init__(
        self,
        feed: FeedPort,
        store: RecordStorePort,
        queue: TaskQueuePort,
        config: DeliveryConfig,
        concurrency: int = 10,
    ) -> None:
        self._feed = feed
        self._store = store
        self._queue = queue
        self._config = config
        self._concurrency = concurrency

    async def tick(self) -> TickSummary:
        """Run one poll tick. Never raises; failures are logged."""

        try:
            item_ids = await self._feed.top_stories(self._config.batch_size)
        except FeedError:
            LOGGER.exception("Poll tick aborted: could not fetch top stories")
            return TickSummary(aborted=True)

        # Feed order is kept, repeats are dropped so each item gets one task.
        item_ids = list(dict.fromkeys(item_ids))[: self._config.batch_size]
        if not item_ids:
            LOGGER.info("Feed returned no stories")
            return TickSummary()

        try:
            saved = self._store.get_many(item_ids)
        except StorageError:
            LOGGER.exception("Poll tick aborted: record store unavailable")
            return TickSummary(aborted=True)

        tasks = []
        for item_id in item_ids:
            record = saved.get(item_id)
            if record is None:
                tasks.append(Task(TaskKind.SEND, item_id))
            else:
                tasks.append(Task(TaskKind.EDIT, item_id, record.message_id))

        edits = sum(1 for task in tasks if task.kind is TaskKind.EDIT)
        if edits == len(tasks):
            LOGGER.info("No unknown stories in batch of %s", len(tasks))
        elif edits == 0:
            LOGGER.info("No stored records for any of %s stories", len(tasks))

        failed = await fan_out(self._queue, tasks, self._concurrency)
        failed_sends = sum(1 for task in failed if task.kind is TaskKind.SEND)
        summary = TickSummary(
            sent=len(tasks) - edits - failed_sends,
            edited=edits - (len(failed) - failed_sends),
            failed=len(failed),
        )
        LOGGER.info(
            "Poll tick dispatched %s send and %s edit tasks (%s failed)",
            summary.sent,
            summary.edited,
            summary.failed,
        )
        return summary
