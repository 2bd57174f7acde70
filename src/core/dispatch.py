"""Task fan-out and the queue worker.

Ticks only ever wait for ``enqueue`` acknowledgements; the heavier delivery
work runs later inside :class:`TaskWorker`, outside the tick's lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Mapping, Optional

from core.errors import QueueError
from core.models import ClaimedTask, Task, TaskKind
from core.ports import TaskQueuePort

LOGGER = logging.getLogger(__name__)

TaskHandler = Callable[[Task], Awaitable[None]]


async def fan_out(queue: TaskQueuePort, tasks: Iterable[Task], concurrency: int = 10) -> list[Task]:
    """Enqueue every task concurrently and join before returning.

    Returns the tasks whose enqueue failed. A failing enqueue never prevents
    the others from being issued.
    """

    semaphore = asyncio.Semaphore(max(1, concurrency))
    tasks = list(tasks)

    async def _enqueue(task: Task) -> bool:
        async with semaphore:
            try:
                await queue.enqueue(task)
            except Exception:
                LOGGER.exception("Failed to enqueue %s for item %s", task.kind.value, task.item_id)
                return False
            return True

    results = await asyncio.gather(*(_enqueue(task) for task in tasks))
    return [task for task, ok in zip(tasks, results) if not ok]


class TaskWorker:
    """Runs claimed tasks through one registered handler per task kind."""

    def __init__(
        self,
        queue: TaskQueuePort,
        handlers: Mapping[TaskKind, TaskHandler],
        batch_size: int = 10,
    ) -> None:
        self._queue = queue
        self._handlers = dict(handlers)
        self._batch_size = batch_size

    async def run_once(self) -> int:
        """Claim one batch of due tasks and run them. Returns the batch size."""

        claimed = await self._queue.claim(self._batch_size)
        if not claimed:
            return 0
        await asyncio.gather(*(self._run(entry) for entry in claimed))
        return len(claimed)

    async def drain(self, max_batches: int = 100) -> int:
        """Run batches until nothing is due. Returns the number of tasks run."""

        total = 0
        for _ in range(max_batches):
            count = await self.run_once()
            if not count:
                break
            total += count
        return total

    async def _run(self, entry: ClaimedTask) -> None:
        task = entry.task
        handler = self._handlers.get(task.kind)
        if handler is None:
            LOGGER.error("No handler registered for task kind %s; dropping", task.kind)
            await self._settle(entry, None)
            return

        try:
            await handler(task)
        except Exception as exc:
            LOGGER.exception(
                "Task %s (%s, item %s) crashed on attempt %s",
                entry.task_id,
                task.kind.value,
                task.item_id,
                entry.attempts,
            )
            await self._settle(entry, repr(exc))
            return
        await self._settle(entry, None)

    async def _settle(self, entry: ClaimedTask, error: Optional[str]) -> None:
        try:
            if error is None:
                await self._queue.ack(entry.task_id)
            else:
                await self._queue.release(entry.task_id, error)
        except QueueError:
            # The lease runs out and the task is claimed again.
            LOGGER.exception("Could not settle task %s; it will be redelivered", entry.task_id)
