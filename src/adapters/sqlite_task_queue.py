"""SQLite task queue adapter.

Implements the core TaskQueuePort as a durable, lease-based queue stored in
the same SQLite database as the delivery records. A task row is only removed
once its handler returns, so a worker that dies mid-task leaves the row to be
claimed again when its lease runs out (at-least-once execution).
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

from core.config import QueueConfig
from core.errors import QueueError
from core.models import ClaimedTask, Task, TaskKind, utc_now

LOGGER = logging.getLogger(__name__)


def _encode(task: Task) -> str:
    return json.dumps({"item_id": task.item_id, "message_id": task.message_id})


def _decode(kind: str, payload: str) -> Task:
    data = json.loads(payload)
    return Task(TaskKind(kind), int(data["item_id"]), int(data.get("message_id") or 0))


class SQLiteTaskQueue:
    """Lease-based task queue that satisfies the TaskQueuePort contract."""

    def __init__(
        self,
        db_path: str,
        config: QueueConfig = QueueConfig(),
        clock: Callable[[], datetime] = utc_now,
        timeout: float = 30.0,
    ) -> None:
        self._db_path = db_path
        self._config = config
        self._clock = clock
        self._timeout = timeout

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        # Autocommit mode plus an explicit BEGIN IMMEDIATE so concurrent
        # claimers serialize on the write lock instead of racing.
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout, isolation_level=None)
        except sqlite3.Error as exc:
            raise QueueError(f"Cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise QueueError(str(exc)) from exc
        finally:
            conn.close()

    def _now(self, delay: timedelta = timedelta()) -> str:
        moment = self._clock() + delay
        return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")

    def init_db(self) -> None:
        """Create the tasks table if it does not exist.

        Fields:
        - id: auto-increment primary key, also the claim order
        - kind: send / edit / delete
        - item_id: story the task acts on
        - payload: JSON task arguments
        - status: pending, leased, or failed (attempts exhausted)
        - attempts: number of times the task has been claimed
        - available_at: when the task may next be claimed
        - last_error: repr of the last handler crash
        """

        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL,
                    item_id INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    attempts INTEGER NOT NULL DEFAULT 0,
                    available_at TIMESTAMP NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    last_error TEXT
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS tasks_due ON tasks (status, available_at)"
            )
            # At most one live task per (kind, item); failed rows are kept aside.
            conn.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS tasks_live_item
                ON tasks (kind, item_id) WHERE status IN ('pending', 'leased')
                """
            )

    async def enqueue(self, task: Task) -> None:
        await asyncio.to_thread(self._enqueue, task)

    async def claim(self, limit: int) -> list[ClaimedTask]:
        return await asyncio.to_thread(self._claim, limit)

    async def ack(self, task_id: int) -> None:
        await asyncio.to_thread(self._ack, task_id)

    async def release(self, task_id: int, error: str) -> None:
        await asyncio.to_thread(self._release, task_id, error)

    def _enqueue(self, task: Task) -> None:
        now = self._now()
        with self._transaction() as conn:
            inserted = conn.execute(
                """
                INSERT INTO tasks (kind, item_id, payload, status, attempts, available_at, created_at)
                VALUES (?, ?, ?, 'pending', 0, ?, ?)
                ON CONFLICT DO NOTHING
                """,
                (task.kind.value, task.item_id, _encode(task), now, now),
            ).rowcount
        if not inserted:
            LOGGER.debug("A %s task for item %s is already queued", task.kind.value, task.item_id)

    def _claim(self, limit: int) -> list[ClaimedTask]:
        now = self._now()
        lease_until = self._now(timedelta(seconds=self._config.lease_seconds))

        with self._transaction() as conn:
            # A lease that ran out with no attempts left belonged to a worker
            # that kept dying on this task.
            abandoned = conn.execute(
                """
                UPDATE tasks
                SET status = 'failed', last_error = COALESCE(last_error, 'lease expired')
                WHERE status = 'leased' AND available_at <= ? AND attempts >= ?
                """,
                (now, self._config.max_attempts),
            ).rowcount
            if abandoned:
                LOGGER.error("%s tasks exhausted their attempts after lease expiry", abandoned)

            rows = conn.execute(
                """
                SELECT id, kind, payload, attempts FROM tasks
                WHERE status IN ('pending', 'leased') AND available_at <= ?
                ORDER BY id
                LIMIT ?
                """,
                (now, limit),
            ).fetchall()

            claimed: list[ClaimedTask] = []
            for row in rows:
                conn.execute(
                    """
                    UPDATE tasks
                    SET status = 'leased', attempts = attempts + 1, available_at = ?
                    WHERE id = ?
                    """,
                    (lease_until, row["id"]),
                )
                try:
                    task = _decode(row["kind"], row["payload"])
                except (ValueError, KeyError, TypeError) as exc:
                    LOGGER.error("Dropping undecodable task %s: %s", row["id"], exc)
                    conn.execute(
                        "UPDATE tasks SET status = 'failed', last_error = ? WHERE id = ?",
                        (repr(exc), row["id"]),
                    )
                    continue
                claimed.append(ClaimedTask(int(row["id"]), task, int(row["attempts"]) + 1))
        return claimed

    def _ack(self, task_id: int) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    def _release(self, task_id: int, error: str) -> None:
        with self._transaction() as conn:
            row = conn.execute("SELECT attempts FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                return
            attempts = int(row["attempts"])
            if attempts >= self._config.max_attempts:
                LOGGER.error("Task %s failed %s times; giving up", task_id, attempts)
                conn.execute(
                    "UPDATE tasks SET status = 'failed', last_error = ? WHERE id = ?",
                    (error, task_id),
                )
                return
            # Linear backoff between redeliveries.
            retry_at = self._now(timedelta(seconds=30 * attempts))
            conn.execute(
                """
                UPDATE tasks SET status = 'pending', available_at = ?, last_error = ?
                WHERE id = ?
                """,
                (retry_at, error, task_id),
            )

    def pending_count(self) -> int:
        """Return the number of tasks that are not yet done or failed."""

        with self._transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM tasks WHERE status IN ('pending', 'leased')"
            ).fetchone()
        return int(row["n"])
