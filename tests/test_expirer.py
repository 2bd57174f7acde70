from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from adapters.sqlite_storage import SQLiteRecordStore
from core.config import DeliveryConfig
from core.errors import StorageError
from core.expirer import Expirer
from core.models import DeliveryRecord, Task, TaskKind

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeQueue:
    def __init__(self) -> None:
        self.tasks: list[Task] = []

    async def enqueue(self, task: Task) -> None:
        self.tasks.append(task)


class BrokenStore:
    def saved_before(self, cutoff: datetime) -> list[DeliveryRecord]:
        raise StorageError("unable to open database file")


def _store(tmp_path) -> SQLiteRecordStore:
    store = SQLiteRecordStore(str(tmp_path / "records.db"))
    store.init_db()
    return store


def test_only_records_older_than_retention_are_deleted(tmp_path) -> None:
    store = _store(tmp_path)
    store.put(DeliveryRecord(item_id=1, message_id=11, last_saved=NOW - timedelta(hours=25)))
    store.put(DeliveryRecord(item_id=2, message_id=22, last_saved=NOW - timedelta(hours=23)))
    queue = FakeQueue()

    summary = asyncio.run(Expirer(store, queue, DeliveryConfig(), clock=lambda: NOW).tick())

    assert queue.tasks == [Task(TaskKind.DELETE, 1, 11)]
    assert summary.deleted == 1


def test_nothing_expired_dispatches_nothing(tmp_path) -> None:
    store = _store(tmp_path)
    store.put(DeliveryRecord(item_id=1, message_id=11, last_saved=NOW))
    queue = FakeQueue()

    summary = asyncio.run(Expirer(store, queue, DeliveryConfig(), clock=lambda: NOW).tick())

    assert queue.tasks == []
    assert summary.dispatched == 0


def test_store_failure_aborts_cleanup() -> None:
    queue = FakeQueue()
    summary = asyncio.run(Expirer(BrokenStore(), queue, DeliveryConfig(), clock=lambda: NOW).tick())
    assert summary.aborted
    assert queue.tasks == []
