from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from adapters.sqlite_storage import SQLiteRecordStore
from core.errors import StorageError
from core.models import DeliveryRecord

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _store(tmp_path) -> SQLiteRecordStore:
    store = SQLiteRecordStore(str(tmp_path / "records.db"))
    store.init_db()
    return store


def test_put_then_get_roundtrip_keeps_payload(tmp_path) -> None:
    store = _store(tmp_path)
    record = DeliveryRecord(
        item_id=42,
        message_id=4200,
        last_saved=NOW,
        title="Show HN: A thing",
        url="https://example.com",
        score=99,
        comments=12,
    )
    store.put(record)
    assert store.get(42) == record
    assert store.get(43) is None


def test_put_is_an_upsert_per_item(tmp_path) -> None:
    store = _store(tmp_path)
    store.put(DeliveryRecord(item_id=1, message_id=10, last_saved=NOW - timedelta(hours=2)))
    store.put(DeliveryRecord(item_id=1, message_id=10, last_saved=NOW, score=300))

    assert store.saved_before(NOW + timedelta(days=1)) == [
        DeliveryRecord(item_id=1, message_id=10, last_saved=NOW, score=300)
    ]


def test_get_many_reports_missing_keys_without_failing(tmp_path) -> None:
    store = _store(tmp_path)
    for item_id in (1, 3):
        store.put(DeliveryRecord(item_id=item_id, message_id=item_id * 10, last_saved=NOW))

    result = store.get_many([1, 2, 3, 4])

    assert list(result) == [1, 2, 3, 4]
    assert result[1].message_id == 10
    assert result[2] is None
    assert result[3].message_id == 30
    assert result[4] is None
    assert store.get_many([]) == {}


def test_saved_before_filters_on_last_saved(tmp_path) -> None:
    store = _store(tmp_path)
    store.put(DeliveryRecord(item_id=1, message_id=1, last_saved=NOW - timedelta(hours=25)))
    store.put(DeliveryRecord(item_id=2, message_id=2, last_saved=NOW - timedelta(hours=23)))
    # Naive timestamps are read as UTC.
    store.put(DeliveryRecord(item_id=3, message_id=3, last_saved=datetime(2024, 4, 1)))

    cutoff = NOW - timedelta(hours=24)
    assert [record.item_id for record in store.saved_before(cutoff)] == [3, 1]


def test_delete_removes_only_that_item(tmp_path) -> None:
    store = _store(tmp_path)
    store.put(DeliveryRecord(item_id=1, message_id=1, last_saved=NOW))
    store.put(DeliveryRecord(item_id=2, message_id=2, last_saved=NOW))

    store.delete(1)
    store.delete(99)

    assert store.get(1) is None
    assert store.get(2) is not None


def test_unreachable_database_raises_storage_error(tmp_path) -> None:
    store = SQLiteRecordStore(str(tmp_path / "missing-dir" / "records.db"))
    with pytest.raises(StorageError):
        store.get_many([1, 2])
