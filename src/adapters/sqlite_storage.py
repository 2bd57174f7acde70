"""SQLite storage adapter.

Implements the core RecordStorePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from core.errors import StorageError
from core.models import DeliveryRecord
from core.urls import record_key

_COLUMNS = "item_id, message_id, last_saved, title, url, score, comments"


def _to_db_time(value: datetime) -> str:
    # Fixed-width UTC strings keep the last_saved range query ordered.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_record(row: sqlite3.Row) -> DeliveryRecord:
    return DeliveryRecord(
        item_id=int(row["item_id"]),
        message_id=int(row["message_id"]),
        last_saved=_from_db_time(row["last_saved"]),
        title=row["title"] or "",
        url=row["url"] or "",
        score=int(row["score"] or 0),
        comments=int(row["comments"] or 0),
    )


class SQLiteRecordStore:
    """Thin SQLite wrapper that satisfies the RecordStorePort contract."""

    def __init__(self, db_path: str, timeout: float = 30.0) -> None:
        self._db_path = db_path
        self._timeout = timeout

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - stories: one delivery record per Hacker News item
        """

        with self._connect() as conn:
            # Fields:
            # - key: "<root>/<item_id>" (PRIMARY KEY)
            # - item_id: Hacker News item id
            # - message_id: Telegram message id of the delivered post
            # - last_saved: UTC timestamp of the last write, drives expiry
            # - title/url/score/comments: story snapshot at last delivery
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS stories (
                    key TEXT PRIMARY KEY,
                    item_id INTEGER NOT NULL,
                    message_id INTEGER NOT NULL DEFAULT 0,
                    last_saved TIMESTAMP NOT NULL,
                    title TEXT,
                    url TEXT,
                    score INTEGER,
                    comments INTEGER
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS stories_last_saved ON stories (last_saved)"
            )

    def get(self, item_id: int) -> Optional[DeliveryRecord]:
        """Return the record for an item, if any."""

        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM stories WHERE key = ?",
                (record_key(item_id),),
            ).fetchone()
        return _row_to_record(row) if row else None

    def get_many(self, item_ids: Iterable[int]) -> dict[int, Optional[DeliveryRecord]]:
        """Batch lookup; every requested id maps to its record or ``None``."""

        ids = [int(item_id) for item_id in item_ids]
        result: dict[int, Optional[DeliveryRecord]] = {item_id: None for item_id in ids}
        if not ids:
            return result

        keys = [record_key(item_id) for item_id in ids]
        placeholders = ", ".join("?" for _ in keys)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM stories WHERE key IN ({placeholders})",
                keys,
            ).fetchall()
        for row in rows:
            record = _row_to_record(row)
            result[record.item_id] = record
        return result

    def put(self, record: DeliveryRecord) -> None:
        """Upsert a record, refreshing last_saved."""

        last_saved = record.last_saved or datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO stories (key, item_id, message_id, last_saved, title, url, score, comments)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    message_id = excluded.message_id,
                    last_saved = excluded.last_saved,
                    title = excluded.title,
                    url = excluded.url,
                    score = excluded.score,
                    comments = excluded.comments
                """,
                (
                    record_key(record.item_id),
                    record.item_id,
                    record.message_id,
                    _to_db_time(last_saved),
                    record.title,
                    record.url,
                    record.score,
                    record.comments,
                ),
            )

    def delete(self, item_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM stories WHERE key = ?", (record_key(item_id),))

    def saved_before(self, cutoff: datetime) -> list[DeliveryRecord]:
        """Return records whose last_saved is at or before the cutoff."""

        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM stories WHERE last_saved <= ? ORDER BY last_saved",
                (_to_db_time(cutoff),),
            ).fetchall()
        return [_row_to_record(row) for row in rows]
