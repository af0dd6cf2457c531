"""Append-only catalog store backed by SQLite, with in-process push delivery.

Design:
- Append-only: ``create_record`` is the only write; no update, no delete.
- One row per record, inserted in one transaction, so readers see a record
  either fully present or absent.
- The store assigns ``id`` and ``uploadTime``.
- WAL journal mode for concurrent readers.
- Every subscriber of a collection receives the full current record set
  after each write. Snapshot queries run off the event loop and are
  delivered in scheduling order, never synchronously inside the writer's
  call.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from shellrepo.core.errors import CatalogStoreError
from shellrepo.ports import ErrorCallback, SnapshotCallback, Unsubscribe

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_RECORDS = """
CREATE TABLE IF NOT EXISTS catalog_records (
    seq               INTEGER PRIMARY KEY AUTOINCREMENT,
    record_id         TEXT NOT NULL UNIQUE,
    collection_path   TEXT NOT NULL,
    fields_json       TEXT NOT NULL,
    upload_time       TEXT NOT NULL
);
"""

_CREATE_IDX_COLLECTION = """
CREATE INDEX IF NOT EXISTS idx_collection ON catalog_records(collection_path, seq);
"""


class _Subscription:
    def __init__(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> None:
        self.collection_path = collection_path
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True


class SqliteCatalogStore:
    """Append-only record store with push subscriptions.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._subscriptions: list[_Subscription] = []
        self._push_lock = asyncio.Lock()
        self._pushes: set[asyncio.Task] = set()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_RECORDS)
            conn.execute(_CREATE_IDX_COLLECTION)
            conn.commit()

    # ------------------------------------------------------------------
    # Write (append-only)
    # ------------------------------------------------------------------

    async def create_record(self, collection_path: str, fields: dict[str, Any]) -> str:
        """Insert one record and return its store-assigned id."""
        record_id = uuid.uuid4().hex[:20]
        upload_time = datetime.now(timezone.utc).isoformat()
        try:
            await asyncio.to_thread(
                self._insert, record_id, collection_path, fields, upload_time
            )
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise CatalogStoreError(f"could not write record: {exc}") from exc

        logger.debug("Created record %s in %s.", record_id, collection_path)
        self._schedule_push(collection_path)
        return record_id

    def _insert(
        self,
        record_id: str,
        collection_path: str,
        fields: dict[str, Any],
        upload_time: str,
    ) -> None:
        payload = {k: v for k, v in fields.items() if k not in ("id", "uploadTime")}
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO catalog_records
                    (record_id, collection_path, fields_json, upload_time)
                VALUES (?, ?, ?, ?)
                """,
                (record_id, collection_path, json.dumps(payload, sort_keys=True), upload_time),
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_records(self, collection_path: str) -> list[dict[str, Any]]:
        """Return every record in a collection, in insertion order."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT record_id, fields_json, upload_time FROM catalog_records "
                "WHERE collection_path = ? ORDER BY seq ASC",
                (collection_path,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: tuple[str, str, str]) -> dict[str, Any]:
        record_id, fields_json, upload_time = row
        record = json.loads(fields_json)
        record["id"] = record_id
        record["uploadTime"] = upload_time
        return record

    # ------------------------------------------------------------------
    # Push subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Deliver the full record set now and after every write.

        Must be called from a running event loop.
        """
        subscription = _Subscription(collection_path, on_snapshot, on_error)
        self._subscriptions.append(subscription)
        self._start_push(subscription)

        def _unsubscribe() -> None:
            subscription.active = False
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return _unsubscribe

    def _schedule_push(self, collection_path: str) -> None:
        for subscription in list(self._subscriptions):
            if subscription.collection_path == collection_path:
                self._start_push(subscription)

    def _start_push(self, subscription: _Subscription) -> None:
        task = asyncio.get_running_loop().create_task(self._push(subscription))
        self._pushes.add(task)
        task.add_done_callback(self._pushes.discard)

    async def _push(self, subscription: _Subscription) -> None:
        # The lock is FIFO, so snapshots arrive in the order they were scheduled.
        async with self._push_lock:
            if not subscription.active:
                return
            try:
                records = await asyncio.to_thread(
                    self.list_records, subscription.collection_path
                )
            except (sqlite3.Error, json.JSONDecodeError) as exc:
                self._fail(subscription, exc)
                return
            if subscription.active:
                subscription.on_snapshot(records)

    def _fail(self, subscription: _Subscription, exc: Exception) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        subscription.on_error(CatalogStoreError(f"snapshot query failed: {exc}"))
