"""Push-based entity store backed by SQLite documents.

Each collection holds flat JSON documents. Listeners registered with
:meth:`EntityStore.subscribe` receive the full current collection right
away and again after every change to it.
"""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable

from .database import get_connection, get_metadata, initialize_database
from .errors import RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)

STUDENTS = "students"
ATTENDANCE = "attendance"
BOOKINGS = "bookings"
INVOICES = "invoices"
COLLECTIONS = (STUDENTS, ATTENDANCE, BOOKINGS, INVOICES)

SnapshotCallback = Callable[[list[dict]], None]
ErrorCallback = Callable[[Exception], None]


class _Subscription:
    def __init__(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None) -> None:
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True


class EntityStore:
    """System of record for students, attendance, bookings and invoices."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.conn = get_connection(db_path)
        initialize_database(self.conn)
        self._subscriptions: dict[str, list[_Subscription]] = defaultdict(list)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _check_collection(self, collection: str) -> None:
        if collection not in COLLECTIONS:
            raise ValidationError(f"Unknown collection: {collection}")

    def _new_id(self) -> str:
        return secrets.token_hex(10)

    def _deliver(self, collection: str, subscription: _Subscription) -> None:
        try:
            records = self.snapshot(collection)
        except sqlite3.Error as exc:
            logger.error("Snapshot of %s failed", collection, exc_info=exc)
            subscription.active = False
            self._subscriptions[collection] = [
                sub for sub in self._subscriptions[collection] if sub is not subscription
            ]
            if subscription.on_error is None:
                raise
            subscription.on_error(exc)
            return
        subscription.on_snapshot(records)

    def _publish(self, collection: str) -> None:
        for subscription in list(self._subscriptions[collection]):
            if subscription.active:
                self._deliver(collection, subscription)

    def schema_version(self) -> int:
        return int(get_metadata(self.conn, "schema_version", "0"))

    # ------------------------------------------------------------------
    # Reads & subscriptions
    # ------------------------------------------------------------------
    def snapshot(self, collection: str) -> list[dict]:
        """Return every document of a collection in insertion order."""

        self._check_collection(collection)
        rows = self.conn.execute(
            "SELECT id, body FROM documents WHERE collection = ? ORDER BY seq",
            (collection,),
        ).fetchall()
        return [{"id": row["id"], **json.loads(row["body"])} for row in rows]

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Callable[[], None]:
        """Register a listener and return the handle that removes it."""

        self._check_collection(collection)
        subscription = _Subscription(on_snapshot, on_error)
        self._subscriptions[collection].append(subscription)

        def unsubscribe() -> None:
            subscription.active = False
            if subscription in self._subscriptions[collection]:
                self._subscriptions[collection].remove(subscription)

        self._deliver(collection, subscription)
        return unsubscribe

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, collection: str, record: dict[str, Any]) -> str:
        self._check_collection(collection)
        record_id = self._new_id()
        body = {key: value for key, value in record.items() if key != "id"}
        self.conn.execute(
            "INSERT INTO documents(id, collection, body) VALUES (?, ?, ?)",
            (record_id, collection, json.dumps(body)),
        )
        self.conn.commit()
        logger.info("Created %s record %s", collection, record_id)
        self._publish(collection)
        return record_id

    def update(self, collection: str, record_id: str, changes: dict[str, Any]) -> None:
        self._check_collection(collection)
        row = self.conn.execute(
            "SELECT body FROM documents WHERE id = ? AND collection = ?",
            (record_id, collection),
        ).fetchone()
        if not row:
            raise RecordNotFoundError(collection, record_id)
        body = json.loads(row["body"])
        body.update({key: value for key, value in changes.items() if key != "id"})
        self.conn.execute(
            "UPDATE documents SET body = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (json.dumps(body), record_id),
        )
        self.conn.commit()
        logger.info("Updated %s record %s", collection, record_id)
        self._publish(collection)

    def delete(self, collection: str, record_id: str) -> None:
        self._check_collection(collection)
        self.conn.execute(
            "DELETE FROM documents WHERE id = ? AND collection = ?",
            (record_id, collection),
        )
        self.conn.commit()
        logger.info("Deleted %s record %s", collection, record_id)
        self._publish(collection)

    def close(self) -> None:
        for collection in list(self._subscriptions):
            for subscription in self._subscriptions[collection]:
                subscription.active = False
        self._subscriptions.clear()
        self.conn.close()
