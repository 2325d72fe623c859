"""SQLite-backed substitute for the DynamoDB single-table store.

Used for local development and the test-suite. Conditions are evaluated in
Python inside an ``IMMEDIATE`` transaction, which gives the same
all-or-nothing and check-then-write guarantees the DynamoDB back-end has.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from afterwave.clients.kv import (
    Condition,
    DeleteOp,
    Item,
    Key,
    PutOp,
    UpdateOp,
    WriteOp,
)
from afterwave.core.errors import PreconditionFailed, UnavailableError

logger = logging.getLogger(__name__)


class SQLiteStore:
    """Key-value store using a normalized table keyed by (pk, sk)."""

    def __init__(self, db_path: str, *, timeout_seconds: float = 5.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = timeout_seconds
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path,
            timeout=self._timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("SQLite connect failed: %s", exc)
            raise UnavailableError() from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error("SQLite transaction failed: %s", exc)
            raise UnavailableError() from exc
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @staticmethod
    def _read(conn: sqlite3.Connection, pk: str, sk: str) -> Optional[Item]:
        row = conn.execute(
            "SELECT data FROM kv_records WHERE pk = ? AND sk = ?", (pk, sk)
        ).fetchone()
        return json.loads(row["data"]) if row else None

    @staticmethod
    def _write(conn: sqlite3.Connection, item: Item) -> None:
        pk = item.get("pk")
        sk = item.get("sk")
        if not pk or not sk:
            raise ValueError("Item must include 'pk' and 'sk' keys")
        data = {k: v for k, v in item.items() if v is not None}
        conn.execute(
            """
            INSERT INTO kv_records (pk, sk, data)
            VALUES (?, ?, ?)
            ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
            """,
            (pk, sk, json.dumps(data)),
        )

    @staticmethod
    def _check(condition: Optional[Condition], existing: Optional[Item]) -> None:
        if condition is not None and not condition.holds(existing):
            raise PreconditionFailed(condition.kind)

    def _apply(self, conn: sqlite3.Connection, op: WriteOp) -> Optional[Item]:
        existing = self._read(conn, *op.key)
        self._check(op.condition, existing)
        if isinstance(op, PutOp):
            self._write(conn, op.item)
            return op.item
        if isinstance(op, DeleteOp):
            conn.execute(
                "DELETE FROM kv_records WHERE pk = ? AND sk = ?", (op.pk, op.sk)
            )
            return None
        if isinstance(op, UpdateOp):
            if existing is None and not op.create:
                raise PreconditionFailed("item_exists")
            updated: Item = dict(existing or {"pk": op.pk, "sk": op.sk})
            updated.update(op.set_fields)
            for attribute, delta in op.increments.items():
                updated[attribute] = int(updated.get(attribute) or 0) + delta
            for attribute in op.remove_fields:
                updated.pop(attribute, None)
            self._write(conn, updated)
            return updated
        raise TypeError(f"Unsupported write operation: {op!r}")

    def get_item(self, pk: str, sk: str) -> Optional[Item]:
        with self._transaction() as conn:
            return self._read(conn, pk, sk)

    def put_item(self, item: Item, condition: Optional[Condition] = None) -> None:
        with self._transaction() as conn:
            self._apply(conn, PutOp(item, condition))

    def update_item(self, op: UpdateOp) -> Item:
        with self._transaction() as conn:
            return self._apply(conn, op) or {}

    def delete_item(
        self, pk: str, sk: str, condition: Optional[Condition] = None
    ) -> None:
        with self._transaction() as conn:
            self._apply(conn, DeleteOp(pk, sk, condition))

    def query(
        self,
        pk: str,
        *,
        sk_prefix: str = "",
        descending: bool = False,
        limit: Optional[int] = None,
        exclusive_start: Optional[Key] = None,
    ) -> Tuple[List[Item], Optional[Key]]:
        sql = "SELECT data FROM kv_records WHERE pk = ? AND substr(sk, 1, ?) = ?"
        params: List[Any] = [pk, len(sk_prefix), sk_prefix]
        if exclusive_start is not None:
            sql += " AND sk < ?" if descending else " AND sk > ?"
            params.append(exclusive_start[1])
        sql += " ORDER BY sk DESC" if descending else " ORDER BY sk ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit + 1)
        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        items = [json.loads(row["data"]) for row in rows]
        if limit is not None and len(items) > limit:
            items = items[:limit]
            last = items[-1]
            return items, (last["pk"], last["sk"])
        return items, None

    def batch_get(self, keys: Sequence[Key]) -> List[Item]:
        found: List[Item] = []
        with self._transaction() as conn:
            for pk, sk in dict.fromkeys(keys):
                item = self._read(conn, pk, sk)
                if item is not None:
                    found.append(item)
        return found

    def transact_write(self, ops: Sequence[WriteOp]) -> None:
        if not ops:
            return
        with self._transaction() as conn:
            for op in ops:
                self._apply(conn, op)


__all__ = ["SQLiteStore"]
