"""SQLite-backed feed index used in place of OpenSearch."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import List, Sequence

from afterwave.clients.feed_index import FeedDoc, FeedRef


class SQLiteFeedIndex:
    """Persist feed references in a SQLite table with the same search contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS feed_docs (
                doc_id TEXT PRIMARY KEY,
                artist_handle TEXT NOT NULL,
                post_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                body_excerpt TEXT NOT NULL DEFAULT '',
                explicit INTEGER NOT NULL DEFAULT 0
            )
            """
        )

    async def ensure_index(self) -> bool:
        with self._connect() as conn:
            exists = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'feed_docs'"
            ).fetchone()
            self._ensure_schema(conn)
        return exists is None

    async def index_post(self, doc: FeedDoc) -> None:
        if not doc.post_id or not doc.artist_handle:
            raise ValueError("post_id and artist_handle are required")
        with self._connect() as conn:
            self._ensure_schema(conn)
            conn.execute(
                """
                INSERT INTO feed_docs
                    (doc_id, artist_handle, post_id, created_at, body_excerpt, explicit)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(doc_id) DO UPDATE SET
                    created_at = excluded.created_at,
                    body_excerpt = excluded.body_excerpt,
                    explicit = excluded.explicit
                """,
                (
                    doc.doc_id,
                    doc.artist_handle,
                    doc.post_id,
                    doc.created_at,
                    doc.body_excerpt,
                    int(doc.explicit),
                ),
            )

    async def delete_post(self, artist_handle: str, post_id: str) -> None:
        with self._connect() as conn:
            self._ensure_schema(conn)
            conn.execute(
                "DELETE FROM feed_docs WHERE artist_handle = ? AND post_id = ?",
                (artist_handle, post_id),
            )

    async def search(
        self, handles: Sequence[str], *, size: int, offset: int = 0
    ) -> List[FeedRef]:
        if not handles:
            return []
        placeholders = ", ".join("?" for _ in handles)
        with self._connect() as conn:
            self._ensure_schema(conn)
            rows = conn.execute(
                f"""
                SELECT post_id, artist_handle, created_at, explicit
                FROM feed_docs
                WHERE artist_handle IN ({placeholders})
                ORDER BY created_at DESC, doc_id DESC
                LIMIT ? OFFSET ?
                """,
                (*handles, size, max(offset, 0)),
            ).fetchall()
        return [
            FeedRef(
                post_id=row["post_id"],
                artist_handle=row["artist_handle"],
                created_at=row["created_at"],
                explicit=bool(row["explicit"]),
            )
            for row in rows
        ]


__all__ = ["SQLiteFeedIndex"]
