"""
SQLite Document Store Adapter.

Implements DocumentStorePort using SQLite: a posts table and an append-only
notifications table. Stands in for the hosted document database.

Invariants:
- batch_write commits every record or none of them
- batch_write rejects batches larger than max_batch_size
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from postflow.core.ports.store import BatchTooLargeError, DocumentStoreError
from postflow.domain.entities import (
    IdentitySnapshot,
    NotificationDetails,
    NotificationRecord,
    PostDocument,
    PublishedPost,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 500

SCHEMA = """
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    tags TEXT NOT NULL,
    tags_lower TEXT NOT NULL,
    title_for_search TEXT NOT NULL,
    author_id TEXT NOT NULL,
    author_name TEXT NOT NULL,
    author_username TEXT NOT NULL,
    author_avatar TEXT NOT NULL,
    cover_image TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    total_reads INTEGER NOT NULL DEFAULT 0,
    likes TEXT NOT NULL,
    bookmarks TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notifications (
    notification_id TEXT PRIMARY KEY,
    receiver_id TEXT NOT NULL,
    sender_id TEXT NOT NULL,
    notification_type TEXT NOT NULL,
    read_status INTEGER NOT NULL DEFAULT 0,
    sender_details TEXT NOT NULL,
    receiver_details TEXT NOT NULL,
    notification_details TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_notifications_receiver ON notifications (receiver_id);
"""

POST_COLUMNS = (
    "title",
    "content",
    "tags",
    "tags_lower",
    "title_for_search",
    "author_id",
    "author_name",
    "author_username",
    "author_avatar",
    "cover_image",
    "created_at",
    "updated_at",
    "total_reads",
    "likes",
    "bookmarks",
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def new_post_id() -> str:
    return uuid4().hex


def _post_values(doc: PostDocument) -> tuple[Any, ...]:
    return (
        doc.title,
        doc.content,
        json.dumps(doc.tags),
        json.dumps(doc.tags_lower),
        json.dumps(doc.title_for_search),
        doc.author_id,
        doc.author_name,
        doc.author_username,
        doc.author_avatar,
        doc.cover_image,
        doc.created_at.isoformat(),
        doc.updated_at.isoformat(),
        doc.total_reads,
        json.dumps(doc.likes),
        json.dumps(doc.bookmarks),
    )


# -----------------------------------------------------------------------------
# Document Store
# -----------------------------------------------------------------------------


class SQLiteDocumentStore:
    """
    SQLite implementation of DocumentStorePort.

    An external connection must be opened with check_same_thread=False, since
    the async methods run queries on worker threads.
    """

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        id_factory: Callable[[], str] = new_post_id,
    ) -> None:
        self.db_path = db_path
        self.max_batch_size = max_batch_size
        self._external_conn = connection
        if connection is not None:
            connection.row_factory = dict_factory
        self._id_factory = id_factory
        self.init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def init_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.executescript(SCHEMA)
        finally:
            if self._should_close():
                conn.close()

    # --- Sync API ---

    def insert_post(self, doc: PostDocument) -> str:
        post_id = self._id_factory()
        placeholders = ", ".join("?" for _ in range(len(POST_COLUMNS) + 1))
        conn = self._get_conn()
        try:
            conn.execute(
                f"INSERT INTO posts (id, {', '.join(POST_COLUMNS)}) VALUES ({placeholders})",
                (post_id, *_post_values(doc)),
            )
            conn.commit()
            return post_id
        except sqlite3.Error as e:
            conn.rollback()
            raise DocumentStoreError(f"Could not create post: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def replace_post(self, post_id: str, doc: PostDocument) -> None:
        assignments = ", ".join(f"{c} = ?" for c in POST_COLUMNS)
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"UPDATE posts SET {assignments} WHERE id = ?",
                (*_post_values(doc), post_id),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                raise DocumentStoreError(f"Post not found: {post_id}")
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DocumentStoreError(f"Could not update post {post_id}: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def fetch_post(self, post_id: str) -> PublishedPost | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
            return self._map_post(row) if row else None
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Could not read post {post_id}: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def write_batch(self, records: list[NotificationRecord]) -> None:
        if len(records) > self.max_batch_size:
            raise BatchTooLargeError(len(records), self.max_batch_size)
        if not records:
            return

        conn = self._get_conn()
        try:
            conn.executemany(
                """
                INSERT INTO notifications (
                    notification_id, receiver_id, sender_id, notification_type,
                    read_status, sender_details, receiver_details,
                    notification_details, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.notification_id,
                        r.receiver_id,
                        r.sender_id,
                        r.notification_type,
                        int(r.read_status),
                        r.sender_details.model_dump_json(),
                        r.receiver_details.model_dump_json(),
                        r.notification_details.model_dump_json(),
                        r.created_at.isoformat(),
                    )
                    for r in records
                ],
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DocumentStoreError(f"Notification batch failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def list_notifications(self, receiver_id: str | None = None) -> list[NotificationRecord]:
        conn = self._get_conn()
        try:
            if receiver_id is None:
                rows = conn.execute(
                    "SELECT * FROM notifications ORDER BY created_at, receiver_id"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM notifications WHERE receiver_id = ? ORDER BY created_at",
                    (receiver_id,),
                ).fetchall()
            return [self._map_notification(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    # --- DocumentStorePort ---

    async def create_post(self, doc: PostDocument) -> str:
        return await asyncio.to_thread(self.insert_post, doc)

    async def update_post(self, post_id: str, doc: PostDocument) -> None:
        await asyncio.to_thread(self.replace_post, post_id, doc)

    async def get_post(self, post_id: str) -> PublishedPost | None:
        return await asyncio.to_thread(self.fetch_post, post_id)

    async def batch_write(self, records: list[NotificationRecord]) -> None:
        await asyncio.to_thread(self.write_batch, records)
        logger.debug("Committed batch of %d notification(s)", len(records))

    # --- Row mapping ---

    def _map_post(self, row: dict[str, Any]) -> PublishedPost:
        return PublishedPost(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            tags=json.loads(row["tags"]),
            tags_lower=json.loads(row["tags_lower"]),
            title_for_search=json.loads(row["title_for_search"]),
            author_id=row["author_id"],
            author_name=row["author_name"],
            author_username=row["author_username"],
            author_avatar=row["author_avatar"],
            cover_image=row["cover_image"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            total_reads=row["total_reads"],
            likes=json.loads(row["likes"]),
            bookmarks=json.loads(row["bookmarks"]),
        )

    def _map_notification(self, row: dict[str, Any]) -> NotificationRecord:
        return NotificationRecord(
            notification_id=row["notification_id"],
            receiver_id=row["receiver_id"],
            sender_id=row["sender_id"],
            notification_type=row["notification_type"],
            read_status=bool(row["read_status"]),
            sender_details=IdentitySnapshot.model_validate_json(row["sender_details"]),
            receiver_details=IdentitySnapshot.model_validate_json(row["receiver_details"]),
            notification_details=NotificationDetails.model_validate_json(
                row["notification_details"]
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
