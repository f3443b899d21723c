"""
Document Store Port.

Protocol-based interface for the hosted document database holding posts and
notifications.
Implementations: SQLite (now), hosted document database (future).

Invariants:
- batch_write is all-or-nothing for the records it is given
- batch_write rejects more than max_batch_size records
- No version token: concurrent updates are last-write-wins
"""

from __future__ import annotations

from typing import Protocol

from postflow.domain.entities import NotificationRecord, PostDocument, PublishedPost


class DocumentStorePort(Protocol):
    """Repository for posts plus the notification collection."""

    max_batch_size: int

    async def create_post(self, doc: PostDocument) -> str:
        """Insert a new post. The store assigns and returns its id."""
        ...

    async def update_post(self, post_id: str, doc: PostDocument) -> None:
        """Replace the stored post document."""
        ...

    async def get_post(self, post_id: str) -> PublishedPost | None:
        """Get post by id, or None if not found."""
        ...

    async def batch_write(self, records: list[NotificationRecord]) -> None:
        """Commit all records atomically."""
        ...


class DocumentStoreError(Exception):
    """Raised by document store adapters when a read or write fails."""


class BatchTooLargeError(DocumentStoreError):
    """Raised when a batch exceeds the store's limit."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Batch of {size} records exceeds limit of {limit}")
