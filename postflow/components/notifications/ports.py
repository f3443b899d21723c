"""Notifications component port definitions - protocols for dependencies."""

from typing import Protocol

from postflow.domain.entities import NotificationRecord


class NotificationStorePort(Protocol):
    """Atomic batch writes to the notification collection."""

    max_batch_size: int

    async def batch_write(self, records: list[NotificationRecord]) -> None:
        """Commit all records or none of them."""
        ...
