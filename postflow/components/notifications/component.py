"""
Notifications component - "new post" fan-out to followers.

One NotificationRecord per follower, written as atomic batches.

Invariants:
- I1: Every record gets a fresh unique id before the write
- I2: Empty follower set submits nothing
- I3: Each chunk commits all-or-nothing
- I4: Chunks are best-effort across each other: a failed chunk never rolls
      back an earlier one, and later chunks are still attempted
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from postflow.core.errors import FanoutError
from postflow.core.ports.clock import ClockPort
from postflow.core.ports.store import DocumentStoreError
from postflow.domain.entities import (
    IdentitySnapshot,
    NotificationDetails,
    NotificationRecord,
    PublishedPost,
    new_notification_id,
)

from .models import ChunkFailure, FanoutReport
from .ports import NotificationStorePort

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500


def build_notification(
    receiver_id: str,
    post: PublishedPost,
    sender: IdentitySnapshot,
    *,
    notification_id: str,
    clock: ClockPort,
) -> NotificationRecord:
    """Denormalized "new post" notification for one follower."""
    return NotificationRecord(
        notification_id=notification_id,
        receiver_id=receiver_id,
        sender_id=sender.user_id,
        notification_type="NEW_POST",
        read_status=False,
        sender_details=sender,
        # Receiver profile is not known here; the inbox resolves it on read
        receiver_details=IdentitySnapshot(user_id=receiver_id),
        notification_details=NotificationDetails(
            post_id=post.id,
            post_cover_photo=post.cover_image,
            post_title=post.title,
            post_author_avatar=sender.avatar,
            post_author_name=sender.name,
            post_author_username=sender.username,
        ),
        created_at=clock.now(),
    )


def chunked(items: list[NotificationRecord], size: int) -> list[list[NotificationRecord]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class NotificationFanoutWriter:
    """
    Writes one notification per follower.

    Follower sets larger than the chunk size are split into several atomic
    sub-batches. Callers must treat a multi-chunk fan-out as best-effort: on
    FanoutError some followers may already have been notified.
    """

    def __init__(
        self,
        store: NotificationStorePort,
        clock: ClockPort,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        id_factory: Callable[[], str] = new_notification_id,
    ) -> None:
        store_limit = getattr(store, "max_batch_size", None)
        if isinstance(store_limit, int) and store_limit > 0:
            chunk_size = min(chunk_size, store_limit)
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

        self._store = store
        self._clock = clock
        self._chunk_size = chunk_size
        self._id_factory = id_factory

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def build_records(
        self,
        follower_ids: Iterable[str],
        post: PublishedPost,
        sender: IdentitySnapshot,
    ) -> list[NotificationRecord]:
        receivers = sorted({f for f in follower_ids if f})
        return [
            build_notification(
                receiver_id,
                post,
                sender,
                notification_id=self._id_factory(),
                clock=self._clock,
            )
            for receiver_id in receivers
        ]

    async def fan_out(
        self,
        follower_ids: Iterable[str],
        post: PublishedPost,
        sender: IdentitySnapshot,
    ) -> FanoutReport:
        """
        Notify every follower about a newly created post.

        Returns a report when every chunk committed.
        Raises FanoutError (carrying the report) after all chunks were tried
        if any of them failed.
        """
        records = self.build_records(follower_ids, post, sender)
        if not records:
            logger.info("No followers to notify for post %s", post.id)
            return FanoutReport(post_id=post.id)

        delivered = 0
        committed = 0
        notification_ids: list[str] = []
        failures: list[ChunkFailure] = []
        chunks = chunked(records, self._chunk_size)

        for index, chunk in enumerate(chunks):
            try:
                await self._store.batch_write(chunk)
            except (DocumentStoreError, OSError) as e:
                # Chunks are independent: record and keep going
                logger.warning(
                    "Notification batch %d/%d for post %s failed: %s",
                    index + 1,
                    len(chunks),
                    post.id,
                    e,
                )
                failures.append(
                    ChunkFailure(
                        index=index,
                        receiver_ids=[r.receiver_id for r in chunk],
                        message=str(e),
                    )
                )
                continue
            committed += 1
            delivered += len(chunk)
            notification_ids.extend(r.notification_id for r in chunk)

        report = FanoutReport(
            post_id=post.id,
            total=len(records),
            delivered=delivered,
            chunks_attempted=len(chunks),
            chunks_committed=committed,
            notification_ids=notification_ids,
            failures=failures,
        )

        if failures:
            raise FanoutError(report)

        logger.info(
            "Notified %d follower(s) of post %s in %d batch(es)", delivered, post.id, committed
        )
        return report
