"""
Notifications component output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChunkFailure:
    """A sub-batch that did not commit. None of its receivers were notified."""

    index: int
    receiver_ids: list[str]
    message: str


@dataclass(frozen=True)
class FanoutReport:
    """
    Outcome of one fan-out call.

    Each chunk is all-or-nothing on its own; chunks are independent of each
    other, so a report can show some chunks committed and others failed.
    """

    post_id: str
    total: int = 0
    delivered: int = 0
    chunks_attempted: int = 0
    chunks_committed: int = 0
    notification_ids: list[str] = field(default_factory=list)
    failures: list[ChunkFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures
