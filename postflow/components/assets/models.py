"""
Assets component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PurgeFailure:
    """An orphan that could not be deleted."""

    ref: str
    message: str
    code: str = "purge_failed"


@dataclass(frozen=True)
class PurgeReport:
    """Outcome of deleting a set of orphaned assets."""

    deleted: list[str] = field(default_factory=list)
    failures: list[PurgeFailure] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.deleted) + len(self.failures)

    @property
    def success(self) -> bool:
        return not self.failures
