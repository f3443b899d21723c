"""Publish component models - states, warnings and the publish result."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum

from postflow.components.assets.models import PurgeReport
from postflow.components.notifications.models import FanoutReport
from postflow.domain.entities import PublishedPost, PublishMode


class PublishState(str, Enum):
    VALIDATING = "validating"
    RECONCILING_ASSETS = "reconciling_assets"
    PERSISTING = "persisting"
    UPLOADING_COVER = "uploading_cover"
    FANNING_OUT = "fanning_out"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PublishWarning:
    """A non-fatal side effect that degraded an otherwise successful publish."""

    code: str
    message: str
    state: PublishState
    ref: str | None = None


@dataclass(frozen=True)
class PublishResult:
    """
    Output of a successful publish.

    warnings is appended to by a background fan-out when it finishes, so a
    result read before `fanout` completes may gain entries later.
    """

    post: PublishedPost
    mode: PublishMode
    warnings: list[PublishWarning] = field(default_factory=list)
    states: list[PublishState] = field(default_factory=list)
    purge: PurgeReport = field(default_factory=PurgeReport)
    fanout: asyncio.Task[FanoutReport | None] | None = None

    @property
    def clean(self) -> bool:
        """True when every side effect completed without warnings."""
        return not self.warnings

    async def settled(self) -> list[PublishWarning]:
        """Wait for a background fan-out (if any) and return all warnings."""
        if self.fanout is not None:
            await asyncio.wait({self.fanout})
        return list(self.warnings)
