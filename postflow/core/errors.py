"""
Pipeline error taxonomy.

Fatal errors (ValidationError, ConversionError, PersistenceError) reject a
publish and leave no partial post behind. The remaining errors are raised by
individual components and downgraded to warnings by the orchestrator once the
post is durably stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from postflow.components.notifications.models import FanoutReport


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    code: str
    message: str
    field: str


class PipelineError(Exception):
    """Base class for publication pipeline errors."""

    default_code = "pipeline_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message
        # Filled in by the orchestrator with the states visited before failing
        self.states: list[Any] = []
        super().__init__(message)


class ValidationError(PipelineError):
    """Draft fails required-field or shape checks."""

    default_code = "validation_failed"

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(summary or "Draft is invalid")

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class ConversionError(PipelineError):
    """Content-format transform failed on malformed input."""

    default_code = "conversion_failed"


class UploadError(PipelineError):
    """Cover or inline image upload failed."""

    default_code = "upload_failed"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        retryable: bool = False,
    ) -> None:
        self.retryable = retryable
        super().__init__(message, code=code)


class PersistenceError(PipelineError):
    """Post document create or update failed."""

    default_code = "persistence_failed"


class PurgeError(PipelineError):
    """Deleting an orphaned asset failed."""

    default_code = "purge_failed"

    def __init__(self, ref: str, message: str) -> None:
        self.ref = ref
        super().__init__(f"Could not delete {ref}: {message}")


class FanoutError(PipelineError):
    """One or more notification batches failed to commit."""

    default_code = "fanout_failed"

    def __init__(self, report: FanoutReport) -> None:
        self.report = report
        failed = sum(len(f.receiver_ids) for f in report.failures)
        super().__init__(
            f"{len(report.failures)} of {report.chunks_attempted} notification batches "
            f"failed ({failed} of {report.total} followers not notified)"
        )


class PublishInProgressError(PipelineError):
    """A publish for this session is already running."""

    default_code = "publish_in_progress"
