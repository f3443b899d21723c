from typing import Protocol

from postflow.core.errors import FieldError
from postflow.domain.entities import DraftPost, PublishMode


class ValidationPort(Protocol):
    """Draft validation contract supplied by the form layer."""

    def validate(self, draft: DraftPost, mode: PublishMode) -> list[FieldError]:
        """Return field errors; an empty list means the draft may be published."""
        ...
