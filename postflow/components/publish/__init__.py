"""Publish component - validate, persist and announce a post."""

from postflow.components.publish.component import PublishOrchestrator
from postflow.components.publish.models import PublishResult, PublishState, PublishWarning
from postflow.components.publish.search import search_terms, title_search_terms
from postflow.components.publish.validation import DraftValidator, validate_cover_file

__all__ = [
    # Component
    "PublishOrchestrator",
    # Models
    "PublishResult",
    "PublishState",
    "PublishWarning",
    # Validation
    "DraftValidator",
    "validate_cover_file",
    # Helpers
    "search_terms",
    "title_search_terms",
]
