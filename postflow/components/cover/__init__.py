"""Cover component - cover image upload keyed by post id."""

from postflow.components.cover.component import CoverImageCoordinator, cover_storage_key

__all__ = [
    "CoverImageCoordinator",
    "cover_storage_key",
]
