"""Assets component - session uploads, orphan reconciliation and purge."""

from postflow.components.assets.component import (
    AssetLifecycleManager,
    inline_image_key,
    validate_image_file,
    validate_mime_type,
    validate_size,
)
from postflow.components.assets.models import PurgeFailure, PurgeReport

__all__ = [
    # Component
    "AssetLifecycleManager",
    # Models
    "PurgeFailure",
    "PurgeReport",
    # Helpers
    "inline_image_key",
    "validate_image_file",
    "validate_mime_type",
    "validate_size",
]
