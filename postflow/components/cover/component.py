"""
Cover component - uploads a post's cover image once the post id is known.

Invariants:
- I1: Storage key depends only on the post id, so retries overwrite the same object
- I2: Never called before the post document exists
- I3: Only this component writes under the cover prefix for a post
"""

from __future__ import annotations

import logging

from postflow.core.errors import UploadError
from postflow.core.ports.storage import ObjectStoragePort, StorageError
from postflow.domain.entities import ImageFile
from postflow.rules.models import StorageRules

logger = logging.getLogger(__name__)


def cover_storage_key(prefix: str, post_id: str) -> str:
    """
    Storage key for a post's cover image.

    Format: {prefix}/{post_id}
    """
    return f"{prefix}/{post_id}"


class CoverImageCoordinator:
    """Idempotent cover upload keyed by post id."""

    def __init__(self, storage: ObjectStoragePort, rules: StorageRules | None = None) -> None:
        self._storage = storage
        self._prefix = (rules or StorageRules()).cover_image_prefix

    def storage_key(self, post_id: str) -> str:
        return cover_storage_key(self._prefix, post_id)

    async def upload(self, file: ImageFile, post_id: str) -> str:
        """
        Upload the cover for post_id and return its URL.

        Safe to call again with the same post id after a failure.
        """
        if not post_id:
            raise UploadError("Cover upload needs a post id", code="missing_post_id")

        key = self.storage_key(post_id)
        try:
            url = await self._storage.put_object(key, file.data, file.content_type)
        except (StorageError, OSError) as e:
            logger.warning("Cover upload failed for post %s: %s", post_id, e)
            raise UploadError(
                f"Cover image upload failed: {e}", code="cover_upload_failed", retryable=True
            ) from e

        logger.info("Cover image stored for post %s", post_id)
        return url
