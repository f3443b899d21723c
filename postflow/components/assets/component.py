"""
Assets component - lifecycle of images uploaded during one authoring session.

Tracks which inline images were uploaded in this session, works out which of
them the final body no longer references, and deletes those orphans.

Invariants:
- I1: MIME type must be in allowlist before upload
- I2: Size must not exceed limit before upload
- I3: An upload is recorded only after storage accepted it
- I4: reconcile never returns a ref still referenced by the body
- I5: purge attempts every orphan; one failure never blocks the others
- I6: Only session uploads are ever purged, never pre-existing assets
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime

from postflow.components.references import extract_asset_refs
from postflow.core.errors import FieldError, PurgeError, UploadError
from postflow.core.ports.clock import ClockPort
from postflow.core.ports.storage import ObjectStoragePort, StorageError
from postflow.domain.entities import EditorMode, ImageFile
from postflow.rules.models import StorageRules, UploadsRules

from .models import PurgeFailure, PurgeReport

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_PATTERN = re.compile(r"[^\w.-]+")


# --- Validation Functions ---


def validate_mime_type(
    content_type: str, rules: UploadsRules, field: str = "file"
) -> list[FieldError]:
    """
    Validate MIME type against allowlist.

    Returns list of errors (empty if valid).
    """
    if content_type in rules.allowlist_mime_types:
        return []
    return [
        FieldError(
            code="invalid_mime_type",
            message=(
                f"MIME type '{content_type}' is not allowed. "
                f"Allowed types: {', '.join(sorted(set(rules.allowlist_mime_types)))}"
            ),
            field=field,
        )
    ]


def validate_size(size: int, rules: UploadsRules, field: str = "file") -> list[FieldError]:
    """
    Validate file size against limits.

    Returns list of errors (empty if valid).
    """
    errors: list[FieldError] = []
    if size == 0:
        errors.append(FieldError(code="empty_file", message="File is empty", field=field))
    elif size > rules.max_upload_bytes:
        errors.append(
            FieldError(
                code="file_too_large",
                message=f"File size {size} bytes exceeds maximum of {rules.max_upload_bytes} bytes",
                field=field,
            )
        )
    return errors


def validate_image_file(
    file: ImageFile, rules: UploadsRules, field: str = "file"
) -> list[FieldError]:
    return validate_mime_type(file.content_type, rules, field) + validate_size(
        file.size_bytes, rules, field
    )


def inline_image_key(prefix: str, owner_id: str, filename: str, at: datetime) -> str:
    """
    Storage key for an inline image.

    Format: {prefix}/{owner_id}/{filename}_{timestamp}
    """
    safe_name = UNSAFE_FILENAME_PATTERN.sub("_", filename).strip("_") or "image"
    return f"{prefix}/{owner_id}/{safe_name}_{at.strftime('%Y%m%dT%H%M%S%fZ')}"


# --- Lifecycle Manager ---


class AssetLifecycleManager:
    """Session-scoped bookkeeping for inline image uploads."""

    def __init__(
        self,
        storage: ObjectStoragePort,
        clock: ClockPort,
        *,
        uploads: UploadsRules | None = None,
        storage_rules: StorageRules | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._uploads = uploads or UploadsRules()
        self._storage_rules = storage_rules or StorageRules()
        # dict keeps insertion order so reports are stable
        self._uploaded: dict[str, None] = {}

    @property
    def uploaded(self) -> frozenset[str]:
        return frozenset(self._uploaded)

    def record_upload(self, ref: str) -> None:
        """Remember an asset uploaded during this session."""
        self._uploaded[ref] = None

    async def upload_inline_image(self, file: ImageFile, owner_id: str) -> str:
        """
        Upload an image the author is inserting into the body.

        Returns the hosted URL, already recorded as a session upload.
        Raises UploadError if the file is rejected or storage fails; nothing
        is recorded in that case.
        """
        if not owner_id:
            raise UploadError("User not authenticated", code="not_authenticated")

        errors = validate_image_file(file, self._uploads)
        if errors:
            raise UploadError("; ".join(e.message for e in errors), code=errors[0].code)

        key = inline_image_key(
            self._storage_rules.inline_image_prefix, owner_id, file.filename, self._clock.now()
        )
        try:
            url = await self._storage.put_object(key, file.data, file.content_type)
        except (StorageError, OSError) as e:
            logger.warning("Inline image upload failed for %s: %s", key, e)
            raise UploadError("Image upload failed.", retryable=True) from e

        self.record_upload(url)
        logger.info("Inline image uploaded: %s", url)
        return url

    def reconcile(self, current_body: str, mode: EditorMode = "rich") -> frozenset[str]:
        """Session uploads that the body no longer references."""
        referenced = extract_asset_refs(current_body, mode)
        return frozenset(ref for ref in self._uploaded if ref not in referenced)

    async def purge(self, orphans: Iterable[str]) -> PurgeReport:
        """
        Delete each orphan from object storage.

        Never raises: each failure is logged and reported.
        Refs that were not uploaded in this session are skipped.
        """
        deleted: list[str] = []
        failures: list[PurgeFailure] = []

        for ref in sorted(set(orphans)):
            if ref not in self._uploaded:
                logger.warning("Refusing to purge %s: not uploaded in this session", ref)
                continue
            try:
                await self._storage.delete_object(ref)
            except (StorageError, OSError) as e:
                error = PurgeError(ref, str(e))
                logger.warning("%s", error)
                failures.append(PurgeFailure(ref=ref, message=str(e), code=error.code))
                continue
            del self._uploaded[ref]
            deleted.append(ref)

        if deleted:
            logger.info("Purged %d orphaned asset(s)", len(deleted))
        return PurgeReport(deleted=deleted, failures=failures)

    def discard(self) -> None:
        """Forget this session's uploads without deleting anything."""
        if self._uploaded:
            logger.debug("Discarding %d session upload(s) without purge", len(self._uploaded))
        self._uploaded.clear()
