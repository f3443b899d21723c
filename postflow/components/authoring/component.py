"""
Authoring component - the draft behind one create or edit view.

Owns the draft and the session's upload tracker, and hands both to the
publish orchestrator.

Invariants:
- I1: At most one publish runs per session at a time
- I2: A failed image upload or mode switch leaves the draft unchanged
- I3: Session uploads are forgotten, never purged, when the session ends
"""

from __future__ import annotations

import html
import logging

from postflow.components.assets import AssetLifecycleManager
from postflow.components.publish import PublishOrchestrator, PublishResult, validate_cover_file
from postflow.components.references import extract_asset_refs
from postflow.components.richtext import (
    ContentConverter,
    ConverterPort,
    markdown_image,
    switch_mode,
)
from postflow.core.errors import PublishInProgressError, ValidationError
from postflow.core.ports.identity import IdentityPort
from postflow.domain.entities import DraftPost, EditorMode, ImageFile, PublishMode
from postflow.rules.models import UploadsRules

logger = logging.getLogger(__name__)


def append_image(body: str, url: str, mode: EditorMode, alt: str = "") -> str:
    """Append an image reference to a body in the given representation."""
    if mode == "rich":
        src = html.escape(url, quote=True)
        return body + f'<p><img src="{src}" alt="{html.escape(alt, quote=True)}"></p>'

    image = markdown_image(url, alt)
    if not body:
        return image + "\n"
    separator = "\n" if body.endswith("\n") else "\n\n"
    return f"{body}{separator}{image}\n"


class AuthoringSession:
    """Mutable draft plus publish guard for one authoring view."""

    def __init__(
        self,
        *,
        orchestrator: PublishOrchestrator,
        assets: AssetLifecycleManager,
        identity: IdentityPort,
        converter: ConverterPort | None = None,
        uploads: UploadsRules | None = None,
        draft: DraftPost | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._assets = assets
        self._identity = identity
        self._converter = converter or ContentConverter()
        self._uploads = uploads or UploadsRules()
        self._draft = draft or DraftPost()
        self._publishing = False

    @property
    def draft(self) -> DraftPost:
        return self._draft.model_copy(deep=True)

    @property
    def mode(self) -> PublishMode:
        return "edit" if self._draft.post_id else "create"

    @property
    def publishing(self) -> bool:
        return self._publishing

    @property
    def assets(self) -> AssetLifecycleManager:
        return self._assets

    # --- Draft edits ---

    def set_title(self, title: str) -> None:
        self._draft = self._draft.model_copy(update={"title": title})

    def set_tags(self, tags: list[str]) -> None:
        self._draft = self._draft.model_copy(update={"tags": list(tags)})

    def set_body(self, body: str) -> None:
        self._draft = self._draft.model_copy(update={"body": body})

    def select_cover(self, file: ImageFile) -> None:
        """
        Pick a new cover image.

        Raises ValidationError for non-images or oversized files; the
        previous cover selection is kept in that case.
        """
        errors = validate_cover_file(file, self._uploads)
        if errors:
            raise ValidationError(errors)
        self._draft = self._draft.model_copy(update={"cover_file": file})

    def clear_cover(self) -> None:
        self._draft = self._draft.model_copy(update={"cover_file": None})

    def referenced_assets(self) -> frozenset[str]:
        return extract_asset_refs(self._draft.body, self._draft.mode)

    async def toggle_mode(self) -> EditorMode:
        """Switch between rich and lite editing. Raises ConversionError on failure."""
        self._draft = await switch_mode(self._draft, self._converter)
        return self._draft.mode

    async def insert_image(self, file: ImageFile, alt: str = "") -> str:
        """
        Upload an inline image and append it to the body.

        Returns the hosted URL. Raises UploadError without touching the body.
        """
        user = self._identity.current_user()
        owner_id = user.user_id if user is not None else ""
        url = await self._assets.upload_inline_image(file, owner_id)
        self._draft = self._draft.model_copy(
            update={"body": append_image(self._draft.body, url, self._draft.mode, alt)}
        )
        return url

    # --- Lifecycle ---

    async def publish(self) -> PublishResult:
        """
        Publish the current draft.

        Raises PublishInProgressError if a publish is already running, and
        propagates the orchestrator's fatal errors with the draft intact.
        """
        if self._publishing:
            raise PublishInProgressError("A publish is already in progress for this draft")

        self._publishing = True
        try:
            result = await self._orchestrator.publish(self._draft, self.mode, self._assets)
        finally:
            self._publishing = False

        self._assets.discard()
        # Later publishes from this session update the stored post
        self._draft = self._draft.model_copy(
            update={
                "post_id": result.post.id,
                "cover_file": None,
                "cover_url": result.post.cover_image or None,
            }
        )
        return result

    def discard(self) -> None:
        """Abandon the session without deleting anything already uploaded."""
        self._assets.discard()
        self._draft = DraftPost()
        logger.debug("Authoring session discarded")

