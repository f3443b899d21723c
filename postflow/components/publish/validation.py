"""Default draft validator mirroring the post form schema."""

from __future__ import annotations

from postflow.components.assets.component import validate_size
from postflow.core.errors import FieldError
from postflow.domain.entities import DraftPost, ImageFile, PublishMode
from postflow.rules.models import UploadsRules, ValidationRules


def validate_cover_file(file: ImageFile, uploads: UploadsRules) -> list[FieldError]:
    """Any image type is accepted for covers, within the upload size limit."""
    if not file.content_type.startswith("image/"):
        return [
            FieldError(
                code="invalid_mime_type",
                message="Please select a valid image file.",
                field="cover_image",
            )
        ]
    return validate_size(file.size_bytes, uploads, field="cover_image")


class DraftValidator:
    """Required-field and shape checks for a draft about to be published."""

    def __init__(
        self,
        rules: ValidationRules | None = None,
        uploads: UploadsRules | None = None,
    ) -> None:
        self._rules = rules or ValidationRules()
        self._uploads = uploads or UploadsRules()

    def validate(self, draft: DraftPost, mode: PublishMode) -> list[FieldError]:
        rules = self._rules
        errors: list[FieldError] = []

        if not draft.title.strip():
            errors.append(FieldError(code="required", message="Title is required", field="title"))
        elif len(draft.title) < rules.title_min_length:
            errors.append(
                FieldError(
                    code="too_short",
                    message=f"Title must be at least {rules.title_min_length} characters",
                    field="title",
                )
            )

        if not draft.body.strip():
            errors.append(
                FieldError(
                    code="required", message="You cannot post an empty article", field="body"
                )
            )
        elif len(draft.body) < rules.body_min_length:
            errors.append(
                FieldError(
                    code="too_short",
                    message=f"Article must be at least {rules.body_min_length} characters",
                    field="body",
                )
            )

        tags = [t for t in draft.tags if t.strip()]
        if len(tags) < rules.min_tags:
            errors.append(
                FieldError(code="required", message="Please select at least one tag", field="tags")
            )

        errors.extend(self._validate_cover(draft, mode))
        return errors

    def _validate_cover(self, draft: DraftPost, mode: PublishMode) -> list[FieldError]:
        cover = draft.cover_file
        if cover is None:
            if mode == "create" and self._rules.require_cover_on_create and not draft.cover_url:
                return [
                    FieldError(
                        code="required", message="Please select a cover image.", field="cover_image"
                    )
                ]
            return []

        return validate_cover_file(cover, self._uploads)
