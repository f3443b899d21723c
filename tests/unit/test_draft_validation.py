"""
Draft validation and search term tests.
"""

from __future__ import annotations

import pytest

from postflow.components.publish import (
    DraftValidator,
    search_terms,
    title_search_terms,
    validate_cover_file,
)
from postflow.domain.entities import DraftPost, IdentitySnapshot, ImageFile
from postflow.rules.models import UploadsRules, ValidationRules

BODY = "<p>" + "A body long enough to satisfy the minimum length rule. " * 2 + "</p>"


@pytest.fixture
def validator() -> DraftValidator:
    return DraftValidator()


def _draft(**overrides) -> DraftPost:
    values = {
        "title": "A proper title",
        "body": BODY,
        "tags": ["python"],
        "cover_file": ImageFile(filename="c.png", content_type="image/png", data=b"png"),
    }
    values.update(overrides)
    return DraftPost(**values)


class TestDraftValidator:
    def test_valid_create(self, validator) -> None:
        assert validator.validate(_draft(), "create") == []

    def test_title_rules(self, validator) -> None:
        assert validator.validate(_draft(title=""), "create")[0].code == "required"
        errors = validator.validate(_draft(title="Tiny"), "create")
        assert [(e.field, e.code) for e in errors] == [("title", "too_short")]

    def test_body_rules(self, validator) -> None:
        assert validator.validate(_draft(body="   "), "create")[0].field == "body"
        errors = validator.validate(_draft(body="<p>short</p>"), "create")
        assert [(e.field, e.code) for e in errors] == [("body", "too_short")]

    def test_at_least_one_tag(self, validator) -> None:
        errors = validator.validate(_draft(tags=[" "]), "create")
        assert [e.field for e in errors] == ["tags"]

    def test_cover_required_on_create_only(self, validator) -> None:
        errors = validator.validate(_draft(cover_file=None), "create")
        assert [(e.field, e.code) for e in errors] == [("cover_image", "required")]

        edit = _draft(cover_file=None, post_id="p1")
        assert validator.validate(edit, "edit") == []

    def test_kept_cover_url_satisfies_create(self, validator) -> None:
        draft = _draft(cover_file=None, cover_url="https://cdn.example.com/c.png")
        assert validator.validate(draft, "create") == []

    def test_cover_rule_can_be_disabled(self) -> None:
        validator = DraftValidator(ValidationRules(require_cover_on_create=False))
        assert validator.validate(_draft(cover_file=None), "create") == []

    def test_errors_accumulate(self, validator) -> None:
        draft = DraftPost()
        fields = {e.field for e in validator.validate(draft, "create")}
        assert fields == {"title", "body", "tags", "cover_image"}


class TestCoverFile:
    def test_any_image_type_accepted(self) -> None:
        svg = ImageFile(filename="c.svg", content_type="image/svg+xml", data=b"<svg/>")
        assert validate_cover_file(svg, UploadsRules()) == []

    def test_non_image_rejected(self) -> None:
        pdf = ImageFile(filename="c.pdf", content_type="application/pdf", data=b"%PDF")
        assert validate_cover_file(pdf, UploadsRules())[0].code == "invalid_mime_type"

    def test_size_limit(self) -> None:
        big = ImageFile(filename="c.png", content_type="image/png", data=b"x" * 11)
        errors = validate_cover_file(big, UploadsRules(max_upload_bytes=10))
        assert errors[0].code == "file_too_large"
        assert errors[0].field == "cover_image"


class TestSearchTerms:
    def test_title_words(self) -> None:
        assert title_search_terms("Hello, World! Hello again") == ["hello", "world", "again"]

    def test_includes_author_name_and_handle(self) -> None:
        author = IdentitySnapshot(user_id="u1", name="Ada Lovelace", username="ada")
        assert search_terms("Engines", author) == ["engines", "ada", "lovelace"]

    def test_apostrophes(self) -> None:
        assert title_search_terms("Don't 'quote' me") == ["don't", "quote", "me"]
