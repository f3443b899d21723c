"""Shared Markdown parser configuration for the lite authoring representation."""

from __future__ import annotations

from markdown_it import MarkdownIt


def _keep_url(url: str) -> str:
    return url


def create_markdown() -> MarkdownIt:
    """
    CommonMark parser with raw HTML, strikethrough and tables.

    Link normalization is disabled so image URLs reach the rendered HTML
    byte-for-byte (no percent re-encoding).
    """
    md = MarkdownIt("commonmark", {"html": True}).enable(["strikethrough", "table"])
    md.normalizeLink = _keep_url  # type: ignore[method-assign]
    md.normalizeLinkText = _keep_url  # type: ignore[method-assign]
    return md


MD = create_markdown()
