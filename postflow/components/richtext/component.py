"""
Richtext component - conversion between the two authoring representations.

Two representations of one logical document:
- rich: HTML, the canonical persisted form
- lite: Markdown shorthand

Invariants:
- I1: Image URLs survive either direction verbatim
- I2: A failed conversion leaves the draft (body and mode) unchanged
- I3: Round trips may normalize whitespace and formatting
"""

from __future__ import annotations

import logging
from typing import Protocol

from postflow.core.errors import ConversionError
from postflow.domain.entities import DraftPost, EditorMode

from ._impl import html_to_markdown, markdown_to_html

logger = logging.getLogger(__name__)


class ConverterPort(Protocol):
    """Anything able to translate bodies; may be backed by a remote service."""

    async def to_markup_lite(self, rich: str) -> str:
        ...

    async def to_rich(self, lite: str) -> str:
        ...


class ContentConverter:
    """In-process converter (HTML via HTMLParser, Markdown via markdown-it)."""

    async def to_markup_lite(self, rich: str) -> str:
        """Convert a rich body to Markdown. Raises ConversionError on malformed HTML."""
        return html_to_markdown(rich)

    async def to_rich(self, lite: str) -> str:
        """Render a Markdown body to HTML. Raises ConversionError on malformed input."""
        return markdown_to_html(lite)

    async def convert(self, body: str, source: EditorMode, target: EditorMode) -> str:
        if source == target:
            return body
        if target == "lite":
            return await self.to_markup_lite(body)
        return await self.to_rich(body)


async def to_canonical(body: str, mode: EditorMode, converter: ConverterPort) -> str:
    """Return the rich form of a body held in either representation."""
    if mode == "rich":
        return body
    return await converter.to_rich(body)


async def switch_mode(
    draft: DraftPost,
    converter: ConverterPort,
    target: EditorMode | None = None,
) -> DraftPost:
    """
    Return a NEW draft with the body converted and the active mode flipped.

    With no target the mode toggles. Raises ConversionError if the body
    cannot be converted; the given draft is never modified.
    """
    if target is None:
        target = "lite" if draft.mode == "rich" else "rich"

    if target == draft.mode:
        return draft.model_copy()

    try:
        if target == "lite":
            body = await converter.to_markup_lite(draft.body)
        else:
            body = await converter.to_rich(draft.body)
    except ConversionError:
        logger.warning("Could not switch editor from %s to %s", draft.mode, target)
        raise

    logger.debug("Editor switched from %s to %s", draft.mode, target)
    return draft.model_copy(update={"body": body, "mode": target})
