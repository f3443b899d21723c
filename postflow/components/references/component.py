"""
References component - finds externally hosted assets embedded in a body.

Recognizes inline images in both authoring representations:
- rich: <img src="..."> tags
- lite: Markdown image syntax ![alt](url), plus raw <img> HTML

Invariants:
- I1: Pure and deterministic; never raises
- I2: Only absolute http(s) URLs are reported
- I3: HTML entities in attribute values are decoded before comparison
- I4: Rich bodies are read with the same HTML parser the converter uses, so
  comments and raw-text elements hide images from both
"""

from __future__ import annotations

import html
import re
from html.parser import HTMLParser
from urllib.parse import urlparse

from markdown_it.token import Token

from postflow.core.markdown import MD
from postflow.domain.entities import EditorMode

# Fallback only; the token walk below is authoritative for Markdown
MD_IMAGE_PATTERN = re.compile(r"!\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
# Every src= value, comments included; used when the HTML parser gives up
SRC_ATTR_PATTERN = re.compile(
    r"""\bsrc\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""", re.IGNORECASE
)


def is_external_url(url: str) -> bool:
    """True for absolute http/https URLs."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class _ImageSourceCollector(HTMLParser):
    """Collects <img> src values from an HTML fragment."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.sources: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag != "img":
            return
        for name, value in attrs:
            if name == "src":
                self.sources.append((value or "").strip())
                break

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)


def _img_sources(fragment: str) -> list[str]:
    collector = _ImageSourceCollector()
    try:
        collector.feed(fragment)
        collector.close()
    except AssertionError:
        # Bogus marked sections such as <![foo[ abort the parser
        for m in SRC_ATTR_PATTERN.finditer(fragment):
            value = m.group(1) or m.group(2) or m.group(3) or ""
            collector.sources.append(html.unescape(value).strip())
    return collector.sources


def _walk_tokens(tokens: list[Token], sources: list[str]) -> None:
    for token in tokens:
        if token.type == "image":
            src = token.attrGet("src")
            if isinstance(src, str):
                sources.append(src.strip())
        elif token.type in ("html_inline", "html_block"):
            sources.extend(_img_sources(token.content))
        if token.children:
            _walk_tokens(token.children, sources)


def _markdown_sources(body: str) -> list[str]:
    sources: list[str] = []
    try:
        _walk_tokens(MD.parse(body), sources)
    except Exception:
        # Best-effort: fall back to a plain scan if the parser chokes
        sources = [m.group(1) for m in MD_IMAGE_PATTERN.finditer(body)]
        sources.extend(_img_sources(body))
    return sources


def extract_asset_refs(body: object, mode: EditorMode | None = None) -> frozenset[str]:
    """
    Return the set of external asset URLs a body currently references.

    Args:
        body: Content blob in either representation. Non-strings yield an empty set.
        mode: "rich" or "lite" when the representation is known; None scans both.
    """
    if not isinstance(body, str) or not body:
        return frozenset()

    if mode == "rich":
        candidates = _img_sources(body)
    elif mode == "lite":
        candidates = _markdown_sources(body)
    else:
        candidates = _img_sources(body) + _markdown_sources(body)

    return frozenset(url for url in candidates if is_external_url(url))
