"""
Richtext conversion internals.

Rich bodies are the HTML produced by the rich-text editor (paragraphs,
headings, emphasis, lists, blockquotes, code blocks, links, images).
Lite bodies are CommonMark with raw HTML allowed.

Key behaviors:
- HTML -> Markdown is a streaming walk over HTMLParser events
- Text is backslash-escaped so it renders back as the same text
- Image URLs are never rewritten; when a URL cannot be expressed as a
  Markdown destination the image is written as raw <img> HTML instead
- Markdown -> HTML is rendered by markdown-it with link normalization off
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser

from postflow.core.errors import ConversionError
from postflow.core.markdown import MD

VOID_TAGS = frozenset(
    ["area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"]
)
HEADING_TAGS = {f"h{i}": i for i in range(1, 7)}
INLINE_MARKERS = {
    "strong": "**",
    "b": "**",
    "em": "*",
    "i": "*",
    "s": "~~",
    "strike": "~~",
    "del": "~~",
}

UNTERMINATED_TAG_PATTERN = re.compile(r"<[a-zA-Z/!][^<>]*$")
# Characters that need a backslash to stay literal text in CommonMark
MD_ESCAPE_PATTERN = re.compile(r"([\\`*_\[\]<>&!~|])")
# Line starts that would otherwise open a block construct
MD_LINE_START_PATTERN = re.compile(
    r"^(#{1,6}(?=\s|$)|[-+](?=\s|$)|\d+(?=[.)](?:\s|$))|=+\s*$|-+\s*$)"
)
UNSAFE_DESTINATION_PATTERN = re.compile(r"[\s()<>\\\"']|&[#\w]+;")


def escape_markdown_text(text: str) -> str:
    return MD_ESCAPE_PATTERN.sub(r"\\\1", text)


def _escape_line_start(line: str) -> str:
    match = MD_LINE_START_PATTERN.match(line)
    if not match:
        return line
    if match.group(1)[0].isdigit():
        # "1." -> "1\." keeps the number but not the list
        end = match.end()
        return line[:end] + "\\" + line[end:]
    return "\\" + line


def _raw_img(src: str, alt: str) -> str:
    return f'<img src="{html.escape(src)}" alt="{html.escape(alt)}">'


def markdown_image(src: str, alt: str) -> str:
    """Markdown for an image, falling back to raw HTML for awkward URLs."""
    if not src or UNSAFE_DESTINATION_PATTERN.search(src):
        return _raw_img(src, alt)
    return f"![{escape_markdown_text(alt)}]({src})"


def _link_destination(href: str) -> str:
    if re.search(r"[\s()]", href) and not re.search(r"[<>]", href):
        return f"<{href}>"
    return href.replace("(", "%28").replace(")", "%29")


@dataclass
class _Block:
    lines: list[str]
    quote: str
    list_item: bool


@dataclass
class _ListState:
    ordered: bool
    counter: int = 0
    indent: int = 2


@dataclass
class _LinkState:
    href: str
    start: int


@dataclass
class _Writer:
    blocks: list[_Block] = field(default_factory=list)
    inline: list[str] = field(default_factory=list)
    quote_depth: int = 0
    lists: list[_ListState] = field(default_factory=list)
    heading: int = 0
    pre_depth: int = 0
    code_depth: int = 0
    code_start: int = 0
    code_reopen: bool = False
    in_item: bool = False
    item_marker: str = ""
    links: list[_LinkState] = field(default_factory=list)

    def _list_indent(self, include_current: bool) -> str:
        levels = self.lists if include_current else self.lists[:-1]
        return " " * sum(level.indent for level in levels)

    def flush(self) -> None:
        text = "".join(self.inline)
        self.inline = []

        if self.pre_depth:
            body = text.strip("\n")
            if not body:
                return
            lines = ["```", *body.split("\n"), "```"]
        else:
            text = text.strip()
            if not text:
                return
            lines = [_escape_line_start(line.strip()) for line in text.split("\n")]
            if self.heading:
                lines[0] = "#" * self.heading + " " + lines[0]

        quote = "> " * self.quote_depth
        is_item = bool(self.lists) and self.in_item
        if is_item:
            first = self._list_indent(include_current=False) + self.item_marker
            rest = self._list_indent(include_current=True)
            lines = [first + lines[0]] + [rest + line for line in lines[1:]]
            # Continuation paragraphs inside the same item
            self.item_marker = " " * len(self.item_marker)
        elif self.lists:
            indent = self._list_indent(include_current=True)
            lines = [indent + line for line in lines]

        self.blocks.append(
            _Block(lines=[quote + line for line in lines], quote=quote, list_item=is_item)
        )

    def render(self) -> str:
        parts: list[str] = []
        previous: _Block | None = None
        for block in self.blocks:
            if previous is not None:
                if previous.list_item and block.list_item:
                    parts.append("\n")
                else:
                    common = block.quote if block.quote == previous.quote else ""
                    parts.append("\n" + common.rstrip() + "\n")
            parts.append("\n".join(block.lines))
            previous = block
        return "".join(parts).rstrip() + ("\n" if parts else "")


class HtmlToMarkdown(HTMLParser):
    """Streaming HTML -> Markdown writer."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._open: list[str] = []
        self._out = _Writer()

    # --- structure checks ---

    def _push(self, tag: str) -> None:
        if tag not in VOID_TAGS:
            self._open.append(tag)

    def _pop(self, tag: str) -> None:
        if tag in VOID_TAGS:
            return
        if tag not in self._open:
            raise ConversionError(f"Unexpected closing tag </{tag}>", code="malformed_rich_text")
        while self._open:
            if self._open.pop() == tag:
                break

    # --- parser events ---

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        out = self._out
        attr_map = {name: value or "" for name, value in attrs}
        self._push(tag)

        if tag in HEADING_TAGS:
            out.flush()
            out.heading = HEADING_TAGS[tag]
        elif tag in ("p", "div"):
            out.flush()
        elif tag == "blockquote":
            out.flush()
            out.quote_depth += 1
        elif tag in ("ul", "ol"):
            out.flush()
            out.in_item = False
            out.lists.append(_ListState(ordered=tag == "ol"))
        elif tag == "li":
            out.flush()
            out.in_item = True
            state = out.lists[-1] if out.lists else None
            # Some editors mark bullets on the item instead of the list
            if state is None:
                out.item_marker = "- "
            else:
                if attr_map.get("data-list") == "bullet" or not state.ordered:
                    out.item_marker = "- "
                else:
                    state.counter += 1
                    out.item_marker = f"{state.counter}. "
                state.indent = len(out.item_marker)
        elif tag == "pre":
            out.flush()
            out.pre_depth += 1
        elif tag == "code" and not out.pre_depth:
            out.code_start = len(out.inline)
            out.inline.append("`")
            out.code_depth += 1
        elif tag in INLINE_MARKERS and not out.pre_depth:
            out.inline.append(INLINE_MARKERS[tag])
        elif tag == "u" and not out.pre_depth:
            out.inline.append("<u>")
        elif tag == "a" and not out.pre_depth:
            out.links.append(_LinkState(href=attr_map.get("href", ""), start=len(out.inline)))
            out.inline.append("[")
        elif tag == "img":
            self._image(attr_map.get("src", "").strip(), attr_map.get("alt", ""))
        elif tag == "br":
            out.inline.append("\n" if out.pre_depth else "\\\n")
        elif tag == "hr":
            out.flush()
            quote = "> " * out.quote_depth
            out.blocks.append(_Block(lines=[quote + "---"], quote=quote, list_item=False))

    def _image(self, src: str, alt: str) -> None:
        out = self._out
        image = markdown_image(src, alt)
        if out.pre_depth:
            # Code blocks are literal; the image goes between two fences
            out.flush()
            pre_depth, out.pre_depth = out.pre_depth, 0
            out.inline.append(image)
            out.flush()
            out.pre_depth = pre_depth
        elif out.code_depth and not out.code_reopen:
            # Close the code span around the image and reopen it for later text
            if len(out.inline) == out.code_start + 1:
                out.inline.pop()
            else:
                out.inline.append("`")
            out.inline.append(image)
            out.code_reopen = True
        else:
            out.inline.append(image)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)
        if tag not in VOID_TAGS:
            self.handle_endtag(tag)

    def handle_endtag(self, tag: str) -> None:
        out = self._out
        self._pop(tag)

        if tag in HEADING_TAGS:
            out.flush()
            out.heading = 0
        elif tag in ("p", "div"):
            out.flush()
        elif tag == "blockquote":
            out.flush()
            out.quote_depth = max(0, out.quote_depth - 1)
        elif tag in ("ul", "ol"):
            out.flush()
            if out.lists:
                out.lists.pop()
            out.in_item = bool(out.lists)
            if not out.lists and out.blocks:
                # Blank line after the outermost list so the next one starts fresh
                out.blocks[-1].list_item = False
        elif tag == "li":
            out.flush()
            out.in_item = False
        elif tag == "pre":
            out.flush()
            out.pre_depth = max(0, out.pre_depth - 1)
        elif tag == "code" and not out.pre_depth:
            out.code_depth = max(0, out.code_depth - 1)
            if out.code_reopen:
                out.code_reopen = False
            else:
                out.inline.append("`")
        elif tag in INLINE_MARKERS and not out.pre_depth:
            out.inline.append(INLINE_MARKERS[tag])
        elif tag == "u" and not out.pre_depth:
            out.inline.append("</u>")
        elif tag == "a" and not out.pre_depth and out.links:
            link = out.links.pop()
            if link.href:
                out.inline.append(f"]({_link_destination(link.href)})")
            else:
                # No target: keep only the text
                del out.inline[link.start]

    def handle_data(self, data: str) -> None:
        out = self._out
        if out.pre_depth:
            out.inline.append(data)
            return
        collapsed = re.sub(r"\s+", " ", data)
        if out.code_depth:
            if out.code_reopen and collapsed:
                out.code_reopen = False
                out.inline.append("`")
            # Backslashes are literal inside code spans
            out.inline.append(collapsed)
            return
        if collapsed.strip() or (out.inline and collapsed):
            out.inline.append(escape_markdown_text(collapsed))

    def result(self) -> str:
        self._out.flush()
        return self._out.render()


def html_to_markdown(rich: object) -> str:
    """
    Convert a rich (HTML) body to Markdown.

    Raises:
        ConversionError: for non-string input or malformed HTML
    """
    if not isinstance(rich, str):
        raise ConversionError(
            f"Rich body must be text, got {type(rich).__name__}", code="malformed_rich_text"
        )
    if UNTERMINATED_TAG_PATTERN.search(rich):
        raise ConversionError(
            "Rich body ends inside an unterminated tag", code="malformed_rich_text"
        )

    writer = HtmlToMarkdown()
    try:
        writer.feed(rich)
        writer.close()
    except AssertionError as e:
        # Raised by HTMLParser for bogus marked sections such as <![foo[
        raise ConversionError(f"Unparseable rich body: {e}", code="malformed_rich_text") from e
    return writer.result()


def markdown_to_html(lite: object) -> str:
    """
    Render a lite (Markdown) body to HTML.

    Raises:
        ConversionError: for non-string input or NUL characters
    """
    if not isinstance(lite, str):
        raise ConversionError(
            f"Lite body must be text, got {type(lite).__name__}", code="malformed_markup_lite"
        )
    if "\x00" in lite:
        raise ConversionError("Lite body contains NUL characters", code="malformed_markup_lite")
    if not lite.strip():
        return ""
    return MD.render(lite)
