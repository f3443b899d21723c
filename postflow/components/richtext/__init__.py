"""
Richtext component - rich (HTML) and lite (Markdown) body conversion.
"""

from ._impl import escape_markdown_text, html_to_markdown, markdown_image, markdown_to_html
from .component import (
    ContentConverter,
    ConverterPort,
    switch_mode,
    to_canonical,
)

__all__ = [
    # Entry points
    "ContentConverter",
    "switch_mode",
    "to_canonical",
    # Ports
    "ConverterPort",
    # Helpers
    "escape_markdown_text",
    "html_to_markdown",
    "markdown_image",
    "markdown_to_html",
]
