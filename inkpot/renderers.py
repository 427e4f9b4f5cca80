"""Content converters for inkpot.

Each converter turns one kind of source into HTML. Markdown goes through
mistune with Pygments highlighting for fenced code blocks; HTML passes
through untouched.

Key classes:
- MarkdownRenderer: Markdown to HTML with heading ids and TOC collection.
- HTMLRenderer: Pass-through for HTML sources.
- RendererRegistry: Picks a converter for a path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .utils import is_html, is_markdown

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


@dataclass
class Heading:
    """A heading collected while rendering, used for tables of contents.

    Attributes:
        id: Anchor id of the heading.
        text: Heading text (may contain inline HTML).
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


def generate_heading_id(text: str) -> str:
    """Generate an anchor id from heading text.

    Tags are stripped first so ``<code>std::function</code>`` contributes
    only its text.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or "section"


class _HighlightRenderer(mistune.HTMLRenderer):
    """mistune renderer adding heading ids and Pygments highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        self.headings.append(Heading(id=heading_id, text=text, level=level))
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{lang}"' if lang else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown to HTML and collects headings."""

    source_type = "markdown"
    output_ext = ".html"

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str) -> tuple[str, list[Heading]]:
        """Render Markdown content.

        Args:
            content: Markdown source.

        Returns:
            Tuple of (HTML, headings in document order).
        """
        renderer = _HighlightRenderer()
        markdown = mistune.create_markdown(renderer=renderer, plugins=MARKDOWN_PLUGINS)
        return markdown(content), renderer.headings


class HTMLRenderer:
    """Passes HTML through unchanged."""

    source_type = "html"
    output_ext = ".html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str) -> tuple[str, list[Heading]]:
        return content, []


class RendererRegistry:
    """Registry of content converters, checked in registration order."""

    def __init__(self):
        self._renderers: list = []
        self.register(MarkdownRenderer())
        self.register(HTMLRenderer())

    def register(self, renderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Return the first converter that accepts ``path``, or None."""
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None


def markdownify(text: str) -> str:
    """Render a Markdown fragment to HTML (used by the ``markdownify`` filter)."""
    html, _ = MarkdownRenderer().render(text)
    return html


default_renderer_registry = RendererRegistry()
