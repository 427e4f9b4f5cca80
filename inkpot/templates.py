"""Template rendering engine for inkpot.

Documents are rendered in two passes, the way Jekyll does it:

1. ``convert`` renders the body as a Jinja template (unless disabled) and
   converts it to HTML, so every post's ``content`` and ``excerpt`` are
   available to every layout.
2. ``render_document`` wraps the converted content in its layout chain.
   Layouts live in ``_layouts/`` and may name a parent layout in their own
   front matter.

Key classes:
- FrontMatterLoader: Jinja loader that strips front matter from templates.
- TemplateEngine: Holds the Jinja environment and the ``site`` context.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape
from pygments.formatters import HtmlFormatter

from .collections import PostCollection, TaxonomyIndex
from .content import Document, LayoutResolver, SiteContent
from .extractors import extract_frontmatter
from .renderers import Heading, RendererRegistry, default_renderer_registry, markdownify
from .utils import count_words, escape_xml, join_url, slugify, xmlschema

__all__ = ["FrontMatterLoader", "LayoutError", "TemplateEngine", "render_toc"]

_MAX_LAYOUT_DEPTH = 20


class LayoutError(Exception):
    """Raised when a layout is missing or layouts form a cycle."""


class FrontMatterLoader(FileSystemLoader):
    """FileSystemLoader that hides front matter from Jinja.

    Layouts and includes may start with a YAML block; Jinja only sees what
    follows it.
    """

    def get_source(self, environment, template):
        source, filename, uptodate = super().get_source(environment, template)
        try:
            _, body = extract_frontmatter(source)
        except ValueError:
            body = source
        return body, filename, uptodate


def render_toc(page: Any) -> Markup:
    """Render a table of contents as nested ``<ul>`` lists.

    Accepts a Document or the ``page`` context dictionary.
    """
    headings = page.get("toc") if isinstance(page, dict) else getattr(page, "toc", None)
    if not headings:
        return Markup("")
    return _render_toc_from_headings(headings)


def _render_toc_from_headings(headings: list[Heading]) -> Markup:
    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        else:
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(f'<li><a href="#{escape(heading.id)}">{Markup(heading.text)}</a>')

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


class TemplateEngine:
    """Jinja2 engine with Jekyll-flavoured filters and context.

    Attributes:
        root: Site source root.
        config: Site configuration.
        env: Jinja environment, loading from ``_includes/`` and the root.
        site: The ``site`` variable passed to every template.
    """

    def __init__(
        self,
        root: Path,
        config: dict[str, Any],
        data: dict[str, Any] | None = None,
        root_url: str | None = None,
        renderer_registry: RendererRegistry | None = None,
    ):
        """Initialize the template engine.

        Args:
            root: Site source root.
            config: Site configuration.
            data: Contents of ``_data/``.
            root_url: Overrides ``url`` (the dev server uses its own address).
        """
        self.root = root
        self.config = config
        self.root_url = (root_url or str(config.get("url") or "")).rstrip("/")
        self.baseurl = "/" + str(config.get("baseurl") or "").strip("/")
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.layouts = LayoutResolver(root)
        self.env = Environment(
            loader=FrontMatterLoader([root / "_includes", root]),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self.site: dict[str, Any] = {}
        self.update_site(SiteContent(), data or {})
        self._install_filters()

    def _install_filters(self) -> None:
        self.env.filters["relative_url"] = self.relative_url
        self.env.filters["absolute_url"] = self.absolute_url
        self.env.filters["date_to_xmlschema"] = xmlschema
        self.env.filters["date_to_string"] = lambda d: d.strftime("%d %b %Y")
        self.env.filters["date_to_long_string"] = lambda d: d.strftime("%d %B %Y")
        self.env.filters["xml_escape"] = lambda s: Markup(escape_xml("" if s is None else s))
        self.env.filters["markdownify"] = lambda s: Markup(markdownify(str(s or "")))
        self.env.filters["slugify"] = lambda s: slugify(str(s))
        self.env.filters["number_of_words"] = lambda s: count_words(str(s or ""))
        self.env.globals["render_toc"] = render_toc
        self.env.globals["pygments_css"] = self.pygments_css

    @staticmethod
    def pygments_css(style: str = "default") -> Markup:
        """Return the Pygments stylesheet for ``.highlight`` blocks."""
        return Markup(HtmlFormatter(style=style).get_style_defs(".highlight"))

    def relative_url(self, path: str) -> str:
        """Prefix a site path with ``baseurl``."""
        if str(path).startswith(("http://", "https://", "//")):
            return path
        base = "" if self.baseurl == "/" else self.baseurl
        return join_url(base, str(path))

    def absolute_url(self, path: str) -> str:
        """Prefix a site path with ``url`` and ``baseurl``."""
        if str(path).startswith(("http://", "https://", "//")):
            return path
        return f"{self.root_url}{self.relative_url(path)}"

    def update_site(self, content: SiteContent, data: dict[str, Any]) -> None:
        """Rebuild the ``site`` variable from discovered content."""
        posts = PostCollection(content.posts)
        site = dict(self.config)
        site.update(
            url=self.root_url,
            time=datetime.now(),
            posts=posts,
            pages=list(content.pages),
            documents=content.documents,
            static_files=list(content.static_files),
            categories=TaxonomyIndex.from_posts(posts, "categories"),
            tags=TaxonomyIndex.from_posts(posts, "tags"),
            data=data,
        )
        self.site = site
        self.env.globals["site"] = site

    def _context(self, doc: Document) -> dict[str, Any]:
        return {"site": self.site, "page": doc.to_context()}

    def convert(self, doc: Document) -> None:
        """Fill ``doc.content``, ``doc.excerpt`` and ``doc.toc`` with HTML.

        Raises:
            jinja2.TemplateError: If the body is not a valid template.
        """
        body = self._render_source(doc, doc.body)
        excerpt = self._render_source(doc, doc.excerpt) if doc.excerpt else ""
        renderer = self.renderer_registry.get_renderer(doc.path)
        if renderer is None:
            doc.content, doc.excerpt = Markup(body), Markup(excerpt)
            return
        html, doc.toc = renderer.render(body)
        doc.content = Markup(html)
        doc.excerpt = Markup(renderer.render(excerpt)[0]) if excerpt else Markup("")

    def _render_source(self, doc: Document, source: str) -> str:
        if not self._jinja_enabled(doc):
            return source
        return self.env.from_string(source).render(self._context(doc))

    def _jinja_enabled(self, doc: Document) -> bool:
        flag = doc.frontmatter.get("render_with_jinja")
        if flag is not None:
            return bool(flag)
        return bool(self.config.get("jinja_in_content", True))

    def render_document(self, doc: Document) -> str:
        """Wrap converted content in the document's layout chain.

        Raises:
            LayoutError: If a layout is missing or the chain loops.
        """
        html = doc.content
        layout_name = doc.layout
        seen: list[str] = []
        while layout_name:
            if layout_name in seen or len(seen) >= _MAX_LAYOUT_DEPTH:
                chain = " -> ".join(seen + [layout_name])
                raise LayoutError(f"Layout cycle detected: {chain}")
            seen.append(layout_name)
            path = self.layouts.find(layout_name)
            if path is None:
                raise LayoutError(f"Layout '{layout_name}' not found in _layouts/")
            layout_meta, _ = extract_frontmatter(path.read_text(encoding="utf-8"))
            template = self.env.get_template(path.relative_to(self.root).as_posix())
            context = self._context(doc)
            html = template.render(content=Markup(html), layout=layout_meta, **context)
            parent = layout_meta.get("layout")
            layout_name = str(parent) if parent else None
        return html

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string with ``site`` available."""
        return self.env.from_string(template).render(**context)
