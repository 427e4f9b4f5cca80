"""Content discovery for inkpot.

This module walks a Jekyll-style source tree and turns it into documents:
posts from ``_posts/``, drafts from ``_drafts/``, pages (any Markdown or
HTML file with front matter) and static files (everything else).

Key classes:
- Document: Dataclass representing a post, draft or page.
- SourceFilter: Decides which paths take part in the build.
- LayoutResolver: Picks the layout for a document.
- PermalinkBuilder: Derives URLs from permalink styles and patterns.
- DocumentBuilder: Builds a Document from a source file.
- SiteLoader: Walks the tree and returns a SiteContent.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import DefaultsResolver
from .extractors import CompositeMetadataExtractor
from .renderers import Heading, RendererRegistry, default_renderer_registry
from .utils import (
    as_list,
    has_frontmatter,
    is_convertible,
    slugify,
    split_post_name,
    strip_date_prefix,
)

PERMALINK_STYLES = {
    "date": "/:categories/:year/:month/:day/:title:output_ext",
    "pretty": "/:categories/:year/:month/:day/:title/",
    "ordinal": "/:categories/:year/:y_day/:title:output_ext",
    "none": "/:categories/:title:output_ext",
}

KIND_DIRECTORIES = {"_posts": "post", "_drafts": "draft"}

# Front matter keys that must not shadow computed document attributes.
_RESERVED_KEYS = {"content", "url", "path", "next", "previous", "draft", "toc"}


@dataclass
class Document:
    """A renderable source file: post, draft or page.

    ``content`` and ``excerpt`` hold source text until the template engine
    converts them, after which they hold HTML.

    Attributes:
        title: Human-readable title.
        body: Source text after the front matter.
        content: Converted HTML (empty until converted).
        excerpt: Excerpt source, then HTML.
        description: Plain-text summary (<= 160 chars).
        url: URL path of the rendered document.
        slug: URL slug.
        date: Publication date (naive).
        categories: Categories, path-derived ones first.
        tags: Tags.
        draft: True for files from ``_drafts``.
        published: False when front matter says ``published: false``.
        layout: Layout name, or None to render without a layout.
        kind: ``post``, ``draft`` or ``page``.
        path: Absolute source path.
        relative_path: Source path relative to the site root.
        source_type: ``markdown`` or ``html``.
        frontmatter: Front matter merged over configured defaults.
        toc: Headings collected during conversion.
    """

    title: str
    body: str
    content: str
    excerpt: str
    description: str
    url: str
    slug: str
    date: datetime
    categories: list[str]
    tags: list[str]
    draft: bool
    published: bool
    layout: str | None
    kind: str
    path: Path
    relative_path: Path
    source_type: str
    frontmatter: dict[str, Any] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)
    next: Document | None = field(default=None, repr=False, compare=False)
    previous: Document | None = field(default=None, repr=False, compare=False)

    @property
    def is_post(self) -> bool:
        return self.kind in ("post", "draft")

    @property
    def id(self) -> str:
        return self.url.rstrip("/").removesuffix(".html") or "/"

    def to_context(self, with_neighbours: bool = True) -> dict[str, Any]:
        """Return the ``page`` variable exposed to templates.

        Front matter keys come first so that computed attributes win for
        reserved names.
        """
        ctx = {k: v for k, v in self.frontmatter.items() if k not in _RESERVED_KEYS}
        ctx.update(
            title=self.title,
            content=self.content,
            excerpt=self.excerpt,
            description=self.description,
            url=self.url,
            id=self.id,
            slug=self.slug,
            date=self.date,
            categories=self.categories,
            tags=self.tags,
            draft=self.draft,
            layout=self.layout,
            kind=self.kind,
            path=self.relative_path.as_posix(),
            toc=self.toc,
        )
        if with_neighbours:
            ctx["next"] = self.next.to_context(False) if self.next else None
            ctx["previous"] = self.previous.to_context(False) if self.previous else None
        return ctx


@dataclass
class StaticFile:
    """A file copied to the destination without rendering."""

    path: Path
    relative_path: Path

    @property
    def url(self) -> str:
        return "/" + self.relative_path.as_posix()


@dataclass
class SiteContent:
    """Everything discovered in the source tree.

    Attributes:
        posts: Posts (and drafts when requested), unsorted.
        pages: Pages.
        static_files: Files copied verbatim.
        warnings: Human-readable messages about skipped files.
    """

    posts: list[Document] = field(default_factory=list)
    pages: list[Document] = field(default_factory=list)
    static_files: list[StaticFile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def documents(self) -> list[Document]:
        return self.posts + self.pages


class SourceFilter:
    """Decides whether a source path is part of the site.

    Names starting with ``_`` or ``.`` are skipped unless listed in
    ``include``. Entries of ``exclude`` match either a name anywhere in the
    tree or a path relative to the root; shell wildcards are allowed.
    """

    def __init__(self, root: Path, config: dict[str, Any], destination: Path):
        self.root = root
        self.include = set(as_list(config.get("include")))
        self.exclude = [e.strip("/") for e in as_list(config.get("exclude"))]
        # The configured destination stays excluded when building elsewhere.
        self.destinations = {destination, root / str(config.get("destination", "_site"))}

    def is_excluded(self, path: Path) -> bool:
        for generated in self.destinations:
            if path == generated or generated in path.parents:
                return True
        rel = path.relative_to(self.root)
        posix = rel.as_posix()
        for pattern in self.exclude:
            if fnmatch.fnmatch(posix, pattern) or fnmatch.fnmatch(posix, f"{pattern}/*"):
                return True
            if any(fnmatch.fnmatch(part, pattern) for part in rel.parts):
                return True
        return False

    def is_hidden(self, path: Path) -> bool:
        return path.name.startswith(("_", ".")) and path.name not in self.include


class LayoutResolver:
    """Resolves the layout name for a document.

    An explicit ``layout`` key in front matter wins; ``null``, ``none`` and
    ``false`` mean no layout. Otherwise posts and drafts use ``post`` and
    pages use ``page`` when such a layout exists, then ``default``.
    """

    SUFFIXES = (".html", ".html.jinja", ".jinja")

    def __init__(self, root: Path):
        self.layout_dir = root / "_layouts"

    def exists(self, name: str) -> bool:
        return self.find(name) is not None

    def find(self, name: str) -> Path | None:
        """Return the layout file for ``name``, or None."""
        for suffix in ("", *self.SUFFIXES):
            candidate = self.layout_dir / f"{name}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, frontmatter: dict[str, Any], kind: str) -> str | None:
        if "layout" in frontmatter:
            layout = frontmatter["layout"]
            if layout in (None, False) or str(layout).lower() in ("none", "null", ""):
                return None
            return str(layout)
        preferred = "post" if kind in ("post", "draft") else "page"
        for candidate in (preferred, "default"):
            if self.exists(candidate):
                return candidate
        return None


class PermalinkBuilder:
    """Derives document URLs.

    Posts follow the configured ``permalink`` (a named style or a pattern with
    ``:year``, ``:month``, ``:i_month``, ``:day``, ``:i_day``, ``:short_year``,
    ``:y_day``, ``:title``, ``:slug``, ``:categories``, ``:output_ext``).
    Pages map to their path, ``.html`` or trailing-slash depending on the
    style. A ``permalink`` in front matter overrides both.
    """

    def __init__(self, permalink: str = "date"):
        self.style = str(permalink or "date")
        self.pattern = PERMALINK_STYLES.get(self.style, self.style)

    @property
    def pretty_pages(self) -> bool:
        return self.pattern.endswith("/")

    def for_post(self, slug: str, date: datetime, categories: list[str], frontmatter: dict) -> str:
        pattern = str(frontmatter.get("permalink") or self.pattern)
        return self.expand(pattern, self._post_placeholders(slug, date, categories))

    def for_page(self, relative_path: Path, frontmatter: dict) -> str:
        explicit = frontmatter.get("permalink")
        if explicit:
            return self.expand(str(explicit), {})
        folder = relative_path.parent.as_posix()
        folder = "" if folder == "." else folder
        stem = relative_path.stem
        if stem == "index":
            return self.expand(f"/{folder}/", {})
        if self.pretty_pages:
            return self.expand(f"/{folder}/{stem}/", {})
        return self.expand(f"/{folder}/{stem}.html", {})

    def _post_placeholders(self, slug: str, date: datetime, categories: list[str]) -> dict[str, str]:
        return {
            "year": f"{date.year:04d}",
            "short_year": f"{date.year % 100:02d}",
            "month": f"{date.month:02d}",
            "i_month": str(date.month),
            "day": f"{date.day:02d}",
            "i_day": str(date.day),
            "y_day": f"{date.timetuple().tm_yday:03d}",
            "hour": f"{date.hour:02d}",
            "minute": f"{date.minute:02d}",
            "second": f"{date.second:02d}",
            "title": slug,
            "slug": slug,
            "categories": "/".join(slugify(c) for c in categories),
        }

    @staticmethod
    def expand(pattern: str, values: dict[str, str]) -> str:
        """Substitute placeholders and normalize slashes.

        Longer placeholder names are replaced first so ``:i_month`` is not
        eaten by ``:month``.
        """
        url = pattern.replace(":output_ext", ".html")
        for key in sorted(values, key=len, reverse=True):
            url = url.replace(f":{key}", values[key])
        while "//" in url:
            url = url.replace("//", "/")
        if not url.startswith("/"):
            url = f"/{url}"
        return url


class DocumentBuilder:
    """Builds Document objects from source files."""

    def __init__(
        self,
        root: Path,
        config: dict[str, Any],
        renderer_registry: RendererRegistry | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.root = root
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.metadata_extractor = metadata_extractor or CompositeMetadataExtractor(
            excerpt_separator=str(config.get("excerpt_separator", "\n\n"))
        )
        self.defaults = DefaultsResolver(config.get("defaults"))
        self.layout_resolver = LayoutResolver(root)
        self.permalinks = PermalinkBuilder(config.get("permalink", "date"))

    def build(self, path: Path, kind: str, path_categories: list[str] | None = None) -> Document:
        """Build a Document.

        Args:
            path: Source file.
            kind: ``post``, ``draft`` or ``page``.
            path_categories: Categories implied by folders above ``_posts``.

        Raises:
            FrontMatterError: If the front matter cannot be parsed.
        """
        rel = path.relative_to(self.root)
        raw = path.read_text(encoding="utf-8")
        defaults = self.defaults.values_for(rel, f"{kind}s")
        metadata = self.metadata_extractor.extract(raw, path, defaults)
        frontmatter = metadata["frontmatter"]

        renderer = self.renderer_registry.get_renderer(path)
        source_type = renderer.source_type if renderer else "html"

        categories = as_list((path_categories or []) + metadata["categories"])
        if kind == "page":
            slug = slugify(path.stem)
            url = self.permalinks.for_page(rel, frontmatter)
        else:
            slug = slugify(str(frontmatter.get("slug") or strip_date_prefix(path.stem)))
            url = self.permalinks.for_post(slug, metadata["date"], categories, frontmatter)

        return Document(
            title=metadata["title"],
            body=metadata["body"],
            content="",
            excerpt=metadata["excerpt"],
            description=metadata["description"],
            url=url,
            slug=slug,
            date=metadata["date"],
            categories=categories,
            tags=metadata["tags"],
            draft=kind == "draft",
            published=frontmatter.get("published", True) is not False,
            layout=self.layout_resolver.resolve(frontmatter, kind),
            kind=kind,
            path=path,
            relative_path=rel,
            source_type=source_type,
            frontmatter=frontmatter,
        )


class SiteLoader:
    """Walks the source tree and collects documents and static files.

    Attributes:
        root: Site source root.
        config: Loaded site configuration.
        destination: Output directory, always skipped.
    """

    def __init__(
        self,
        root: Path,
        config: dict[str, Any],
        destination: Path | None = None,
        builder: DocumentBuilder | None = None,
    ):
        self.root = root
        self.config = config
        self.destination = destination or root / str(config.get("destination", "_site"))
        self.filter = SourceFilter(root, config, self.destination)
        self.builder = builder or DocumentBuilder(root, config)

    def discover(
        self,
        include_drafts: bool = False,
        include_future: bool | None = None,
        now: datetime | None = None,
    ) -> SiteContent:
        """Collect the site's content.

        Args:
            include_drafts: Also load files from ``_drafts``.
            include_future: Keep posts dated after ``now``; defaults to the
                ``future`` config value.
            now: Reference time for future filtering.

        Returns:
            SiteContent with posts, pages, static files and warnings.
        """
        if include_future is None:
            include_future = bool(self.config.get("future"))
        now = now or datetime.now()
        content = SiteContent()
        self._walk(self.root, [], content, include_drafts)

        keep_unpublished = bool(self.config.get("unpublished"))
        content.posts = [
            doc
            for doc in content.posts
            if (doc.published or keep_unpublished)
            and (include_future or doc.draft or doc.date <= now)
        ]
        content.pages = [doc for doc in content.pages if doc.published or keep_unpublished]
        return content

    def _walk(
        self, directory: Path, categories: list[str], content: SiteContent, include_drafts: bool
    ) -> None:
        for entry in sorted(directory.iterdir()):
            if self.filter.is_excluded(entry):
                continue
            if entry.is_dir():
                kind = KIND_DIRECTORIES.get(entry.name)
                if kind == "post" or (kind == "draft" and include_drafts):
                    self._collect_posts(entry, kind, categories, content)
                elif kind is None and not self.filter.is_hidden(entry):
                    self._walk(entry, categories + [entry.name], content, include_drafts)
                continue
            if self.filter.is_hidden(entry):
                continue
            if is_convertible(entry) and has_frontmatter(entry):
                content.pages.append(self.builder.build(entry, "page"))
            else:
                content.static_files.append(
                    StaticFile(path=entry, relative_path=entry.relative_to(self.root))
                )

    def _collect_posts(
        self, directory: Path, kind: str, categories: list[str], content: SiteContent
    ) -> None:
        for path in sorted(directory.rglob("*")):
            if not path.is_file() or path.name.startswith(".") or not is_convertible(path):
                continue
            if self.filter.is_excluded(path):
                continue
            if kind == "post" and split_post_name(path.stem) is None:
                content.warnings.append(
                    f"Skipping {path.relative_to(self.root)}: post filenames must look like YYYY-MM-DD-title.md"
                )
                continue
            content.posts.append(self.builder.build(path, kind, categories))


def output_path(destination: Path, url: str) -> Path:
    """Map a URL to the file it is written to under ``destination``.

    ``/a/`` and extension-less ``/a`` become ``a/index.html``; ``/a.html``
    (or any URL with an extension) is written as-is.
    """
    rel = url.lstrip("/")
    if not rel or url.endswith("/") or not Path(rel).suffix:
        return destination / rel / "index.html"
    return destination / rel
