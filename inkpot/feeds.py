"""Feed generation for inkpot.

Generates the Atom feed (``feed.xml``, as jekyll-feed does) and
``sitemap.xml`` from the ``site`` context after documents are rendered.

Classes:
    FeedGenerator: Base class for generated XML files.
    AtomFeedGenerator: Atom 1.0 feed of the newest posts.
    SitemapGenerator: sitemaps.org sitemap of posts and pages.
    FeedRegistry: Runs all registered generators.

Functions:
    create_default_feed_registry: Registry configured from site config.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from .content import Document
from .utils import escape_xml, xmlschema


class FeedGenerator(ABC):
    """Base class for feed generators.

    Subclasses return the file content from ``generate`` or None when the
    site lacks what the feed needs (usually an absolute ``url``).
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        ...

    @abstractmethod
    def generate(self, site: dict[str, Any]) -> str | None:
        ...

    def write(self, output_dir: Path, site: dict[str, Any]) -> bool:
        """Generate and write the feed; return False if skipped."""
        content = self.generate(site)
        if content is None:
            return False
        output_path = output_dir / self.filename.lstrip("/")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        return True


def _site_base(site: dict[str, Any]) -> str:
    url = str(site.get("url") or "").rstrip("/")
    baseurl = str(site.get("baseurl") or "").strip("/")
    if not url:
        return ""
    return f"{url}/{baseurl}" if baseurl else url


def _published_posts(site: dict[str, Any]) -> list[Document]:
    return [p for p in site.get("posts", []) if not p.draft]


class AtomFeedGenerator(FeedGenerator):
    """Atom feed of the newest published posts.

    Uses ``feed.path`` (default ``feed.xml``) and ``feed.limit`` (default 20)
    from the configuration. Drafts never appear in the feed.
    """

    def __init__(self, path: str = "feed.xml", limit: int = 20):
        self._path = path
        self.limit = limit

    @property
    def filename(self) -> str:
        return self._path

    def generate(self, site: dict[str, Any]) -> str | None:
        base = _site_base(site)
        if not base:
            return None
        posts = _published_posts(site)[: self.limit]
        title = escape_xml(site.get("title") or "Feed")
        updated = max((p.date for p in posts), default=datetime.now())
        lines = [
            '<?xml version="1.0" encoding="utf-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"<title>{title}</title>",
            f'<link href="{escape_xml(base)}/{escape_xml(self.filename)}" rel="self" type="application/atom+xml"/>',
            f'<link href="{escape_xml(base)}/" rel="alternate" type="text/html"/>',
            f"<updated>{xmlschema(updated)}</updated>",
            f"<id>{escape_xml(base)}/</id>",
        ]
        if site.get("description"):
            lines.append(f"<subtitle>{escape_xml(site['description'])}</subtitle>")
        author = site.get("author")
        if isinstance(author, dict):
            author = author.get("name")
        if author:
            lines.append(f"<author><name>{escape_xml(author)}</name></author>")
        for post in posts:
            lines.extend(self._entry(post, base))
        lines.append("</feed>")
        return "\n".join(lines) + "\n"

    def _entry(self, post: Document, base: str) -> list[str]:
        link = escape_xml(f"{base}{post.url}")
        entry = [
            "<entry>",
            f"<title>{escape_xml(post.title)}</title>",
            f'<link href="{link}" rel="alternate" type="text/html"/>',
            f"<id>{link}</id>",
            f"<published>{xmlschema(post.date)}</published>",
            f"<updated>{xmlschema(post.date)}</updated>",
        ]
        for category in post.categories + post.tags:
            entry.append(f'<category term="{escape_xml(category)}"/>')
        summary = post.excerpt or post.description
        if summary:
            entry.append(f'<summary type="html">{escape_xml(summary)}</summary>')
        entry.append(f'<content type="html">{escape_xml(post.content)}</content>')
        entry.append("</entry>")
        return entry


class SitemapGenerator(FeedGenerator):
    """sitemap.xml listing published posts and pages."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, site: dict[str, Any]) -> str | None:
        base = _site_base(site)
        if not base:
            return None
        documents: Iterable[Document] = _published_posts(site) + [
            p for p in site.get("pages", []) if p.frontmatter.get("sitemap", True) is not False
        ]
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for doc in documents:
            loc = escape_xml(f"{base}{doc.url}")
            lastmod = doc.date.strftime("%Y-%m-%d")
            lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class FeedRegistry:
    """Runs every registered feed generator."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(self, output_dir: Path, site: dict[str, Any]) -> list[str]:
        """Write all feeds; return the filenames written."""
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, site):
                generated.append(generator.filename)
        return generated


def create_default_feed_registry(config: dict[str, Any]) -> FeedRegistry:
    """Create a registry with the Atom feed and, unless disabled, the sitemap."""
    registry = FeedRegistry()
    feed = config.get("feed", {})
    if feed is not False:
        feed = feed if isinstance(feed, dict) else {}
        registry.register(
            AtomFeedGenerator(
                path=str(feed.get("path") or "feed.xml"), limit=int(feed.get("limit") or 20)
            )
        )
    if config.get("sitemap", True):
        registry.register(SitemapGenerator())
    return registry
