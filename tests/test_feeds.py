from datetime import datetime
from pathlib import Path

from inkpot.collections import PostCollection
from inkpot.content import Document
from inkpot.feeds import (
    AtomFeedGenerator,
    SitemapGenerator,
    create_default_feed_registry,
)


def make_doc(slug, date, kind="post", draft=False, frontmatter=None, content="<p>Body</p>"):
    return Document(
        title=slug.replace("-", " ").title(),
        body="",
        content=content,
        excerpt="",
        description=f"About {slug}",
        url=f"/{slug}.html" if kind != "page" else f"/{slug}/",
        slug=slug,
        date=date,
        categories=["cpp"] if kind != "page" else [],
        tags=["raii"] if kind != "page" else [],
        draft=draft,
        published=True,
        layout=None,
        kind=kind,
        path=Path(f"{slug}.md"),
        relative_path=Path(f"{slug}.md"),
        source_type="markdown",
        frontmatter=frontmatter or {},
    )


def make_site(**overrides):
    posts = PostCollection(
        [
            make_doc("older-post", datetime(2024, 1, 1)),
            make_doc("newer-post", datetime(2024, 2, 1), content="<p>a & b</p>"),
            make_doc("draft-post", datetime(2024, 3, 1), kind="draft", draft=True),
        ]
    )
    pages = [
        make_doc("about", datetime(2023, 6, 1), kind="page"),
        make_doc("secret", datetime(2023, 6, 1), kind="page", frontmatter={"sitemap": False}),
    ]
    site = {
        "title": "Notes & Code",
        "description": "C++ and Guix",
        "url": "https://example.com",
        "baseurl": "",
        "author": {"name": "Jo"},
        "posts": posts,
        "pages": pages,
    }
    site.update(overrides)
    return site


def test_atom_feed_lists_published_posts():
    feed = AtomFeedGenerator(limit=1).generate(make_site())
    assert feed.startswith('<?xml version="1.0" encoding="utf-8"?>')
    assert "<title>Notes &amp; Code</title>" in feed
    assert '<link href="https://example.com/feed.xml" rel="self"' in feed
    assert "<author><name>Jo</name></author>" in feed
    assert "https://example.com/newer-post.html" in feed
    assert "older-post" not in feed
    assert "draft-post" not in feed
    assert "&lt;p&gt;a &amp; b&lt;/p&gt;" in feed
    assert '<category term="cpp"/>' in feed
    updated = datetime(2024, 2, 1).astimezone().isoformat(timespec="seconds")
    assert f"<updated>{updated}</updated>" in feed


def test_feeds_need_absolute_url(tmp_path):
    site = make_site(url="")
    assert AtomFeedGenerator().generate(site) is None
    assert SitemapGenerator().generate(site) is None
    assert AtomFeedGenerator().write(tmp_path, site) is False
    assert not (tmp_path / "feed.xml").exists()


def test_sitemap_honours_baseurl_and_opt_out():
    sitemap = SitemapGenerator().generate(make_site(baseurl="/blog"))
    assert "<loc>https://example.com/blog/newer-post.html</loc>" in sitemap
    assert "<loc>https://example.com/blog/about/</loc>" in sitemap
    assert "<lastmod>2024-01-01</lastmod>" in sitemap
    assert "secret" not in sitemap
    assert "draft-post" not in sitemap


def test_default_registry_writes_configured_files(tmp_path):
    written = create_default_feed_registry({"feed": {"path": "atom.xml", "limit": 5}}).generate_all(
        tmp_path, make_site()
    )
    assert written == ["atom.xml", "sitemap.xml"]
    assert (tmp_path / "atom.xml").exists()
    assert (tmp_path / "sitemap.xml").exists()

    disabled = create_default_feed_registry({"feed": False, "sitemap": False})
    assert disabled.generate_all(tmp_path / "none", make_site()) == []
