import os
from datetime import datetime
from pathlib import Path

from inkpot.config import load_config
from inkpot.content import (
    DocumentBuilder,
    LayoutResolver,
    PermalinkBuilder,
    SiteLoader,
    output_path,
)

NOW = datetime(2025, 1, 1)


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def create_site(tmp_path: Path) -> Path:
    root = tmp_path / "blog"
    write(root / "_config.yml", "title: Notes\n")
    write(root / "_layouts" / "default.html", "{{ content }}")
    write(root / "_layouts" / "post.html", "---\nlayout: default\n---\n{{ content }}")
    write(
        root / "_posts" / "2024-01-15-function-ref.md",
        "---\ntitle: function_ref\ntags: [cpp, api]\n---\nA non-owning callable.\n\nDetails.",
    )
    write(root / "_posts" / "notes.md", "---\ntitle: No date\n---\nbody")
    write(
        root / "cpp" / "_posts" / "2024-02-01-raii.md",
        "---\ncategories: [embedded]\n---\n# RAII in practice\n\nScope-bound resources.",
    )
    write(root / "_posts" / "2099-01-01-future.md", "---\ntitle: Future\n---\nlater")
    write(root / "_posts" / "2024-03-01-hidden.md", "---\npublished: false\n---\nsecret")
    write(root / "_drafts" / "idea.md", "---\ntitle: Idea\n---\nhalf-baked")
    write(root / "about.md", "---\ntitle: About\n---\nWho I am.")
    write(root / "blog" / "index.html", "---\ntitle: Archive\n---\n<ul></ul>")
    write(root / "plain.md", "No front matter here.")
    write(root / "assets" / "app.js", "var a = 1;")
    write(root / "_site" / "old.html", "stale")
    write(root / "_includes" / "head.html", "<head></head>")
    write(root / "justfile", "start:\n\tjekyll s")
    write(root / ".secret", "hidden")
    write(root / ".htaccess", "Options -Indexes")
    return root


def discover(root: Path, **kwargs):
    config = load_config(root)
    return SiteLoader(root, config).discover(now=NOW, **kwargs)


def test_discover_posts_pages_and_static_files(tmp_path):
    root = create_site(tmp_path)
    content = discover(root)

    posts = {p.slug: p for p in content.posts}
    assert set(posts) == {"function-ref", "raii"}
    ref = posts["function-ref"]
    assert ref.url == "/2024/01/15/function-ref.html"
    assert ref.date == datetime(2024, 1, 15)
    assert ref.tags == ["cpp", "api"]
    assert ref.layout == "post"
    assert ref.kind == "post"
    assert not ref.draft
    assert ref.excerpt == "A non-owning callable."

    raii = posts["raii"]
    assert raii.categories == ["cpp", "embedded"]
    assert raii.url == "/cpp/embedded/2024/02/01/raii.html"
    assert raii.title == "RAII in practice"

    pages = {p.url: p for p in content.pages}
    assert set(pages) == {"/about.html", "/blog/"}
    assert pages["/about.html"].layout == "default"
    assert pages["/about.html"].kind == "page"

    static = {s.relative_path.as_posix() for s in content.static_files}
    assert static == {"plain.md", "assets/app.js", ".htaccess"}

    assert len(content.warnings) == 1
    assert "_posts/notes.md" in content.warnings[0]


def test_discover_drafts_future_and_unpublished(tmp_path):
    root = create_site(tmp_path)

    with_drafts = discover(root, include_drafts=True)
    draft = next(p for p in with_drafts.posts if p.slug == "idea")
    assert draft.draft is True
    assert draft.kind == "draft"
    assert draft.url.endswith("/idea.html")

    with_future = discover(root, include_future=True)
    assert "future" in {p.slug for p in with_future.posts}

    (root / "_config.yml").write_text("unpublished: true\nfuture: true\n", encoding="utf-8")
    everything = discover(root)
    assert {"future", "hidden"} <= {p.slug for p in everything.posts}


def test_discover_honours_exclude(tmp_path):
    root = create_site(tmp_path)
    (root / "_config.yml").write_text("exclude: [assets, '*.md']\n", encoding="utf-8")
    content = discover(root)
    static = {s.relative_path.as_posix() for s in content.static_files}
    assert static == {".htaccess", "justfile"}
    assert content.pages[0].url == "/blog/"
    assert content.posts == []


def test_discover_skips_configured_destination_when_building_elsewhere(tmp_path):
    root = create_site(tmp_path)
    (root / "_config.yml").write_text("destination: public\n", encoding="utf-8")
    write(root / "public" / "index.html", "previous build")
    staging = root / "public.staging"
    content = SiteLoader(root, load_config(root), destination=staging).discover(now=NOW)
    static = {s.relative_path.as_posix() for s in content.static_files}
    assert not any(p.startswith("public") for p in static)
    assert not any(p.url.startswith("/public") for p in content.pages)


def test_drafts_ignore_date_prefix_in_filename(tmp_path):
    root = create_site(tmp_path)
    draft = write(root / "_drafts" / "2020-05-05-old-idea.md", "---\ntitle: Old idea\n---\nbody")
    os.utime(draft, (1700000000, 1700000000))
    content = discover(root, include_drafts=True)
    post = next(p for p in content.posts if p.title == "Old idea")
    assert post.date == datetime.fromtimestamp(1700000000)


def test_document_builder_applies_defaults(tmp_path):
    root = create_site(tmp_path)
    config = load_config(root)
    config["defaults"] = [
        {"scope": {"path": "cpp", "type": "posts"}, "values": {"layout": "default", "series": "cpp"}},
    ]
    builder = DocumentBuilder(root, config)
    doc = builder.build(root / "cpp" / "_posts" / "2024-02-01-raii.md", "post", ["cpp"])
    assert doc.layout == "default"
    assert doc.frontmatter["series"] == "cpp"
    assert doc.to_context()["series"] == "cpp"


def test_front_matter_slug_and_permalink_override(tmp_path):
    root = tmp_path / "site"
    path = write(
        root / "_posts" / "2024-06-01-long-title.md",
        "---\nslug: short\npermalink: /:year/:slug/\nurl: /ignored/\n---\nBody",
    )
    doc = DocumentBuilder(root, load_config(root)).build(path, "post")
    assert doc.slug == "short"
    assert doc.url == "/2024/short/"
    assert doc.layout is None
    assert doc.to_context()["url"] == "/2024/short/"


def test_permalink_styles():
    when = datetime(2024, 2, 1)
    assert PermalinkBuilder("date").for_post("raii", when, [], {}) == "/2024/02/01/raii.html"
    assert PermalinkBuilder("pretty").for_post("raii", when, ["cpp"], {}) == "/cpp/2024/02/01/raii/"
    assert PermalinkBuilder("ordinal").for_post("raii", when, [], {}) == "/2024/032/raii.html"
    assert PermalinkBuilder("none").for_post("raii", when, ["Reading Notes"], {}) == "/reading-notes/raii.html"
    custom = PermalinkBuilder("/blog/:year/:i_month/:slug/")
    assert custom.for_post("raii", when, [], {}) == "/blog/2024/2/raii/"
    assert custom.pretty_pages


def test_permalinks_for_pages():
    plain = PermalinkBuilder("date")
    pretty = PermalinkBuilder("pretty")
    assert plain.for_page(Path("index.md"), {}) == "/"
    assert plain.for_page(Path("docs/index.html"), {}) == "/docs/"
    assert plain.for_page(Path("docs/guide.md"), {}) == "/docs/guide.html"
    assert pretty.for_page(Path("docs/guide.md"), {}) == "/docs/guide/"
    assert plain.for_page(Path("404.html"), {"permalink": "/404.html"}) == "/404.html"


def test_layout_resolver(tmp_path):
    write(tmp_path / "_layouts" / "default.html", "")
    write(tmp_path / "_layouts" / "wide.html.jinja", "")
    resolver = LayoutResolver(tmp_path)
    assert resolver.resolve({}, "post") == "default"
    assert resolver.resolve({}, "page") == "default"
    assert resolver.resolve({"layout": None}, "post") is None
    assert resolver.resolve({"layout": "none"}, "page") is None
    assert resolver.resolve({"layout": "wide"}, "page") == "wide"
    assert resolver.find("wide") == tmp_path / "_layouts" / "wide.html.jinja"
    assert LayoutResolver(tmp_path / "empty").resolve({}, "page") is None


def test_output_path(tmp_path):
    assert output_path(tmp_path, "/") == tmp_path / "index.html"
    assert output_path(tmp_path, "/about/") == tmp_path / "about" / "index.html"
    assert output_path(tmp_path, "/about.html") == tmp_path / "about.html"
    assert output_path(tmp_path, "/feed") == tmp_path / "feed" / "index.html"
