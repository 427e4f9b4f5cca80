from datetime import datetime
from pathlib import Path

import pytest

from inkpot.config import load_config
from inkpot.content import SiteLoader
from inkpot.renderers import Heading
from inkpot.templates import LayoutError, TemplateEngine, render_toc


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def load(root: Path, data=None):
    config = load_config(root)
    content = SiteLoader(root, config).discover(now=datetime(2030, 1, 1))
    engine = TemplateEngine(root, config, data or {})
    engine.update_site(content, data or {})
    for doc in content.documents:
        engine.convert(doc)
    return engine, content


def test_layout_chain_with_includes(tmp_path):
    write(tmp_path / "_config.yml", "title: Notes\n")
    write(
        tmp_path / "_layouts" / "default.html",
        "---\ntitle: base\n---\n<html>{% include 'nav.html' %}<main>{{ content }}</main><p>{{ layout.title }}</p></html>",
    )
    write(
        tmp_path / "_layouts" / "post.html",
        "---\nlayout: default\n---\n<article><h1>{{ page.title }}</h1>{{ content }}</article>",
    )
    write(tmp_path / "_includes" / "nav.html", "---\nignored: true\n---\n<nav>{{ site.title }}</nav>")
    write(
        tmp_path / "_posts" / "2024-01-15-hello.md",
        "---\ntitle: Hello & welcome\n---\nSee {{ site.posts | length }} posts.\n\n## Part one\n",
    )
    engine, content = load(tmp_path)
    post = content.posts[0]
    html = engine.render_document(post)

    assert html.startswith("<html><nav>Notes</nav>")
    assert "ignored" not in html
    assert "<h1>Hello &amp; welcome</h1>" in html
    assert "<p>See 1 posts.</p>" in html
    assert '<h2 id="part-one">Part one</h2>' in html
    assert "<p>base</p>" in html
    assert post.toc == [Heading(id="part-one", text="Part one", level=2)]
    assert post.excerpt == "<p>See 1 posts.</p>\n"


def test_page_without_layout_renders_content_only(tmp_path):
    write(tmp_path / "_layouts" / "default.html", "<body>{{ content }}</body>")
    write(tmp_path / "raw.html", "---\nlayout: null\n---\n<p>{{ page.title }}</p>")
    engine, content = load(tmp_path)
    assert engine.render_document(content.pages[0]) == "<p>Raw</p>"


def test_jinja_in_content_can_be_disabled(tmp_path):
    write(tmp_path / "_posts" / "2024-01-15-a.md", "---\nrender_with_jinja: false\n---\nUse `{{ value }}` here.")
    write(tmp_path / "b.md", "---\ntitle: B\n---\n{% raw %}{{ kept }}{% endraw %} and {{ page.title }}")
    engine, content = load(tmp_path)
    assert "<code>{{ value }}</code>" in content.posts[0].content
    assert "{{ kept }} and B" in content.pages[0].content

    write(tmp_path / "_config.yml", "jinja_in_content: false\n")
    engine, content = load(tmp_path)
    assert "{% raw %}" in content.pages[0].content


def test_layout_errors(tmp_path):
    write(tmp_path / "_layouts" / "a.html", "---\nlayout: b\n---\n{{ content }}")
    write(tmp_path / "_layouts" / "b.html", "---\nlayout: a\n---\n{{ content }}")
    write(tmp_path / "loop.md", "---\nlayout: a\n---\nbody")
    write(tmp_path / "lost.md", "---\nlayout: nowhere\n---\nbody")
    engine, content = load(tmp_path)
    pages = {p.slug: p for p in content.pages}

    with pytest.raises(LayoutError, match="cycle"):
        engine.render_document(pages["loop"])
    with pytest.raises(LayoutError, match="'nowhere' not found"):
        engine.render_document(pages["lost"])


def test_url_filters(tmp_path):
    engine = TemplateEngine(tmp_path, {"url": "https://example.com", "baseurl": "blog"})
    assert engine.relative_url("/about/") == "/blog/about/"
    assert engine.absolute_url("about/") == "https://example.com/blog/about/"
    assert engine.relative_url("https://cdn.example.com/x.js") == "https://cdn.example.com/x.js"

    plain = TemplateEngine(tmp_path, {"url": "https://example.com"}, root_url="http://localhost:4000")
    assert plain.relative_url("feed.xml") == "/feed.xml"
    assert plain.absolute_url("/feed.xml") == "http://localhost:4000/feed.xml"


def test_jekyll_filters(tmp_path):
    engine = TemplateEngine(tmp_path, {})
    when = datetime(2024, 1, 5, 8, 30)
    out = engine.render_string(
        "{{ d | date_to_string }}|{{ d | date_to_long_string }}|{{ d | date_to_xmlschema }}",
        {"d": when},
    )
    assert out == "05 Jan 2024|05 January 2024|" + when.astimezone().isoformat(timespec="seconds")
    assert engine.render_string("{{ s | xml_escape }}", {"s": "a & b"}) == "a &amp; b"
    assert engine.render_string("{{ s | markdownify }}", {"s": "*hi*"}).strip() == "<p><em>hi</em></p>"
    assert engine.render_string("{{ 'Hello World' | slugify }}", {}) == "hello-world"
    assert engine.render_string("{{ '<p>two words</p>' | number_of_words }}", {}) == "2"
    assert ".highlight" in engine.render_string("{{ pygments_css() }}", {})


def test_site_context(tmp_path):
    write(tmp_path / "_config.yml", "title: Notes\nauthor: Me\n")
    write(tmp_path / "_posts" / "2024-01-15-a.md", "---\ntags: [cpp]\ncategories: tutorial\n---\nA")
    write(tmp_path / "_posts" / "2024-02-15-b.md", "---\ntags: [cpp, guix]\n---\nB")
    engine, _ = load(tmp_path, data={"authors": {"me": "Jo"}})
    out = engine.render_string(
        "{{ site.title }}|{{ site.author }}|{{ site.data.authors.me }}|"
        "{{ site.tags.cpp | length }}|{{ site.categories | list | join(',') }}|"
        "{% for post in site.posts %}{{ post.slug }}{% endfor %}",
        {},
    )
    assert out == "Notes|Me|Jo|2|tutorial|ba"


def test_render_toc():
    headings = [Heading("a", "A", 2), Heading("b", "B", 3), Heading("c", "C", 2)]
    html = render_toc({"toc": headings})
    assert html == (
        '<ul><li><a href="#a">A</a><ul><li><a href="#b">B</a></li></ul></li>'
        '<li><a href="#c">C</a></li></ul>'
    )
    assert render_toc({"toc": []}) == ""
