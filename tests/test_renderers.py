from pathlib import Path

from inkpot.renderers import (
    HTMLRenderer,
    MarkdownRenderer,
    RendererRegistry,
    generate_heading_id,
    markdownify,
)


def test_markdown_renderer_collects_headings():
    html, headings = MarkdownRenderer().render("# Intro\n\n## Setup\n\n## Setup\n\n### `std::function`\n")
    assert '<h1 id="intro">Intro</h1>' in html
    assert '<h2 id="setup">Setup</h2>' in html
    assert '<h2 id="setup-1">Setup</h2>' in html
    assert [(h.id, h.level) for h in headings] == [
        ("intro", 1),
        ("setup", 2),
        ("setup-1", 2),
        ("stdfunction", 3),
    ]


def test_markdown_renderer_highlights_code():
    html, _ = MarkdownRenderer().render("```cpp\nint main() { return 0; }\n```\n")
    assert '<div class="highlight">' in html
    assert "main" in html

    html, _ = MarkdownRenderer().render("```no-such-lang\na < b\n```\n")
    assert '<pre><code class="language-no-such-lang">a &lt; b\n</code></pre>' in html

    html, _ = MarkdownRenderer().render("```\nplain & simple\n```\n")
    assert "<pre><code>plain &amp; simple\n</code></pre>" in html


def test_markdown_plugins():
    html = markdownify("~~gone~~ and a table:\n\n| a | b |\n|---|---|\n| 1 | 2 |\n")
    assert "<del>gone</del>" in html
    assert "<table>" in html
    footnote = markdownify("Claim.[^1]\n\n[^1]: Source.\n")
    assert "footnote" in footnote


def test_html_renderer_passthrough():
    html, headings = HTMLRenderer().render("<h2>Kept</h2>")
    assert html == "<h2>Kept</h2>"
    assert headings == []


def test_renderer_registry():
    registry = RendererRegistry()
    assert registry.get_renderer(Path("post.md")).source_type == "markdown"
    assert registry.get_renderer(Path("page.html")).source_type == "html"
    assert registry.get_renderer(Path("style.css")) is None


def test_generate_heading_id():
    assert generate_heading_id("Hello, World!") == "hello-world"
    assert generate_heading_id("<code>a</code> b") == "a-b"
    assert generate_heading_id("???") == "section"
