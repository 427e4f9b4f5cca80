"""Skeleton for ``inkpot new``.

Writes a minimal blog: configuration, layouts, an index listing posts, an
about page, a first post and a Guix manifest for the reproducible shell.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

CONFIG = """\
title: {title}
description: Notes on C++, embedded systems and Guix.
url: ""
baseurl: ""
permalink: pretty

environment:
  manager: guix
  manifest: manifest.scm

defaults:
  - scope:
      type: posts
    values:
      layout: post
"""

MANIFEST = """\
;; Packages needed to build and serve the site.
(specifications->manifest
 (list "python"
       "python-click"
       "python-questionary"
       "python-pyyaml"
       "python-jinja2"
       "python-mistune"
       "python-pygments"
       "python-websockets"
       "python-watchdog"
       "python-rjsmin"
       "python-pillow"))
"""

DEFAULT_LAYOUT = """\
<!DOCTYPE html>
<html lang="en">
{% include "head.html" %}
<body>
  <header><a href="{{ '/' | relative_url }}">{{ site.title }}</a></header>
  <main>{{ content }}</main>
</body>
</html>
"""

POST_LAYOUT = """\
---
layout: default
---
<article>
  <h1>{{ page.title }}</h1>
  <p class="meta">{{ page.date | date_to_long_string }}{% if page.tags %} &middot; {{ page.tags | join(", ") }}{% endif %}</p>
  {{ content }}
  <nav>
    {% if page.previous %}<a href="{{ page.previous.url | relative_url }}">&larr; {{ page.previous.title }}</a>{% endif %}
    {% if page.next %}<a href="{{ page.next.url | relative_url }}">{{ page.next.title }} &rarr;</a>{% endif %}
  </nav>
</article>
"""

PAGE_LAYOUT = """\
---
layout: default
---
<h1>{{ page.title }}</h1>
{{ content }}
"""

HEAD_INCLUDE = """\
<head>
  <meta charset="utf-8">
  <title>{% if page.title %}{{ page.title }} | {% endif %}{{ site.title }}</title>
  <link rel="stylesheet" href="{{ '/assets/css/style.css' | relative_url }}">
  <link rel="alternate" type="application/atom+xml" href="{{ '/feed.xml' | relative_url }}">
  <style>{{ pygments_css() }}</style>
</head>
"""

INDEX = """\
---
layout: default
title: Home
---
<ul class="posts">
{% for post in site.posts %}
  <li>
    <span>{{ post.date | date_to_string }}</span>
    <a href="{{ post.url | relative_url }}">{{ post.title }}</a>{% if post.draft %} (draft){% endif %}
  </li>
{% endfor %}
</ul>
"""

ABOUT = """\
---
layout: page
title: About
---
This blog is built with inkpot.
"""

NOT_FOUND = """\
---
layout: default
title: Not found
permalink: /404.html
---
<h1>Page not found</h1>
"""

FIRST_POST = """\
---
title: Welcome
tags: meta
---
This is the first post. Drafts live in `_drafts/` and only show up with
`inkpot serve --drafts` or `inkpot start-draft`.

```cpp
int main() { return 0; }
```
"""

STYLE = """\
body { max-width: 46rem; margin: 0 auto; font-family: sans-serif; }
.meta { color: #666; }
"""


def scaffold_files(title: str, today: datetime | None = None) -> dict[str, str]:
    """Return relative path to content for every skeleton file."""
    today = today or datetime.now()
    return {
        "_config.yml": CONFIG.format(title=json.dumps(title)),
        "manifest.scm": MANIFEST,
        "_layouts/default.html": DEFAULT_LAYOUT,
        "_layouts/post.html": POST_LAYOUT,
        "_layouts/page.html": PAGE_LAYOUT,
        "_includes/head.html": HEAD_INCLUDE,
        "index.html": INDEX,
        "about.md": ABOUT,
        "404.html": NOT_FOUND,
        f"_posts/{today:%Y-%m-%d}-welcome.md": FIRST_POST,
        "_drafts/.keep": "",
        "assets/css/style.css": STYLE,
    }


def scaffold(root: Path, title: str | None = None) -> list[Path]:
    """Create the skeleton under ``root``.

    Raises:
        FileExistsError: If ``root`` exists and is not empty.
    """
    if root.exists() and any(root.iterdir()):
        raise FileExistsError(f"Refusing to initialize into non-empty directory: {root}")
    written: list[Path] = []
    for rel, text in scaffold_files(title or root.name).items():
        dest = root / rel
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(text, encoding="utf-8")
        written.append(dest)
    return written
