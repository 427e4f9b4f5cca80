"""Utility functions for inkpot.

String, date and path helpers shared by the loader, the template engine and
the authoring commands.

Key functions:
    slugify: Convert titles and filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    split_post_name: Split a ``YYYY-MM-DD-slug`` post filename.
    parse_date: Coerce front matter dates to naive datetimes.
    xmlschema: Format dates as RFC 3339 with the local offset.
    as_list: Normalize Jekyll-style list values (strings or sequences).
    join_url: Join a base URL and a path.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path
from typing import Any

POST_NAME_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})-(?P<slug>.+)$")

MARKDOWN_EXTENSIONS = {".md", ".markdown", ".mkd", ".mkdn"}
HTML_EXTENSIONS = {".html", ".htm"}

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated slug.

    Args:
        text: Title or filename stem.

    Returns:
        URL-friendly slug, ``index`` when nothing usable remains.

    Examples:
        >>> slugify("Type Erasure in C++")
        'type-erasure-in-c'
        >>> slugify("Привет мир")
        'привет-мир'
    """
    cleaned = re.sub(r"[\W_]+", "-", text)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def split_post_name(stem: str) -> tuple[datetime, str] | None:
    """Split a post filename stem into its date and slug parts.

    Args:
        stem: Filename without extension, e.g. ``2024-01-15-function-ref``.

    Returns:
        ``(date, slug)`` or None when the stem has no valid date prefix.
    """
    match = POST_NAME_RE.match(stem)
    if not match:
        return None
    try:
        when = datetime(
            int(match.group("year")), int(match.group("month")), int(match.group("day"))
        )
    except ValueError:
        return None
    return when, match.group("slug")


def strip_date_prefix(stem: str) -> str:
    """Return the stem without a ``YYYY-MM-DD-`` prefix."""
    parts = split_post_name(stem)
    return parts[1] if parts else stem


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Examples:
        >>> titleize("2024-01-15-strong-types.md")
        'Strong Types'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def parse_date(value: Any) -> datetime | None:
    """Coerce a front matter date value to a naive datetime.

    YAML already turns unquoted timestamps into ``date``/``datetime``; quoted
    strings are parsed with the formats Jekyll accepts. Timezone offsets are
    dropped and the wall-clock time is kept.

    Args:
        value: Value from front matter.

    Returns:
        A naive datetime, or None when the value cannot be interpreted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=None)
        except ValueError:
            continue
    return None


def xmlschema(value: datetime | date) -> str:
    """Format a date as RFC 3339 for feeds and ``date_to_xmlschema``.

    Naive datetimes are wall-clock times of the machine running the build, so
    they get the local UTC offset. Aware datetimes keep their own.

    Examples:
        >>> xmlschema(datetime(2024, 1, 5, 8, 30))  # on a UTC machine
        '2024-01-05T08:30:00+00:00'
    """
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.astimezone()
    return value.isoformat(timespec="seconds")


def as_list(value: Any) -> list[str]:
    """Normalize a categories/tags value into a list of unique strings.

    Jekyll accepts either a whitespace-separated string or a YAML list.

    Examples:
        >>> as_list("cpp embedded")
        ['cpp', 'embedded']
        >>> as_list(["guix", "guix", "tutorial"])
        ['guix', 'tutorial']
    """
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = value.split()
    elif isinstance(value, Iterable):
        items = value
    else:
        items = [value]
    seen: list[str] = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text and text not in seen:
            seen.append(text)
    return seen


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract the first prose paragraph as plain text.

    Skips headings, images, code fences and horizontal rules, strips HTML tags
    and Jinja syntax, collapses whitespace and truncates to ``limit``.
    """
    for para in (p.strip() for p in text.split("\n\n")):
        if not para or para.startswith(("#", "![", "```", "~~~", "---", "{%")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"\{[%#{].*?[%#}]\}", "", para)
        para = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", para)
        collapsed = " ".join(para.split())
        if collapsed:
            return collapsed[:limit]
    return ""


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() in MARKDOWN_EXTENSIONS


def is_html(path: Path) -> bool:
    return path.suffix.lower() in HTML_EXTENSIONS


def is_convertible(path: Path) -> bool:
    """Return True for files that become rendered documents when they carry front matter."""
    return is_markdown(path) or is_html(path)


def has_frontmatter(path: Path) -> bool:
    """Check whether a file starts with a ``---`` front matter fence."""
    try:
        with open(path, "rb") as f:
            head = f.read(5)
    except OSError:
        return False
    return head.lstrip(b"\xef\xbb\xbf").startswith(b"---")


def join_url(base: str, path: str) -> str:
    """Join a base URL and a path without doubling slashes.

    Examples:
        >>> join_url("https://example.com/blog/", "/about.html")
        'https://example.com/blog/about.html'
    """
    if not base:
        return path if path.startswith("/") else f"/{path}"
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base.rstrip('/')}{suffix}"


def escape_xml(text: str) -> str:
    """Escape text for XML element content and attribute values."""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def count_words(text: str) -> int:
    """Count words in text after stripping HTML tags."""
    return len(re.sub(r"<[^>]+>", " ", text).split())


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
