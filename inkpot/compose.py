"""Post and draft authoring for inkpot.

Creates new posts and drafts with front matter, and moves files between
``_drafts/`` and ``_posts/``.

Key functions:
- new_post: Create ``_posts/YYYY-MM-DD-slug.md``.
- new_draft: Create ``_drafts/slug.md``.
- publish: Move a draft into ``_posts/`` with a date prefix.
- unpublish: Move a post back into ``_drafts/``.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import yaml

from .extractors import extract_frontmatter
from .utils import slugify, split_post_name, strip_date_prefix


class ComposeError(Exception):
    """Raised when a post or draft cannot be created or moved."""


def _front_matter_text(frontmatter: dict) -> str:
    dumped = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"---\n{dumped}---\n"


def existing_slugs(project_root: Path) -> dict[str, Path]:
    """Map slugs of all posts and drafts to their files."""
    slugs: dict[str, Path] = {}
    for folder in ("_posts", "_drafts"):
        directory = project_root / folder
        if not directory.is_dir():
            continue
        for path in sorted(directory.rglob("*")):
            if path.is_file() and not path.name.startswith("."):
                slugs.setdefault(slugify(strip_date_prefix(path.stem)), path)
    return slugs


def _check_slug(project_root: Path, slug: str, ignore: Path | None = None) -> None:
    clash = existing_slugs(project_root).get(slug)
    if clash is not None and clash != ignore:
        raise ComposeError(f"A post or draft with slug '{slug}' already exists: {clash.name}")


def _write_new(path: Path, frontmatter: dict, body: str) -> Path:
    if path.exists():
        raise ComposeError(f"File already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_front_matter_text(frontmatter) + body, encoding="utf-8")
    return path


def new_post(
    project_root: Path,
    title: str,
    date: datetime | None = None,
    layout: str = "post",
    extension: str = "md",
) -> Path:
    """Create a new post.

    Args:
        project_root: Site root.
        title: Post title; also the source of the slug.
        date: Publication date, defaults to now.
        layout: Layout written into the front matter.
        extension: File extension without the dot.

    Returns:
        Path of the new file.

    Raises:
        ComposeError: If the file or its slug already exists.
    """
    title = title.strip()
    if not title:
        raise ComposeError("Title cannot be empty")
    date = date or datetime.now()
    slug = slugify(title)
    _check_slug(project_root, slug)
    path = project_root / "_posts" / f"{date:%Y-%m-%d}-{slug}.{extension}"
    frontmatter = {
        "layout": layout,
        "title": title,
        "date": date.strftime("%Y-%m-%d %H:%M:%S"),
        "categories": [],
        "tags": [],
    }
    return _write_new(path, frontmatter, "\n")


def new_draft(project_root: Path, title: str, layout: str = "post", extension: str = "md") -> Path:
    """Create a new draft in ``_drafts/``.

    Raises:
        ComposeError: If the file or its slug already exists.
    """
    title = title.strip()
    if not title:
        raise ComposeError("Title cannot be empty")
    slug = slugify(title)
    _check_slug(project_root, slug)
    path = project_root / "_drafts" / f"{slug}.{extension}"
    frontmatter = {"layout": layout, "title": title, "categories": [], "tags": []}
    return _write_new(path, frontmatter, "\n")


def _rewrite_date(text: str, date: datetime | None) -> str:
    try:
        frontmatter, body = extract_frontmatter(text)
    except ValueError as exc:
        raise ComposeError(str(exc)) from exc
    if date is None:
        frontmatter.pop("date", None)
    else:
        frontmatter["date"] = date.strftime("%Y-%m-%d %H:%M:%S")
    return _front_matter_text(frontmatter) + body


def publish(project_root: Path, draft: Path, date: datetime | None = None) -> Path:
    """Move a draft into ``_posts/``, prefixing the filename with the date.

    The ``date`` front matter key is set to the publication date.

    Raises:
        ComposeError: If the draft is missing or the post already exists.
    """
    draft = draft if draft.is_absolute() else project_root / draft
    if not draft.is_file():
        raise ComposeError(f"Draft not found: {draft}")
    date = date or datetime.now()
    slug = strip_date_prefix(draft.stem)
    target = project_root / "_posts" / f"{date:%Y-%m-%d}-{slug}{draft.suffix}"
    if target.exists():
        raise ComposeError(f"File already exists: {target}")
    text = _rewrite_date(draft.read_text(encoding="utf-8"), date)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    draft.unlink()
    return target


def unpublish(project_root: Path, post: Path) -> Path:
    """Move a post back to ``_drafts/``, dropping its date prefix and date.

    Raises:
        ComposeError: If the post is missing, misnamed or the draft exists.
    """
    post = post if post.is_absolute() else project_root / post
    if not post.is_file():
        raise ComposeError(f"Post not found: {post}")
    parts = split_post_name(post.stem)
    if parts is None:
        raise ComposeError(f"Not a dated post filename: {post.name}")
    target = project_root / "_drafts" / f"{parts[1]}{post.suffix}"
    if target.exists():
        raise ComposeError(f"File already exists: {target}")
    text = _rewrite_date(post.read_text(encoding="utf-8"), None)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    post.unlink()
    return target


def list_drafts(project_root: Path) -> list[Path]:
    directory = project_root / "_drafts"
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob("*") if p.is_file() and not p.name.startswith("."))
