"""Metadata extractors for inkpot.

Each extractor derives one kind of metadata from a source file. They run in
sequence through ``CompositeMetadataExtractor`` and every extractor sees what
the previous ones produced, so front matter parsed first can take precedence
over values guessed from the body or the filename.

Key classes:
- FrontmatterExtractor: Splits the YAML front matter from the body.
- TitleExtractor: Title from front matter, first heading or filename.
- DateExtractor: Date from front matter, filename prefix or mtime.
- TaxonomyExtractor: Categories and tags from front matter.
- DescriptionExtractor: Description and raw excerpt.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .utils import as_list, first_paragraph, parse_date, split_post_name, titleize

FRONTMATTER_RE = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


class FrontMatterError(Exception):
    """Raised when a document's front matter cannot be parsed.

    Attributes:
        source_path: The offending file.
        message: Human-readable explanation.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (front matter dict, remaining body). Content without a
        front matter block returns ``({}, text)``.

    Raises:
        ValueError: If the block is not valid YAML or not a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid front matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Front matter must be a mapping")
    return data, text[match.end() :]


class FrontmatterExtractor:
    """Parses YAML front matter (between ``---`` markers)."""

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        try:
            frontmatter, body = extract_frontmatter(content)
        except ValueError as exc:
            raise FrontMatterError(path, str(exc)) from exc
        merged = dict(metadata.get("defaults", {}))
        merged.update(frontmatter)
        return {"frontmatter": merged, "body": body}


class TitleExtractor:
    """Extracts the title.

    Order: front matter ``title``, first level-1 Markdown heading, titleized
    filename.
    """

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        title = metadata.get("frontmatter", {}).get("title")
        if title:
            return {"title": str(title)}
        body = metadata.get("body", content)
        in_fence = False
        for line in body.splitlines():
            stripped = line.strip()
            if stripped.startswith(("```", "~~~")):
                in_fence = not in_fence
                continue
            if not in_fence and stripped.startswith("# "):
                return {"title": stripped[2:].strip()}
        return {"title": titleize(path.name)}


class DateExtractor:
    """Extracts the publication date.

    Order: front matter ``date``, ``YYYY-MM-DD-`` filename prefix, file
    modification time. Drafts skip the filename prefix.
    """

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        raw = metadata.get("frontmatter", {}).get("date")
        when = parse_date(raw)
        if raw is not None and when is None:
            raise FrontMatterError(path, f"Invalid date '{raw}'")
        if when is None and "_drafts" not in path.parts:
            parts = split_post_name(path.stem)
            if parts:
                when = parts[0]
        if when is None:
            when = datetime.fromtimestamp(path.stat().st_mtime)
        return {"date": when}


class TaxonomyExtractor:
    """Extracts categories and tags.

    Both singular and plural keys are accepted; values may be a YAML list or a
    whitespace-separated string, as Jekyll allows.
    """

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        fm = metadata.get("frontmatter", {})
        categories = as_list(fm.get("category")) + as_list(fm.get("categories"))
        tags = as_list(fm.get("tag")) + as_list(fm.get("tags"))
        return {"categories": as_list(categories), "tags": as_list(tags)}


class DescriptionExtractor:
    """Extracts the description and the raw (unrendered) excerpt.

    ``description`` is plain text capped at 160 characters. ``excerpt`` is the
    body up to the excerpt separator, still in source form so it can be
    rendered with the rest of the document.
    """

    def __init__(self, separator: str = "\n\n"):
        self.separator = separator

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        fm = metadata.get("frontmatter", {})
        body = metadata.get("body", content)
        description = fm.get("description")
        if description is None:
            description = first_paragraph(body)
        separator = fm.get("excerpt_separator", self.separator)
        excerpt = fm.get("excerpt")
        if excerpt is None:
            excerpt = self._extract_excerpt(body, str(separator))
        return {"description": str(description), "excerpt": str(excerpt)}

    def _extract_excerpt(self, body: str, separator: str) -> str:
        """Return the body up to the separator, skipping a leading title heading."""
        text = body.lstrip("\n")
        if text.startswith("# "):
            _, _, text = text.partition("\n")
            text = text.lstrip("\n")
        if not separator or separator not in text:
            return text.strip()
        return text.split(separator, 1)[0].strip()


class CompositeMetadataExtractor:
    """Runs extractors in order, feeding each the accumulated metadata."""

    def __init__(self, extractors: list | None = None, excerpt_separator: str = "\n\n"):
        if extractors is None:
            self._extractors = [
                FrontmatterExtractor(),
                TitleExtractor(),
                DateExtractor(),
                TaxonomyExtractor(),
                DescriptionExtractor(excerpt_separator),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        self._extractors.append(extractor)

    def extract(
        self, content: str, path: Path, defaults: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Extract all metadata from content.

        Args:
            content: Raw source text.
            path: Source file path.
            defaults: Front matter defaults that the file's own front matter overrides.

        Returns:
            Dictionary with all extracted metadata.
        """
        result: dict[str, Any] = {"defaults": defaults or {}}
        for extractor in self._extractors:
            result.update(extractor.extract(content, path, result))
        result.pop("defaults", None)
        return result
