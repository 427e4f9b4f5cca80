"""Site building for inkpot.

Loads configuration and data, discovers documents, converts and renders
them, copies static files and writes feeds.

Key functions:
- build_site: Build the whole site into the destination directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import TemplateSyntaxError

from .assets import AssetPipeline
from .collections import PostCollection, link_neighbours
from .config import ConfigError, find_config_file, load_config, load_data
from .content import Document, SiteLoader, StaticFile, output_path
from .extractors import FrontMatterError
from .feeds import create_default_feed_registry
from .templates import TemplateEngine
from .utils import ensure_clean_dir


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        posts: Posts newest first (drafts included when requested).
        pages: Rendered pages.
        static_files: Static files copied.
        output_dir: Directory the site was written to.
        site: The ``site`` context used for rendering.
        feeds: Feed files written.
        warnings: Messages about skipped content.
    """

    posts: list[Document]
    pages: list[Document]
    static_files: list[StaticFile]
    output_dir: Path
    site: dict[str, Any]
    feeds: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def documents(self) -> list[Document]:
        return self.posts + self.pages


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    include_future: bool | None = None,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Site source root (where ``_config.yml`` lives).
        include_drafts: Render posts from ``_drafts/``.
        include_future: Render posts dated in the future; defaults to the
            ``future`` configuration value.
        root_url: Overrides the configured ``url``.
        clean_output: Wipe the output directory before building.
        output_dir_override: Write somewhere other than ``destination``.

    Returns:
        BuildResult describing what was written.

    Raises:
        BuildError: If a document, layout or configuration file is invalid.
    """
    try:
        config = load_config(project_root)
        data = load_data(project_root)
    except ConfigError as exc:
        raise BuildError(exc.source_path, exc.message, exc) from exc

    output_dir = output_dir_override or project_root / str(config.get("destination", "_site"))
    resolved_out = output_dir.resolve()
    resolved_root = project_root.resolve()
    if resolved_out == resolved_root or resolved_out in resolved_root.parents:
        raise BuildError(
            find_config_file(project_root) or project_root / "_config.yml",
            f"Destination directory {output_dir} cannot be or contain the source directory",
        )
    loader = SiteLoader(project_root, config, destination=output_dir)
    try:
        content = loader.discover(include_drafts=include_drafts, include_future=include_future)
    except FrontMatterError as exc:
        raise BuildError(exc.source_path, exc.message, exc) from exc

    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    link_neighbours(content.posts)
    engine = TemplateEngine(project_root, config, data, root_url=root_url)
    engine.update_site(content, data)

    documents = content.documents
    for doc in documents:
        _guard(doc, engine.convert)
    for doc in documents:
        rendered = _guard(doc, engine.render_document)
        target = output_path(output_dir, doc.url)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(rendered)

    AssetPipeline(output_dir, config).run(content.static_files)
    feeds = create_default_feed_registry(config).generate_all(output_dir, engine.site)
    return BuildResult(
        posts=list(PostCollection(content.posts)),
        pages=content.pages,
        static_files=content.static_files,
        output_dir=output_dir,
        site=engine.site,
        feeds=feeds,
        warnings=content.warnings,
    )


def _guard(doc: Document, step):
    """Run a render step, turning failures into BuildError for ``doc``."""
    try:
        return step(doc)
    except TemplateSyntaxError as exc:
        raise BuildError(
            doc.path,
            f"Template syntax error on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except Exception as exc:
        raise BuildError(doc.path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"
    if error_type == "LayoutError":
        return error_msg
    return f"{error_type}: {error_msg}"
