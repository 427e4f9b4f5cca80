"""Site configuration for inkpot.

Loads ``_config.yml`` from the site root, merges it over the defaults and
exposes front matter defaults (the ``defaults:`` list of Jekyll configs).

Key functions:
- load_config: Read and merge the site configuration.
- load_data: Read ``_data/`` files into a dictionary.

Key classes:
- DefaultsResolver: Applies scoped front matter defaults to documents.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAMES = ("_config.yml", "_config.yaml")

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "",
    "description": "",
    "url": "",
    "baseurl": "",
    "author": None,
    "destination": "_site",
    "permalink": "date",
    "host": "127.0.0.1",
    "port": 4000,
    "livereload_port": 35729,
    "future": False,
    "unpublished": False,
    "excerpt_separator": "\n\n",
    "exclude": [
        "justfile",
        "manifest.scm",
        "node_modules",
        "vendor",
        "__pycache__",
        "Gemfile",
        "Gemfile.lock",
    ],
    "include": [".htaccess"],
    "defaults": [],
    "jinja_in_content": True,
    "minify_js": True,
    "optimize_images": False,
    "feed": {"path": "feed.xml", "limit": 20},
    "sitemap": True,
    "environment": {"manager": "guix", "manifest": "manifest.scm"},
}

DATA_SUFFIXES = (".yml", ".yaml", ".json")


class ConfigError(Exception):
    """Raised when a configuration or data file cannot be used.

    Attributes:
        source_path: File that failed to load.
        message: Human-readable explanation.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


def find_config_file(project_root: Path) -> Path | None:
    for name in CONFIG_FILENAMES:
        candidate = project_root / name
        if candidate.exists():
            return candidate
    return None


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from ``_config.yml``.

    Nested mappings present in the defaults (``feed``, ``environment``) are
    merged key by key, every other key is replaced.

    Args:
        project_root: Root directory of the site.

    Returns:
        Configuration dictionary with defaults applied.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = find_config_file(project_root)
    if config_path is None:
        return config
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(config_path, f"Invalid YAML: {exc}") from exc
    if loaded is None:
        return config
    if not isinstance(loaded, dict):
        raise ConfigError(config_path, "Top level of the configuration must be a mapping")
    for key, value in loaded.items():
        if isinstance(config.get(key), dict) and isinstance(value, dict):
            config[key].update(value)
        else:
            config[key] = value
    return config


def load_data(project_root: Path) -> dict[str, Any]:
    """Load ``_data/*.yml``, ``*.yaml`` and ``*.json`` files keyed by stem.

    Raises:
        ConfigError: If a data file cannot be parsed.
    """
    data_dir = project_root / "_data"
    data: dict[str, Any] = {}
    if not data_dir.is_dir():
        return data
    for path in sorted(data_dir.iterdir()):
        if path.suffix.lower() not in DATA_SUFFIXES or not path.is_file():
            continue
        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix.lower() == ".json":
                    data[path.stem] = json.load(f)
                else:
                    data[path.stem] = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigError(path, f"Invalid data file: {exc}") from exc
    return data


class DefaultsResolver:
    """Resolves scoped front matter defaults.

    Each entry of the ``defaults`` configuration looks like::

        - scope:
            path: "guix"
            type: "posts"
          values:
            layout: "post"
            series: "guix"

    Entries are applied in order, so later entries override earlier ones.
    An empty or missing path matches every document.
    """

    def __init__(self, entries: list[dict[str, Any]] | None):
        self.entries = [e for e in (entries or []) if isinstance(e, dict)]

    def values_for(self, relative_path: Path, kind: str) -> dict[str, Any]:
        """Return the merged default values for a document.

        Args:
            relative_path: Source path relative to the site root.
            kind: ``posts``, ``drafts`` or ``pages``.
        """
        merged: dict[str, Any] = {}
        posix = relative_path.as_posix()
        for entry in self.entries:
            scope = entry.get("scope") or {}
            scope_path = str(scope.get("path") or "").strip("/")
            scope_type = scope.get("type")
            if scope_type and scope_type != kind:
                continue
            if scope_path and not (posix == scope_path or posix.startswith(f"{scope_path}/")):
                continue
            values = entry.get("values") or {}
            if isinstance(values, dict):
                merged.update(values)
        return merged
