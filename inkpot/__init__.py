"""inkpot static blog generator.

Builds a Jekyll-style blog (``_posts/``, ``_drafts/``, ``_layouts/``,
``_includes/``, ``_data/`` and ``_config.yml``) with Markdown and Jinja2,
serves it with live reload, and runs inside a reproducible Guix or Nix
environment when asked to.

The main entry point is the CLI module.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
