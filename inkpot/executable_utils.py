"""Executable discovery for inkpot.

Environment managers are often installed into a per-user profile that is
not on ``PATH`` in non-login shells, so the profile ``bin`` directories are
searched after ``PATH``.

Functions:
    find_executable: Locate an executable on PATH or in known profiles.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterable
from pathlib import Path

PROFILE_BIN_DIRS = (
    "~/.config/guix/current/bin",
    "~/.guix-profile/bin",
    "/run/current-system/profile/bin",
    "~/.nix-profile/bin",
    "/nix/var/nix/profiles/default/bin",
)


def find_executable(name: str, extra_dirs: Iterable[str | Path] | None = None) -> str | None:
    """Find an executable on PATH, then in profile directories.

    Args:
        name: Executable name (e.g. ``guix``).
        extra_dirs: Directories to search after PATH; defaults to the usual
            Guix and Nix profile locations.

    Returns:
        Full path to the executable, or None.

    Examples:
        >>> find_executable("guix")
        '/home/me/.config/guix/current/bin/guix'
    """
    found = shutil.which(name)
    if found:
        return found
    for directory in PROFILE_BIN_DIRS if extra_dirs is None else extra_dirs:
        candidate = Path(directory).expanduser() / name
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None
