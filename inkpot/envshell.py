"""Reproducible environment runner for inkpot.

Runs a command inside the environment described by a manifest, so the
site is always built with the toolchain the manifest pins. The default is
``guix shell -m manifest.scm -- <command>``; Nix and a plain passthrough are
also supported.

Configuration (``_config.yml``)::

    environment:
      manager: guix          # guix | nix | none
      manifest: manifest.scm
      command: inkpot        # program re-invoked inside the environment

Key classes:
- EnvironmentManager: How one tool wraps a command line.
- ReproducibleShell: Resolves the manager from config and runs commands.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from .executable_utils import find_executable


class ShellError(Exception):
    """Raised when the reproducible environment cannot be entered."""


class EnvironmentManager:
    """Base class: run commands directly, with no environment."""

    name = "none"
    executable: str | None = None
    marker: str | None = None
    needs_manifest = False

    def wrap(self, program: str | None, manifest: Path, argv: Sequence[str]) -> list[str]:
        return list(argv)


class GuixManager(EnvironmentManager):
    """``guix shell -m MANIFEST -- ARGV``; ``guix shell`` sets GUIX_ENVIRONMENT."""

    name = "guix"
    executable = "guix"
    marker = "GUIX_ENVIRONMENT"
    needs_manifest = True

    def wrap(self, program: str | None, manifest: Path, argv: Sequence[str]) -> list[str]:
        return [program or "guix", "shell", "-m", str(manifest), "--", *argv]


class NixManager(EnvironmentManager):
    """``nix-shell MANIFEST --run 'ARGV'``; nix-shell sets IN_NIX_SHELL."""

    name = "nix"
    executable = "nix-shell"
    marker = "IN_NIX_SHELL"
    needs_manifest = True

    def wrap(self, program: str | None, manifest: Path, argv: Sequence[str]) -> list[str]:
        return [program or "nix-shell", str(manifest), "--run", shlex.join(argv)]


MANAGERS: dict[str, type[EnvironmentManager]] = {
    "guix": GuixManager,
    "nix": NixManager,
    "none": EnvironmentManager,
}


class ReproducibleShell:
    """Runs commands inside the configured reproducible environment.

    Attributes:
        project_root: Site root; manifests are resolved relative to it.
        manager: The EnvironmentManager in use.
        manifest: Path to the manifest file.
        program: Command re-invoked inside the environment (``inkpot``).
    """

    def __init__(
        self,
        project_root: Path,
        config: dict[str, Any],
        environ: Mapping[str, str] | None = None,
    ):
        settings = config.get("environment") or {}
        if not isinstance(settings, dict):
            raise ShellError("'environment' must be a mapping in _config.yml")
        name = str(settings.get("manager") or "none").lower()
        manager_cls = MANAGERS.get(name)
        if manager_cls is None:
            known = ", ".join(sorted(MANAGERS))
            raise ShellError(f"Unknown environment manager '{name}' (expected one of: {known})")
        self.project_root = project_root
        self.manager = manager_cls()
        self.manifest = project_root / str(settings.get("manifest") or "manifest.scm")
        self.program = shlex.split(str(settings.get("command") or "inkpot"))
        self.environ = os.environ if environ is None else environ

    def already_active(self) -> bool:
        """True when running inside the environment (or when there is none)."""
        if self.manager.marker is None:
            return True
        return bool(self.environ.get(self.manager.marker))

    def command_for(self, args: Sequence[str]) -> list[str]:
        """Return the full command line for ``inkpot ARGS`` in the environment.

        Raises:
            ShellError: If the manager executable or manifest is missing.
        """
        argv = [*self.program, *args]
        if self.already_active():
            return argv
        executable = find_executable(self.manager.executable or "")
        if executable is None:
            raise ShellError(
                f"'{self.manager.executable}' not found; install it or set "
                "environment.manager to 'none' in _config.yml"
            )
        if self.manager.needs_manifest and not self.manifest.is_file():
            raise ShellError(f"Manifest not found: {self.manifest}")
        return self.manager.wrap(executable, self.manifest, argv)

    def run(self, args: Sequence[str]) -> int:
        """Run ``inkpot ARGS`` in the environment and return its exit code."""
        cmd = self.command_for(args)
        try:
            completed = subprocess.run(cmd, cwd=self.project_root)
        except FileNotFoundError as exc:
            raise ShellError(f"Cannot execute {cmd[0]}: {exc}") from exc
        except KeyboardInterrupt:
            return 130
        return completed.returncode
