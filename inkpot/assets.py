"""Static file pipeline for inkpot.

Copies every static file found by the loader into the destination,
preserving its path relative to the site root and routing it through the
processor chain (JavaScript minification, image optimization, copying).
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .asset_processors import ProcessorChain, processors_for_config
from .content import StaticFile


class AssetPipeline:
    """Writes static files to the output directory.

    Attributes:
        output_dir: Destination directory.
        processors: Chain deciding how each file is written.
    """

    def __init__(
        self,
        output_dir: Path,
        config: dict[str, Any],
        processors: ProcessorChain | None = None,
    ):
        self.output_dir = output_dir
        self.processors = processors or processors_for_config(config)

    def run(self, static_files: Iterable[StaticFile]) -> list[Path]:
        """Write all static files.

        Returns:
            Destination paths that were written.
        """
        written: list[Path] = []
        for static in static_files:
            dest = self.output_dir / static.relative_path
            if self.processors.write(static.path, dest):
                written.append(dest)
        return written
