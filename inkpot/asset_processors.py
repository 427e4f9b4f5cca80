"""Static file processors for inkpot.

A static file is written to the destination by the first processor in the
chain that accepts it. Processors are ordered by ``priority`` so the
catch-all copy always comes last.

Key classes:
- ImageOptimizer: Re-encodes PNG, JPEG and WebP images with Pillow.
- JSMinifier: Minifies JavaScript with rjsmin.
- VerbatimCopy: Copies anything else byte for byte.
- ProcessorChain: Priority-ordered list of processors.
"""

from __future__ import annotations

import io
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError
from rjsmin import jsmin


class StaticProcessor(ABC):
    """Writes one kind of static file to the destination."""

    priority = 0

    @abstractmethod
    def accepts(self, path: Path) -> bool:
        ...

    @abstractmethod
    def write(self, source: Path, dest: Path) -> None:
        ...


class ImageOptimizer(StaticProcessor):
    """Optimizes raster images.

    The optimized bytes are kept only when they are smaller than the source.
    Files Pillow cannot decode are copied unchanged.
    """

    priority = 100
    EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

    def accepts(self, path: Path) -> bool:
        return path.suffix.lower() in self.EXTENSIONS

    def write(self, source: Path, dest: Path) -> None:
        try:
            optimized = self._optimize(source)
        except (UnidentifiedImageError, OSError) as exc:
            print(f"Could not optimize {source.name} ({exc}); copying as-is.")
            shutil.copy2(source, dest)
            return
        if len(optimized) < source.stat().st_size:
            dest.write_bytes(optimized)
        else:
            shutil.copy2(source, dest)

    @staticmethod
    def _optimize(source: Path) -> bytes:
        buffer = io.BytesIO()
        with Image.open(source) as img:
            options: dict[str, Any] = {"optimize": True}
            if img.format == "JPEG":
                options["quality"] = "keep"
            img.save(buffer, format=img.format, **options)
        return buffer.getvalue()


class JSMinifier(StaticProcessor):
    """Minifies JavaScript; ``*.min.js`` is left to the plain copy."""

    priority = 80

    def accepts(self, path: Path) -> bool:
        return path.suffix.lower() == ".js" and not path.name.endswith(".min.js")

    def write(self, source: Path, dest: Path) -> None:
        script = source.read_text(encoding="utf-8")
        dest.write_text(jsmin(script), encoding="utf-8")


class VerbatimCopy(StaticProcessor):
    """Copies any file, keeping its metadata."""

    priority = -1

    def accepts(self, path: Path) -> bool:
        return True

    def write(self, source: Path, dest: Path) -> None:
        shutil.copy2(source, dest)


class ProcessorChain:
    """Processors sorted by priority, highest first."""

    def __init__(self, processors: list[StaticProcessor] | None = None):
        self._processors: list[StaticProcessor] = []
        for processor in processors or []:
            self.add(processor)

    def add(self, processor: StaticProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def select(self, path: Path) -> StaticProcessor | None:
        return next((p for p in self._processors if p.accepts(path)), None)

    def write(self, source: Path, dest: Path) -> bool:
        """Write ``source`` to ``dest``; False when nothing accepts it."""
        processor = self.select(source)
        if processor is None:
            return False
        dest.parent.mkdir(parents=True, exist_ok=True)
        processor.write(source, dest)
        return True


def processors_for_config(config: dict[str, Any]) -> ProcessorChain:
    """Build the chain for ``minify_js`` and ``optimize_images``."""
    chain = ProcessorChain([VerbatimCopy()])
    if config.get("minify_js", True):
        chain.add(JSMinifier())
    if config.get("optimize_images"):
        chain.add(ImageOptimizer())
    return chain
