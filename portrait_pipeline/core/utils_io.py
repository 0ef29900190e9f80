"""I/O helpers for the portrait renderer."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError


LOGGER = logging.getLogger("portrait_pipeline.io")


def ensure_dir(path: Path) -> Path:
    """Ensure that *path* exists and return it."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def load_rgba(path: Path | str) -> Image.Image:
    """Open *path* and return a detached RGBA copy.

    Raises :class:`ValueError` when the file is not a readable image.
    """

    try:
        with Image.open(path) as img:
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Could not read image {path}: {exc}") from exc


class SafeFileManager:
    """Write images below *base_dir* without leaving partial files behind."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        ensure_dir(self.base_dir)

    def resolve(self, path: Path | str) -> Path:
        """Resolve *path* relative to :attr:`base_dir`."""

        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        ensure_dir(candidate.parent)
        return candidate

    def atomic_save(self, image: Image.Image, path: Path | str, *, format: Optional[str] = None) -> Path:
        """Save *image* to a temporary file, then move it onto *path*."""

        destination = self.resolve(path)
        temp_path = destination.with_name(f".{destination.name}.tmp")
        try:
            image.save(temp_path, format=format or "PNG")
            os.replace(temp_path, destination)
        finally:
            if temp_path.exists():
                temp_path.unlink()
        LOGGER.debug("Saved %s", destination)
        return destination
