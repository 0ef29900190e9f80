"""Process-wide table of the baked, read-only render assets."""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import cv2
import numpy as np

from ..core import config
from ..core.utils_image import freeze, to_rgba_array
from ..core.utils_io import load_rgba

LOGGER = logging.getLogger("portrait_pipeline.assets")

_TABLE_REGISTRY: dict[Path, "AssetTable"] = {}
_TABLE_REGISTRY_GUARD = threading.Lock()


class AssetLoadError(RuntimeError):
    """Raised when a baked asset is missing or malformed."""


@dataclass(frozen=True)
class FrameReference:
    """A UI portrait slot: destination raster plus render placement."""

    name: str
    image: np.ndarray
    scale: float
    translate_x: float
    translate_y: float

    @property
    def size(self) -> tuple[int, int]:
        height, width = self.image.shape[:2]
        return width, height


def read_uv_map(path: Path) -> np.ndarray:
    """Load a 16-bit RGBA UV map as a read-only ``(H, W, 4)`` ``uint16`` array."""

    if not path.is_file():
        raise AssetLoadError(f"UV map not found: {path}")
    raw = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if raw is None:
        raise AssetLoadError(f"UV map could not be decoded: {path}")
    # Anything below 16 bits per channel visibly degrades sampled edges.
    if raw.dtype != np.uint16:
        raise AssetLoadError(f"Expected RGBA 16 bit for UVs, got {raw.dtype} in {path}")
    if raw.ndim != 3 or raw.shape[2] != 4:
        raise AssetLoadError(f"Expected 4 channels for UVs, got shape {raw.shape} in {path}")
    return freeze(cv2.cvtColor(raw, cv2.COLOR_BGRA2RGBA))


def read_rgba8(path: Path, kind: str) -> np.ndarray:
    """Load an 8-bit raster as a read-only ``(H, W, 4)`` ``uint8`` array."""

    if not path.is_file():
        raise AssetLoadError(f"{kind} not found: {path}")
    try:
        image = load_rgba(path)
    except ValueError as exc:
        raise AssetLoadError(str(exc)) from exc
    return freeze(np.array(image, dtype=np.uint8))


def _parse_frame_manifest(path: Path) -> Dict[str, Dict[str, object]]:
    try:
        manifest = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise AssetLoadError(f"Malformed frame manifest {path}: {exc}") from exc
    if not isinstance(manifest, dict):
        raise AssetLoadError(f"Frame manifest {path} must map frame names to transforms")
    return manifest


class AssetTable:
    """Lazily loaded, immutable UV maps, lighting rasters and frame references.

    Assets are read on first use and cached for the lifetime of the table.
    Every returned array is read-only.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self._uv_maps: Dict[str, np.ndarray] = {}
        self._lighting: Dict[str, np.ndarray] = {}
        self._frames: Optional[Dict[str, FrameReference]] = None
        self._lock = threading.Lock()

    @classmethod
    def from_arrays(
        cls,
        uv_maps: Mapping[str, np.ndarray],
        lighting: Optional[Mapping[str, np.ndarray]] = None,
        frames: Optional[Mapping[str, FrameReference]] = None,
    ) -> "AssetTable":
        """Build a table from in-memory arrays instead of files."""

        table = cls(Path("<memory>"))
        for name, array in uv_maps.items():
            array = np.array(array, dtype=np.uint16)
            if array.ndim != 3 or array.shape[2] != 4:
                raise AssetLoadError(f"UV map {name!r} must have shape (H, W, 4), got {array.shape}")
            table._uv_maps[name] = freeze(array)
        for name, array in (lighting or {}).items():
            table._lighting[name] = freeze(np.array(to_rgba_array(array)))
        table._frames = dict(frames or {})
        return table

    def uv_map(self, name: str) -> np.ndarray:
        with self._lock:
            cached = self._uv_maps.get(name)
            if cached is None:
                LOGGER.debug("Loading UV map %s", name)
                cached = read_uv_map(self.root / "uvs" / f"{name}.png")
                self._uv_maps[name] = cached
        return cached

    def lighting(self, name: str) -> np.ndarray:
        with self._lock:
            cached = self._lighting.get(name)
            if cached is None:
                LOGGER.debug("Loading lighting map %s", name)
                cached = read_rgba8(self.root / "lighting" / f"{name}.png", "Lighting map")
                self._lighting[name] = cached
        return cached

    def frames(self) -> Dict[str, FrameReference]:
        """Return every frame reference keyed by slot name."""

        with self._lock:
            if self._frames is None:
                self._frames = self._load_frames()
            return dict(self._frames)

    def _load_frames(self) -> Dict[str, FrameReference]:
        manifest_path = self.root / "frames.json"
        if manifest_path.is_file():
            manifest = _parse_frame_manifest(manifest_path)
        else:
            manifest = config.FRAME_TRANSFORMS
        frames: Dict[str, FrameReference] = {}
        for name, entry in sorted(manifest.items()):
            try:
                file_name = str(entry["file"])  # type: ignore[index]
                scale = float(entry["scale"])  # type: ignore[index]
                translate_x = float(entry["translate_x"])  # type: ignore[index]
                translate_y = float(entry["translate_y"])  # type: ignore[index]
            except (KeyError, TypeError, ValueError) as exc:
                raise AssetLoadError(f"Invalid transform for frame {name!r}: {exc}") from exc
            image = read_rgba8(self.root / "frames" / file_name, "Frame reference")
            frames[name] = FrameReference(name, image, scale, translate_x, translate_y)
        LOGGER.debug("Loaded %d frame references from %s", len(frames), self.root)
        return frames


def get_asset_table(root: Path | str | None = None) -> AssetTable:
    """Return the shared :class:`AssetTable` for *root*, creating it once."""

    key = Path(root or config.PATH_ASSETS).resolve()
    with _TABLE_REGISTRY_GUARD:
        table = _TABLE_REGISTRY.get(key)
        if table is None:
            table = AssetTable(key)
            _TABLE_REGISTRY[key] = table
    return table
