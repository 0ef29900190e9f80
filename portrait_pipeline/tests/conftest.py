"""Synthetic skins and UV maps shared by the renderer tests."""
from __future__ import annotations

from typing import Dict, Tuple

import numpy as np
import pytest

from portrait_pipeline.core import config
from portrait_pipeline.modules.assets import AssetTable

CANVAS_SIZE = (8, 8)

# Atlas rectangles each synthetic UV map samples from. Overlays use exactly
# their pre-scan region so culling can never change the output.
SAMPLE_REGIONS: Dict[str, Tuple[int, int, int, int]] = {
    "legs": (0, 16, 16, 16),
    "left_arm": (32, 48, 16, 16),
    "left_arm_slim": (32, 48, 14, 16),
    "head": (0, 0, 32, 16),
    "torso": (16, 16, 24, 16),
    "right_arm": (40, 16, 16, 16),
    "right_arm_slim": (40, 16, 14, 16),
}
for _entry in config.LAYER_ORDER:
    if _entry["region"] is not None:
        SAMPLE_REGIONS[str(_entry["uv"])] = _entry["region"]  # type: ignore[assignment]
        if _entry["slim_uv"]:
            SAMPLE_REGIONS[str(_entry["slim_uv"])] = _entry["region"]  # type: ignore[assignment]


def encode_unit(values: np.ndarray) -> np.ndarray:
    return np.round(np.clip(values, 0.0, 1.0) * 65535.0).astype(np.uint16)


def make_uv_map(
    region: Tuple[int, int, int, int],
    size: Tuple[int, int] = CANVAS_SIZE,
    *,
    light: float = 0.5,
    mask: np.ndarray | float = 1.0,
    offset: int = 0,
) -> np.ndarray:
    """Build a UV map whose pixels hit texel centres inside *region*."""

    width, height = size
    rx, ry, rw, rh = region
    ys, xs = np.mgrid[0:height, 0:width]
    tx = rx + (xs + offset) % rw
    ty = ry + (ys + offset) % rh
    u = (tx + 0.5) / config.REFERENCE_SKIN_SIZE
    v = 1.0 - (ty + 0.5) / config.REFERENCE_SKIN_SIZE
    quads = np.zeros((height, width, 4), dtype=np.uint16)
    quads[..., 0] = encode_unit(u)
    quads[..., 1] = encode_unit(v)
    quads[..., 2] = encode_unit(np.full((height, width), light))
    quads[..., 3] = encode_unit(np.broadcast_to(mask, (height, width)))
    return quads


def make_skin(seed: int, size: int = 64, *, overlays: bool = True) -> np.ndarray:
    """Random RGBA skin with a mix of opaque, translucent and empty texels."""

    rng = np.random.default_rng(seed)
    skin = rng.integers(0, 256, size=(size, size, 4), dtype=np.uint8)
    skin[..., 3] = rng.choice(np.array([0, 90, 255], dtype=np.uint8), size=(size, size), p=[0.2, 0.3, 0.5])
    if not overlays:
        scale = size // config.REFERENCE_SKIN_SIZE
        for entry in config.LAYER_ORDER:
            if entry["region"] is None:
                continue
            x, y, w, h = entry["region"]  # type: ignore[misc]
            skin[y * scale : (y + h) * scale, x * scale : (x + w) * scale, 3] = 0
    return skin


def make_uv_maps() -> Dict[str, np.ndarray]:
    rng = np.random.default_rng(7)
    maps = {}
    for index, (name, region) in enumerate(sorted(SAMPLE_REGIONS.items())):
        mask = rng.choice(np.array([0.0, 0.4, 1.0]), size=(CANVAS_SIZE[1], CANVAS_SIZE[0]))
        maps[name] = make_uv_map(region, light=0.3 + 0.05 * index, mask=mask, offset=index)
    return maps


@pytest.fixture()
def uv_maps() -> Dict[str, np.ndarray]:
    return make_uv_maps()


@pytest.fixture()
def asset_table(uv_maps) -> AssetTable:
    return AssetTable.from_arrays(uv_maps)
