"""Back-to-front compositing of the body-part layers into one render."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from functools import partial
from typing import Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from ...core import config
from ...core.utils_image import to_rgba_array, to_rgba_image
from ...core.utils_parallel import limited_threads, partition_rows, run_parallel
from ..assets import AssetTable, get_asset_table
from .blend import blend_layer

LOGGER = logging.getLogger("portrait_pipeline.compositing.layers")

Region = Tuple[int, int, int, int]


@dataclass(frozen=True)
class LayerDescriptor:
    """One body-part pass: which UV map, which lighting, and its pre-scan region."""

    name: str
    uv_map: str
    lighting: Optional[str] = None
    region: Optional[Region] = None

    @property
    def optional(self) -> bool:
        return self.region is not None


def build_layer_descriptors(
    variant: str = config.DEFAULT_VARIANT,
    layers: Iterable[Mapping[str, object]] = config.LAYER_ORDER,
) -> Tuple[LayerDescriptor, ...]:
    """Return the draw-ordered descriptors for a body *variant*.

    The slim variant swaps in the narrower maps wherever a layer defines a
    ``slim_uv`` entry.
    """

    if variant not in config.VARIANTS:
        raise ValueError(f"Unknown body variant: {variant!r}")
    descriptors = []
    for entry in layers:
        uv_name = entry["uv"]
        if variant == "slim" and entry.get("slim_uv"):
            uv_name = entry["slim_uv"]
        region = entry.get("region")
        descriptors.append(
            LayerDescriptor(
                name=str(entry["name"]),
                uv_map=str(uv_name),
                lighting=entry.get("lighting"),  # type: ignore[arg-type]
                region=tuple(region) if region is not None else None,  # type: ignore[arg-type]
            )
        )
    return tuple(descriptors)


def scale_region(region: Region, width: int, height: int) -> Tuple[int, int, int, int]:
    """Scale a reference-layout rectangle to a ``width`` x ``height`` texture.

    Returns ``(x0, y0, x1, y1)`` clamped to the texture bounds.
    """

    x, y, w, h = region
    sx = width / config.REFERENCE_SKIN_SIZE
    sy = height / config.REFERENCE_SKIN_SIZE
    x0 = min(max(math.floor(x * sx), 0), width)
    y0 = min(max(math.floor(y * sy), 0), height)
    x1 = min(max(math.ceil((x + w) * sx), 0), width)
    y1 = min(max(math.ceil((y + h) * sy), 0), height)
    return x0, y0, x1, y1


def layer_has_content(texture: np.ndarray, region: Region) -> bool:
    """Return True when any texel inside *region* is not fully transparent."""

    height, width = texture.shape[:2]
    x0, y0, x1, y1 = scale_region(region, width, height)
    return bool(np.any(texture[y0:y1, x0:x1, 3]))


class LayerPipeline:
    """Composite the layers described by *descriptors* in order.

    There is no depth buffer: the descriptor order is the only occlusion
    mechanism. Optional layers are only loaded and composited when their
    source region of the texture holds at least one visible texel, unless
    *cull_overlays* is False.
    """

    def __init__(
        self,
        descriptors: Sequence[LayerDescriptor],
        assets: AssetTable,
        *,
        threads: int = 1,
        cull_overlays: bool = True,
    ) -> None:
        if not descriptors:
            raise ValueError("At least one layer is required")
        self.descriptors = tuple(descriptors)
        self.assets = assets
        self.threads = max(1, int(threads))
        self.cull_overlays = cull_overlays
        self.logger = LOGGER

    def canvas_shape(self) -> Tuple[int, int]:
        return self.assets.uv_map(self.descriptors[0].uv_map).shape[:2]

    def render(self, texture: Image.Image | np.ndarray) -> np.ndarray:
        """Render *texture* and return the ``(H, W, 4)`` ``uint8`` canvas."""

        texture = to_rgba_array(texture)
        height, width = self.canvas_shape()
        canvas = np.zeros((height, width, 4), dtype=np.uint8)
        bands = partition_rows(height, self.threads)
        start = time.perf_counter()

        with limited_threads(self.threads):
            for descriptor in self.descriptors:
                if self.cull_overlays and descriptor.optional and not layer_has_content(texture, descriptor.region):
                    self.logger.debug("Skipping %s: source region is fully transparent", descriptor.name)
                    continue
                self._composite_layer(canvas, texture, descriptor, bands)

        self.logger.debug("Rendered %dx%d canvas in %.3fs", width, height, time.perf_counter() - start)
        return canvas

    def _composite_layer(
        self,
        canvas: np.ndarray,
        texture: np.ndarray,
        descriptor: LayerDescriptor,
        bands: Sequence[slice],
    ) -> None:
        uv_map = self.assets.uv_map(descriptor.uv_map)
        if uv_map.shape[:2] != canvas.shape[:2]:
            raise ValueError(
                f"UV map {descriptor.uv_map!r} is {uv_map.shape[1]}x{uv_map.shape[0]}, "
                f"expected {canvas.shape[1]}x{canvas.shape[0]}"
            )
        lighting = self.assets.lighting(descriptor.lighting) if descriptor.lighting else None
        worker = partial(blend_layer, canvas, texture, uv_map, lighting)
        written = sum(run_parallel(worker, bands, max_workers=self.threads))
        self.logger.debug("Layer %s wrote %d pixels", descriptor.name, written)


def create_render(
    texture: Image.Image | np.ndarray,
    variant: str = config.DEFAULT_VARIANT,
    assets: Optional[AssetTable] = None,
    *,
    threads: int = 1,
    cull_overlays: bool = True,
) -> Image.Image:
    """Render a skin *texture* into a portrait image."""

    pipeline = LayerPipeline(
        build_layer_descriptors(variant),
        assets or get_asset_table(),
        threads=threads,
        cull_overlays=cull_overlays,
    )
    return to_rgba_image(pipeline.render(texture))
