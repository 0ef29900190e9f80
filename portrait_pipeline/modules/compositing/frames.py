"""Placement of the finished render into fixed-size UI portrait frames."""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Tuple

import cv2
import numpy as np
from PIL import Image

from ...core.utils_image import to_rgba_array, to_rgba_image
from ...core.utils_parallel import run_parallel
from ..assets import FrameReference

LOGGER = logging.getLogger("portrait_pipeline.compositing.frames")


def inverse_maps(
    size: Tuple[int, int], scale: float, translate_x: float, translate_y: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Return the source coordinate of every destination pixel.

    The placement maps render -> frame as ``dst = src * scale + translate``;
    resampling walks the frame grid, so each destination ``(x, y)`` reads
    from ``((x - translate_x) / scale, (y - translate_y) / scale)``.
    """

    if not scale > 0:
        raise ValueError(f"Frame scale must be positive, got {scale}")
    width, height = size
    grid_y, grid_x = np.meshgrid(
        np.arange(height, dtype=np.float64), np.arange(width, dtype=np.float64), indexing="ij"
    )
    map_x = ((grid_x - translate_x) / scale).astype(np.float32)
    map_y = ((grid_y - translate_y) / scale).astype(np.float32)
    return map_x, map_y


def warp_render(
    render: Image.Image | np.ndarray,
    size: Tuple[int, int],
    scale: float,
    translate_x: float,
    translate_y: float,
) -> np.ndarray:
    """Bilinearly resample *render* into a ``size`` raster.

    Samples falling outside the render read transparent black.
    """

    source = to_rgba_array(render)
    map_x, map_y = inverse_maps(size, scale, translate_x, translate_y)
    return cv2.remap(
        np.ascontiguousarray(source),
        map_x,
        map_y,
        interpolation=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )


def create_frame_image(
    render: Image.Image | np.ndarray,
    reference: Image.Image | np.ndarray,
    scale: float,
    translate_x: float,
    translate_y: float,
) -> Image.Image:
    """Align *render* with a frame *reference* and mask it by the reference alpha.

    The output alpha is the minimum of the warped render alpha and the
    reference alpha, so the reference can only hide parts of the render.
    """

    mask = to_rgba_array(reference)[..., 3]
    height, width = mask.shape
    warped = warp_render(render, (width, height), scale, translate_x, translate_y)
    warped[..., 3] = np.minimum(warped[..., 3], mask)
    return to_rgba_image(warped)


def create_frame_images(
    render: Image.Image | np.ndarray,
    frames: Mapping[str, FrameReference],
    *,
    threads: int = 1,
) -> Dict[str, Image.Image]:
    """Compose *render* into every frame reference, keyed by frame name."""

    names = sorted(frames)

    def compose(name: str) -> Image.Image:
        frame = frames[name]
        LOGGER.debug("Composing frame %s (%dx%d)", name, *frame.size)
        return create_frame_image(render, frame.image, frame.scale, frame.translate_x, frame.translate_y)

    return dict(zip(names, run_parallel(compose, names, max_workers=threads)))
