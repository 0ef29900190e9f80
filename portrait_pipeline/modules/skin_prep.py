"""Skin preparation applied before rendering: legacy layout and color curve."""
from __future__ import annotations

import logging

import numpy as np
from PIL import Image, ImageOps

from ..core.config import REFERENCE_SKIN_SIZE
from ..core.utils_color import correction_curve
from ..core.utils_image import normalize_u8, quantize_u8, to_rgba_image

LOGGER = logging.getLogger("portrait_pipeline.skin_prep")

# Face rectangles (x, y, w, h) inside a 16x16 limb block of the reference
# layout, paired with the face they take when the limb is mirrored.
_LIMB_FACES = (
    ((4, 0, 4, 4), (4, 0, 4, 4)),  # top
    ((8, 0, 4, 4), (8, 0, 4, 4)),  # bottom
    ((8, 4, 4, 12), (0, 4, 4, 12)),  # left -> right
    ((4, 4, 4, 12), (4, 4, 4, 12)),  # front
    ((0, 4, 4, 12), (8, 4, 4, 12)),  # right -> left
    ((12, 4, 4, 12), (12, 4, 4, 12)),  # back
)

# (source block, destination block) origins: right leg and right arm are
# mirrored into the left limb slots of the square layout.
_LEGACY_LIMBS = (
    ((0, 16), (16, 48)),
    ((40, 16), (32, 48)),
)


def is_legacy_layout(image: Image.Image) -> bool:
    width, height = image.size
    return width == 2 * height


def normalize_legacy_layout(image: Image.Image) -> Image.Image:
    """Convert a 2:1 legacy skin into the square layout.

    Square skins are returned unchanged (as an RGBA copy). Any other aspect
    ratio raises :class:`ValueError`.
    """

    rgba = image.convert("RGBA")
    width, height = rgba.size
    if width == height:
        return rgba
    if not is_legacy_layout(rgba) or width % REFERENCE_SKIN_SIZE:
        raise ValueError(f"Unsupported skin dimensions {width}x{height}")

    unit = width // REFERENCE_SKIN_SIZE
    converted = Image.new("RGBA", (width, width), (0, 0, 0, 0))
    converted.paste(rgba, (0, 0))
    for (src_x, src_y), (dst_x, dst_y) in _LEGACY_LIMBS:
        for (fx, fy, fw, fh), (tx, ty, _, _) in _LIMB_FACES:
            box = (
                (src_x + fx) * unit,
                (src_y + fy) * unit,
                (src_x + fx + fw) * unit,
                (src_y + fy + fh) * unit,
            )
            face = ImageOps.mirror(rgba.crop(box))
            converted.paste(face, ((dst_x + tx) * unit, (dst_y + ty) * unit))
    LOGGER.info("Converted legacy %dx%d skin to %dx%d", width, height, width, width)
    return converted


def color_correct(image: Image.Image, *, inverse: bool = False) -> Image.Image:
    """Apply the color-correction curve to the RGB channels of *image*."""

    array = np.array(image.convert("RGBA"), dtype=np.uint8)
    rgb = correction_curve(normalize_u8(array[..., :3]), inverse=inverse)
    array[..., :3] = quantize_u8(rgb)
    return to_rgba_image(array)
