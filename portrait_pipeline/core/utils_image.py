"""Image utility helpers for channel normalization and quantization."""
from __future__ import annotations

import numpy as np
from PIL import Image

U8_MAX = 255.0
U16_MAX = 65535.0


def normalize_u8(values: np.ndarray | int) -> np.ndarray:
    """Map 8-bit channel values onto ``[0, 1]`` (0 -> 0.0, 255 -> 1.0)."""

    return np.asarray(values, dtype=np.float64) / U8_MAX


def normalize_u16(values: np.ndarray | int) -> np.ndarray:
    """Map 16-bit channel values onto ``[0, 1]`` (0 -> 0.0, 65535 -> 1.0)."""

    return np.asarray(values, dtype=np.float64) / U16_MAX


def quantize_u8(values: np.ndarray) -> np.ndarray:
    """Quantize normalized floats to ``uint8`` with round-half-up and clamping."""

    scaled = np.floor(np.asarray(values, dtype=np.float64) * U8_MAX + 0.5)
    return np.clip(scaled, 0.0, U8_MAX).astype(np.uint8)


def to_u8_clamped(value: float) -> int:
    """Scalar form of :func:`quantize_u8`."""

    return int(quantize_u8(np.float64(value)))


def to_rgba_array(image: Image.Image | np.ndarray) -> np.ndarray:
    """Return *image* as an ``(H, W, 4)`` ``uint8`` array."""

    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGBA"), dtype=np.uint8)
    array = np.asarray(image)
    if array.dtype != np.uint8 or array.ndim != 3 or array.shape[2] != 4:
        raise ValueError(f"Expected an (H, W, 4) uint8 array, got {array.dtype} {array.shape}")
    return array


def to_rgba_image(array: np.ndarray) -> Image.Image:
    """Wrap an ``(H, W, 4)`` ``uint8`` array into a Pillow RGBA image."""

    return Image.fromarray(np.ascontiguousarray(array, dtype=np.uint8), mode="RGBA")


def freeze(array: np.ndarray) -> np.ndarray:
    """Mark *array* read-only and return it."""

    array.flags.writeable = False
    return array
