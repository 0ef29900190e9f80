"""Nearest-neighbour texture sampling with edge clamping."""
from __future__ import annotations

from typing import Tuple

import numpy as np

from ...core.utils_color import clamp


def _round_half_away(values: np.ndarray) -> np.ndarray:
    return np.copysign(np.floor(np.abs(values) + 0.5), values)


def interpolate_nearest(x: float, y: float, width: int, height: int) -> Tuple[int, int]:
    """Return the texel index nearest to the normalized coordinate ``(x, y)``.

    Each axis resolves to ``round(coord * dim - 0.5)`` clamped to
    ``[0, dim - 1]``, so coordinates outside ``[0, 1]`` land on the edge
    texel instead of wrapping.
    """

    def nearest(coord: float, size: int) -> int:
        index = float(_round_half_away(np.float64(coord) * size - 0.5))
        return int(clamp(index, 0, size - 1))

    return nearest(x, width), nearest(y, height)


def interpolate_nearest_array(
    u: np.ndarray, v: np.ndarray, width: int, height: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Vectorized :func:`interpolate_nearest` over coordinate arrays."""

    def nearest(coords: np.ndarray, size: int) -> np.ndarray:
        index = _round_half_away(np.asarray(coords, dtype=np.float64) * size - 0.5)
        return np.clip(index, 0, size - 1).astype(np.intp)

    return nearest(u, width), nearest(v, height)


def sample_texture(texture: np.ndarray, u: np.ndarray | float, v: np.ndarray | float) -> np.ndarray:
    """Sample *texture* at normalized ``(u, v)`` with a bottom-left origin.

    *texture* is an ``(H, W, C)`` array. Scalar coordinates return a view of
    a single texel; array coordinates return the gathered texels with shape
    ``u.shape + (C,)``.
    """

    height, width = texture.shape[:2]
    if height == 0 or width == 0:
        raise ValueError("Cannot sample an empty texture")

    # UV maps are exported with the origin at the bottom left.
    if np.ndim(u) == 0 and np.ndim(v) == 0:
        x, y = interpolate_nearest(float(u), 1.0 - float(v), width, height)
        return texture[y, x]
    xs, ys = interpolate_nearest_array(u, 1.0 - np.asarray(v, dtype=np.float64), width, height)
    return texture[ys, xs]
