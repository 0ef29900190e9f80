"""Lighting and gamma-correct alpha blending of sampled texels onto a canvas.

Every destination pixel is handled independently:

1. pixels whose UV mask alpha is zero are skipped without sampling;
2. the texel is sampled and skipped when fully transparent;
3. the colour is lit with the baked lighting scalar times :data:`LIGHTING_GAIN`;
4. fully opaque results replace the canvas colour directly;
5. everything else is interpolated in linear light (exponent :data:`GAMMA`);
6. canvas alpha accumulates and saturates at 1;
7. channels are quantized to 8 bits with round-half-up.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ...core.utils_color import GAMMA, gamma_decode, gamma_encode
from ...core.utils_image import normalize_u8, normalize_u16, quantize_u8
from .sampler import sample_texture

LOGGER = logging.getLogger("portrait_pipeline.compositing.blend")

# The lighting pass is baked at a quarter of its intensity to fit into 8 bits;
# a gain of 4 reads too bright, so 2 is used.
LIGHTING_GAIN = 2.0

__all__ = [
    "GAMMA",
    "LIGHTING_GAIN",
    "apply_lighting",
    "blend_layer",
    "blend_pixel",
    "gamma_blend",
]


def apply_lighting(color: np.ndarray | float, light: np.ndarray | float) -> np.ndarray:
    """Scale normalized *color* by the baked *light* intensity."""

    return np.asarray(color, dtype=np.float64) * light * LIGHTING_GAIN


def gamma_blend(dst: np.ndarray | float, src: np.ndarray | float, alpha: np.ndarray | float) -> np.ndarray:
    """Interpolate *dst* towards *src* by *alpha* in linear light."""

    alpha = np.asarray(alpha, dtype=np.float64)
    linear = gamma_decode(dst) * (1.0 - alpha) + gamma_decode(src) * alpha
    return gamma_encode(linear)


def _composite(dst: np.ndarray, texels: np.ndarray, light: np.ndarray, mask_alpha: np.ndarray) -> np.ndarray:
    """Blend ``N`` texels onto ``N`` canvas pixels.

    *dst* and *texels* are ``(N, 4)`` ``uint8``; *light* is ``(N, 1)`` or
    ``(N, 3)`` and *mask_alpha* ``(N,)``, both normalized. Returns the new
    ``(N, 4)`` canvas values.
    """

    result = dst.copy()
    active = (mask_alpha != 0) & (texels[:, 3] != 0)
    if not np.any(active):
        return result

    lit = apply_lighting(normalize_u8(texels[active, :3]), light[active])
    alpha = normalize_u8(texels[active, 3]) * mask_alpha[active]
    current = dst[active]

    rgb = lit
    partial = alpha != 1.0
    if np.any(partial):
        rgb = lit.copy()
        rgb[partial] = gamma_blend(normalize_u8(current[partial, :3]), lit[partial], alpha[partial, None])

    accumulated = np.minimum(normalize_u8(current[:, 3]) + alpha, 1.0)
    result[active, :3] = quantize_u8(rgb)
    result[active, 3] = quantize_u8(accumulated)
    return result


def blend_pixel(
    dst: np.ndarray,
    texel: np.ndarray,
    light: np.ndarray | float,
    mask_alpha: float,
) -> np.ndarray:
    """Blend a single *texel* onto the canvas value *dst*.

    *light* is either one scalar or one value per colour channel, both
    normalized to ``[0, 1]``. Returns the new RGBA ``uint8`` value.
    """

    dst_row = np.asarray(dst, dtype=np.uint8).reshape(1, 4)
    texel_row = np.asarray(texel, dtype=np.uint8).reshape(1, 4)
    light_row = np.asarray(light, dtype=np.float64).reshape(1, -1)
    mask_row = np.asarray([mask_alpha], dtype=np.float64)
    return _composite(dst_row, texel_row, light_row, mask_row)[0]


def blend_layer(
    canvas: np.ndarray,
    texture: np.ndarray,
    uv_map: np.ndarray,
    lighting: Optional[np.ndarray] = None,
    rows: slice = slice(None),
) -> int:
    """Composite one body-part layer onto *canvas* in place.

    *uv_map* holds ``(u, v, lighting, mask_alpha)`` at 16 bits per channel.
    When *lighting* is ``None`` the UV map's third channel is the lighting
    scalar; otherwise *lighting* is an RGBA8 raster of the same size lighting
    each colour channel separately. Only the row band *rows* is touched, so
    disjoint bands may run concurrently. Returns the number of pixels written.
    """

    if uv_map.shape[:2] != canvas.shape[:2]:
        raise ValueError(f"UV map size {uv_map.shape[:2]} does not match canvas size {canvas.shape[:2]}")
    if lighting is not None and lighting.shape[:2] != uv_map.shape[:2]:
        raise ValueError(f"Lighting size {lighting.shape[:2]} does not match UV map size {uv_map.shape[:2]}")

    band = uv_map[rows]
    ys, xs = np.nonzero(band[..., 3])
    if ys.size == 0:
        return 0

    quads = band[ys, xs]
    texels = sample_texture(texture, normalize_u16(quads[:, 0]), normalize_u16(quads[:, 1]))
    visible = texels[:, 3] != 0
    if not np.any(visible):
        return 0
    ys, xs, quads, texels = ys[visible], xs[visible], quads[visible], texels[visible]

    if lighting is None:
        light = normalize_u16(quads[:, 2])[:, None]
    else:
        light = normalize_u8(lighting[rows][ys, xs, :3])

    target = canvas[rows]
    target[ys, xs] = _composite(target[ys, xs], texels, light, normalize_u16(quads[:, 3]))
    return int(ys.size)
