"""Texture sampling, lighting, layer compositing and frame placement."""
from __future__ import annotations

from .blend import blend_layer, blend_pixel, gamma_blend
from .frames import create_frame_image, create_frame_images, warp_render
from .layers import LayerDescriptor, LayerPipeline, build_layer_descriptors, create_render
from .sampler import interpolate_nearest, sample_texture

__all__ = [
    "blend_layer",
    "blend_pixel",
    "gamma_blend",
    "create_frame_image",
    "create_frame_images",
    "warp_render",
    "LayerDescriptor",
    "LayerPipeline",
    "build_layer_descriptors",
    "create_render",
    "interpolate_nearest",
    "sample_texture",
]
