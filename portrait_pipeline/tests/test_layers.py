"""Tests for the layer pipeline: draw order, variants and overlay culling."""
from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from portrait_pipeline.core import config
from portrait_pipeline.modules.assets import AssetLoadError, AssetTable
from portrait_pipeline.modules.compositing.layers import (
    LayerDescriptor,
    LayerPipeline,
    build_layer_descriptors,
    create_render,
    layer_has_content,
    scale_region,
)

from conftest import CANVAS_SIZE, make_skin, make_uv_map


def test_classic_draw_order() -> None:
    names = [descriptor.name for descriptor in build_layer_descriptors("classic")]
    assert names == [
        "legs",
        "left_arm",
        "head",
        "torso",
        "pants",
        "left_sleeve",
        "jacket",
        "hat",
        "right_arm",
        "right_sleeve",
    ]


def test_slim_variant_swaps_arm_maps() -> None:
    classic = build_layer_descriptors("classic")
    slim = build_layer_descriptors("slim")
    assert [d.name for d in slim] == [d.name for d in classic]
    changed = {d.name: d.uv_map for c, d in zip(classic, slim) if c.uv_map != d.uv_map}
    assert changed == {
        "left_arm": "left_arm_slim",
        "left_sleeve": "left_sleeve_slim",
        "right_arm": "right_arm_slim",
        "right_sleeve": "right_sleeve_slim",
    }


def test_unknown_variant_rejected() -> None:
    with pytest.raises(ValueError):
        build_layer_descriptors("wide")


def test_only_overlays_are_optional() -> None:
    optional = {d.name for d in build_layer_descriptors() if d.optional}
    assert optional == {"pants", "left_sleeve", "jacket", "hat", "right_sleeve"}


def test_scale_region_follows_texture_size() -> None:
    assert scale_region((32, 0, 32, 16), 64, 64) == (32, 0, 64, 16)
    assert scale_region((32, 0, 32, 16), 128, 128) == (64, 0, 128, 32)
    assert scale_region((0, 48, 16, 16), 64, 32) == (0, 24, 16, 32)


def test_layer_has_content() -> None:
    texture = np.zeros((64, 64, 4), dtype=np.uint8)
    assert not layer_has_content(texture, (32, 0, 32, 16))
    texture[15, 63, 3] = 1
    assert layer_has_content(texture, (32, 0, 32, 16))
    assert not layer_has_content(texture, (0, 32, 16, 32))


def test_later_layers_draw_over_earlier_ones() -> None:
    texture = np.zeros((64, 64, 4), dtype=np.uint8)
    texture[0:8, 0:8] = (200, 0, 0, 255)
    texture[0:8, 8:16] = (0, 0, 200, 255)
    assets = AssetTable.from_arrays(
        {
            "back": make_uv_map((0, 0, 8, 8)),
            "front": make_uv_map((8, 0, 8, 8)),
        }
    )
    descriptors = [LayerDescriptor("back", "back"), LayerDescriptor("front", "front")]
    canvas = LayerPipeline(descriptors, assets).render(texture)
    assert (canvas[..., 2] == 200).all()
    assert (canvas[..., 0] == 0).all()

    reversed_canvas = LayerPipeline(descriptors[::-1], assets).render(texture)
    assert (reversed_canvas[..., 0] == 200).all()


def test_canvas_starts_transparent() -> None:
    texture = np.zeros((64, 64, 4), dtype=np.uint8)
    assets = AssetTable.from_arrays({"only": make_uv_map((0, 0, 8, 8))})
    canvas = LayerPipeline([LayerDescriptor("only", "only")], assets).render(texture)
    assert canvas.shape == (CANVAS_SIZE[1], CANVAS_SIZE[0], 4)
    assert not canvas.any()


@pytest.mark.parametrize("seed", [1, 2, 3])
@pytest.mark.parametrize("overlays", [True, False])
@pytest.mark.parametrize("variant", ["classic", "slim"])
def test_culling_never_changes_output(asset_table, seed: int, overlays: bool, variant: str) -> None:
    skin = make_skin(seed, overlays=overlays)
    descriptors = build_layer_descriptors(variant)
    culled = LayerPipeline(descriptors, asset_table, cull_overlays=True).render(skin)
    full = LayerPipeline(descriptors, asset_table, cull_overlays=False).render(skin)
    np.testing.assert_array_equal(culled, full)


def test_culled_overlays_are_never_loaded(uv_maps) -> None:
    base_only = {name: uv for name, uv in uv_maps.items() if name in {"legs", "left_arm", "head", "torso", "right_arm"}}
    assets = AssetTable.from_arrays(base_only)
    skin = make_skin(4, overlays=False)
    descriptors = build_layer_descriptors("classic")
    LayerPipeline(descriptors, assets, cull_overlays=True).render(skin)
    with pytest.raises(AssetLoadError):
        LayerPipeline(descriptors, assets, cull_overlays=False).render(skin)


def test_hd_skin_culling(asset_table) -> None:
    skin = make_skin(9, size=128, overlays=False)
    descriptors = build_layer_descriptors("classic")
    culled = LayerPipeline(descriptors, asset_table).render(skin)
    full = LayerPipeline(descriptors, asset_table, cull_overlays=False).render(skin)
    np.testing.assert_array_equal(culled, full)


def test_threads_do_not_change_output(asset_table) -> None:
    skin = make_skin(12)
    descriptors = build_layer_descriptors("classic")
    single = LayerPipeline(descriptors, asset_table, threads=1).render(skin)
    threaded = LayerPipeline(descriptors, asset_table, threads=3).render(skin)
    np.testing.assert_array_equal(single, threaded)


def test_alpha_never_decreases_between_layers(asset_table) -> None:
    skin = make_skin(21)
    descriptors = build_layer_descriptors("classic")
    previous = np.zeros((CANVAS_SIZE[1], CANVAS_SIZE[0]), dtype=np.uint8)
    for count in range(1, len(descriptors) + 1):
        canvas = LayerPipeline(descriptors[:count], asset_table, cull_overlays=False).render(skin)
        assert (canvas[..., 3] >= previous).all()
        previous = canvas[..., 3]


def test_mismatched_layer_size_fails_fast() -> None:
    assets = AssetTable.from_arrays(
        {"a": make_uv_map((0, 0, 8, 8)), "b": make_uv_map((0, 0, 8, 8), size=(4, 4))}
    )
    pipeline = LayerPipeline([LayerDescriptor("a", "a"), LayerDescriptor("b", "b")], assets)
    with pytest.raises(ValueError):
        pipeline.render(np.full((64, 64, 4), 255, dtype=np.uint8))


def test_create_render_returns_rgba_image(asset_table) -> None:
    skin = Image.fromarray(make_skin(5), mode="RGBA")
    render = create_render(skin, "slim", asset_table)
    assert render.mode == "RGBA"
    assert render.size == CANVAS_SIZE
    expected = LayerPipeline(build_layer_descriptors("slim"), asset_table).render(skin)
    np.testing.assert_array_equal(np.asarray(render), expected)


def test_config_layer_order_is_complete() -> None:
    assert {entry["name"] for entry in config.LAYER_ORDER} == {d.name for d in build_layer_descriptors()}
