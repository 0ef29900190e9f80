"""End-to-end portrait generation: skin file in, render and frame images out."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from PIL import Image

from ..core.utils_image import to_rgba_image
from ..core.utils_io import SafeFileManager, load_rgba
from .assets import get_asset_table
from .compositing import LayerPipeline, build_layer_descriptors, create_frame_images
from .skin_prep import color_correct, is_legacy_layout, normalize_legacy_layout

LOGGER = logging.getLogger("portrait_pipeline.portrait")

RENDER_FILENAME = "output.png"


@dataclass
class PortraitResult:
    """The render and the frame composites produced for one skin."""

    render: Image.Image
    frames: Dict[str, Image.Image] = field(default_factory=dict)


class PortraitPipeline:
    """Render a skin and compose it into the configured UI frames."""

    def __init__(self, cfg: Dict[str, object]) -> None:
        self.config = cfg
        self.assets = get_asset_table(Path(cfg["PATH_ASSETS"]))  # type: ignore[arg-type]
        self.output_path = Path(cfg["PATH_OUTPUT"])  # type: ignore[arg-type]
        self.variant = str(cfg["VARIANT"])
        self.threads = int(cfg["THREADS"])  # type: ignore[arg-type]
        self.render_frames = bool(cfg["RENDER_FRAMES"])
        self.color_correction = str(cfg["COLOR_CORRECTION"])
        self.layers = LayerPipeline(
            build_layer_descriptors(self.variant),
            self.assets,
            threads=self.threads,
            cull_overlays=bool(cfg["CULL_OVERLAYS"]),
        )
        self.logger = LOGGER
        self.logger.debug("Pipeline configured with %s", cfg)

    def prepare(self, skin: Image.Image) -> Image.Image:
        """Normalize the layout and apply the configured color correction."""

        if is_legacy_layout(skin):
            skin = normalize_legacy_layout(skin)
        if self.color_correction != "none":
            skin = color_correct(skin, inverse=self.color_correction == "inverse")
        return skin

    def generate(self, skin: Image.Image) -> PortraitResult:
        start = time.perf_counter()
        render = to_rgba_image(self.layers.render(self.prepare(skin)))
        result = PortraitResult(render)
        if self.render_frames:
            result.frames = create_frame_images(render, self.assets.frames(), threads=self.threads)
        self.logger.info(
            "Rendered %s variant with %d frames in %.2fs",
            self.variant,
            len(result.frames),
            time.perf_counter() - start,
        )
        return result

    def run(self, skin_path: Path) -> Dict[str, Path]:
        """Render *skin_path* and write every output image; return their paths."""

        self.logger.info("Rendering %s", skin_path.name)
        result = self.generate(load_rgba(skin_path))
        manager = SafeFileManager(self.output_path)
        written = {"render": manager.atomic_save(result.render, RENDER_FILENAME)}
        for name, image in result.frames.items():
            written[name] = manager.atomic_save(image, f"{name}_custom.png")
        return written
