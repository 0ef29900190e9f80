"""Configuration module for the skin portrait renderer."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional, Tuple


BASE_DIR = Path(__file__).resolve().parent.parent

PATH_ASSETS = BASE_DIR / "assets"
PATH_OUTPUT = Path.cwd() / "output"

DEFAULT_VARIANT = "classic"
VARIANTS = ("classic", "slim")
COLOR_CORRECTION_MODES = ("none", "forward", "inverse")

# Skins are authored against a 64x64 atlas; overlay regions are scaled to the
# actual texture size before the pre-scan.
REFERENCE_SKIN_SIZE = 64

# Back-to-front draw order. Overlays carry the atlas rectangle (x, y, w, h)
# they sample from and are skipped when that rectangle is fully transparent.
LAYER_ORDER: Tuple[Dict[str, object], ...] = (
    {"name": "legs", "uv": "legs", "lighting": None, "region": None, "slim_uv": None},
    {"name": "left_arm", "uv": "left_arm", "lighting": None, "region": None, "slim_uv": "left_arm_slim"},
    {"name": "head", "uv": "head", "lighting": None, "region": None, "slim_uv": None},
    {"name": "torso", "uv": "torso", "lighting": None, "region": None, "slim_uv": None},
    {"name": "pants", "uv": "pants", "lighting": None, "region": (0, 32, 16, 32), "slim_uv": None},
    {
        "name": "left_sleeve",
        "uv": "left_sleeve",
        "lighting": None,
        "region": (48, 48, 16, 16),
        "slim_uv": "left_sleeve_slim",
    },
    {"name": "jacket", "uv": "jacket", "lighting": None, "region": (16, 32, 24, 16), "slim_uv": None},
    {"name": "hat", "uv": "hat", "lighting": None, "region": (32, 0, 32, 16), "slim_uv": None},
    {"name": "right_arm", "uv": "right_arm", "lighting": None, "region": None, "slim_uv": "right_arm_slim"},
    {
        "name": "right_sleeve",
        "uv": "right_sleeve",
        "lighting": None,
        "region": (40, 32, 16, 16),
        "slim_uv": "right_sleeve_slim",
    },
)

# Placement of the render inside each UI portrait slot. The transforms are
# tied to the resolution of the shipped UV maps.
FRAME_TRANSFORMS: Dict[str, Dict[str, object]] = {
    "chara_3": {
        "file": "chara_3_pickel_00.png",
        "scale": 0.64225626,
        "translate_x": -456.55612,
        "translate_y": 11.757321,
    },
    "chara_4": {
        "file": "chara_4_pickel_00.png",
        "scale": 0.116441004,
        "translate_x": -90.16959,
        "translate_y": 9.084564,
    },
    "chara_6": {
        "file": "chara_6_pickel_00.png",
        "scale": 0.469014,
        "translate_x": -480.87906,
        "translate_y": -96.13269,
    },
}


@dataclass
class RenderConfig:
    """Runtime configuration for the portrait renderer."""

    assets_path: Path = PATH_ASSETS
    output_path: Path = PATH_OUTPUT
    variant: str = DEFAULT_VARIANT
    threads: int = 1
    cull_overlays: bool = True
    render_frames: bool = True
    color_correction: str = "none"
    log_file: Optional[Path] = None

    def as_dict(self) -> Dict[str, object]:
        """Return the configuration as a plain dictionary."""

        return {
            "PATH_ASSETS": self.assets_path,
            "PATH_OUTPUT": self.output_path,
            "VARIANT": self.variant,
            "THREADS": self.threads,
            "CULL_OVERLAYS": self.cull_overlays,
            "RENDER_FRAMES": self.render_frames,
            "COLOR_CORRECTION": self.color_correction,
            "LOG_FILE": self.log_file,
        }


def build_config(overrides: Optional[Mapping[str, object]] = None) -> Dict[str, object]:
    """Create a configuration dictionary with optional overrides.

    Unknown keys are ignored. Invalid variants, color-correction modes and
    thread counts raise :class:`ValueError`.
    """

    mutable: MutableMapping[str, object] = RenderConfig().as_dict()
    if overrides:
        for key, value in overrides.items():
            if key in mutable:
                mutable[key] = value
    if mutable["VARIANT"] not in VARIANTS:
        raise ValueError(f"Unknown body variant: {mutable['VARIANT']!r}")
    if mutable["COLOR_CORRECTION"] not in COLOR_CORRECTION_MODES:
        raise ValueError(f"Unknown color correction mode: {mutable['COLOR_CORRECTION']!r}")
    if int(mutable["THREADS"]) < 1:  # type: ignore[arg-type]
        raise ValueError("THREADS must be at least 1")
    return dict(mutable)
