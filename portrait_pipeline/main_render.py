"""Command line interface for the skin portrait renderer."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, Optional, Sequence

from .core import config

LOGGER = logging.getLogger("portrait_pipeline.main_render")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"Expected a value >= 1, got {number}")
    return number


def _configure_logging(log_path: Optional[Path], verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8", delay=True)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    logging.basicConfig(level=level, handlers=handlers)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a skin texture into UI portraits")
    parser.add_argument("skin", type=Path, help="Skin texture (RGBA PNG)")
    parser.add_argument("--output", type=Path, default=config.PATH_OUTPUT, help="Directory to write renders")
    parser.add_argument("--assets", type=Path, default=config.PATH_ASSETS, help="Directory with UV maps and frames")
    parser.add_argument("--slim", action="store_true", help="Use the slim arm layers")
    parser.add_argument("--threads", type=_positive_int, default=1, help="Number of worker threads")
    parser.add_argument("--no-frames", dest="frames", action="store_false", help="Only write the render")
    parser.add_argument(
        "--no-cull",
        dest="cull",
        action="store_false",
        help="Composite every overlay layer, even when its skin region is empty",
    )
    parser.add_argument(
        "--color-correct",
        choices=config.COLOR_CORRECTION_MODES,
        default="none",
        help="Color-correction curve applied to the skin before rendering",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Optional log file")
    parser.add_argument("--verbose", action="store_true", help="Log per-layer details")
    return parser.parse_args(argv)


def build_runtime_config(args: argparse.Namespace) -> Dict[str, object]:
    overrides: Dict[str, object] = {
        "PATH_ASSETS": args.assets.resolve(),
        "PATH_OUTPUT": args.output.resolve(),
        "VARIANT": "slim" if args.slim else "classic",
        "THREADS": args.threads,
        "CULL_OVERLAYS": args.cull,
        "RENDER_FRAMES": args.frames,
        "COLOR_CORRECTION": args.color_correct,
        "LOG_FILE": args.log_file,
    }
    return config.build_config(overrides)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        cfg = build_runtime_config(args)
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc
    _configure_logging(cfg["LOG_FILE"], verbose=args.verbose)  # type: ignore[arg-type]
    LOGGER.info(
        "CLI flags resolved -> variant=%s, frames=%s, cull=%s",
        cfg["VARIANT"],
        args.frames,
        args.cull,
    )

    from .modules.assets import AssetLoadError
    from .modules.portrait_generator import PortraitPipeline

    try:
        written = PortraitPipeline(cfg).run(args.skin)
    except AssetLoadError as exc:
        LOGGER.error("Asset error: %s", exc)
        raise SystemExit(f"Render assets are invalid: {exc}") from exc
    except ValueError as exc:
        LOGGER.error("Could not render %s: %s", args.skin, exc)
        raise SystemExit(str(exc)) from exc
    for name, path in written.items():
        LOGGER.info("Wrote %s -> %s", name, path)


if __name__ == "__main__":
    main()
