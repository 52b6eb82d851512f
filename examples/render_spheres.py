#!/usr/bin/env python3
"""Render the ground plus three spheres scene.

Creates the classic weekend scene (diffuse, hollow glass and fuzzy gold
spheres on a large ground sphere), renders it progressively and saves a
PNG.

Usage:
    python examples/render_spheres.py [options]

Options:
    --width WIDTH           Image width in pixels (default: 400)
    --height HEIGHT         Image height in pixels (default: 225)
    --frames FRAMES         Frames to accumulate (default: 32)
    --max-bounces N         Bounce limit per path (default: 8)
    --aperture APERTURE     Lens diameter (default: 0.1)
    --config PATH           JSON TracerConfig (overrides width/height)
    --output OUTPUT         Output file path (default: spheres.png)
    --cpu                   Force the CPU backend
    --quiet                 Suppress progress output

Example:
    python examples/render_spheres.py --width 320 --height 180 --frames 16
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the ground plus three spheres scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=400, help="Image width in pixels (default: 400)")
    parser.add_argument("--height", type=int, default=225, help="Image height in pixels (default: 225)")
    parser.add_argument("--frames", type=int, default=32, help="Frames to accumulate (default: 32)")
    parser.add_argument(
        "--max-bounces",
        type=int,
        default=8,
        help="Bounce limit per path (default: 8)",
    )
    parser.add_argument("--aperture", type=float, default=0.1, help="Lens diameter (default: 0.1)")
    parser.add_argument("--config", type=str, default=None, help="JSON TracerConfig file")
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path (default: spheres.png)",
    )
    parser.add_argument("--cpu", action="store_true", help="Force the CPU backend")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def render_spheres(
    width: int = 400,
    height: int = 225,
    num_frames: int = 32,
    max_bounces: int = 8,
    aperture: float = 0.1,
    config_path: str | None = None,
    output_path: str = "spheres.png",
    quiet: bool = False,
) -> Path:
    """Render the weekend scene and save to file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from weekend_tracer.config import TracerConfig, load_config
    from weekend_tracer.core.progressive import PathTracer
    from weekend_tracer.preview.export import save_png
    from weekend_tracer.scene.presets import create_weekend_scene

    if config_path is not None:
        config = load_config(config_path)
    else:
        config = TracerConfig(width=width, height=height)

    if not quiet:
        print(f"Creating weekend scene ({config.width}x{config.height})...")

    scene, camera = create_weekend_scene(aspect_ratio=config.aspect_ratio, aperture=aperture)
    params = camera.frame_params(max_bounces=max_bounces)

    start_time = time.time()
    output_file = Path(output_path)

    with PathTracer(config) as tracer:
        if not quiet:
            print(f"Rendering {num_frames} frames of {config.samples_per_frame} samples...")

        for _ in range(num_frames):
            stats = tracer.render_frame(params, scene)
            if not quiet:
                elapsed = time.time() - start_time
                frames_per_sec = (stats.frame_index + 1) / elapsed if elapsed > 0 else 0
                print(
                    f"\r  Frame {stats.frame_index + 1}/{num_frames} - "
                    f"{stats.sample_count} spp - {frames_per_sec:.1f} frames/s",
                    end="",
                    flush=True,
                )

        if not quiet:
            print()  # Newline after progress

        save_png(tracer, output_file, gamma=2.2)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cpu:
        ti.init(arch=ti.cpu)
    else:
        # Falls back to CPU when no GPU backend is available
        ti.init(arch=ti.gpu)

    try:
        render_spheres(
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            max_bounces=args.max_bounces,
            aperture=args.aperture,
            config_path=args.config,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
