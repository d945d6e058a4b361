#!/usr/bin/env python3
"""
kdtrace - A Python Whitted-style Ray Tracer

Main entry point for rendering scenes.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from kdtrace.vec3 import Vec3
from kdtrace.renderer import Renderer, RenderSettings, get_platform_info
from kdtrace.scene import SpatialIndexError
from kdtrace.scene_parser import SceneParseError, load_scene
from kdtrace.scenes import SCENES
from kdtrace.animation import Animator, render_animation
from kdtrace.tonemapping import ToneMappingOperator

logger = logging.getLogger("kdtrace")


def setup_logging(verbose: bool) -> None:
    """Configure the root logger for console output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def make_progress_callback(label: str):
    """Return a callback drawing a progress bar on one console line."""
    last_progress = [0]

    def progress_callback(progress: float):
        pct = int(progress * 100)
        if pct > last_progress[0]:
            last_progress[0] = pct
            bar_len = 40
            filled = int(bar_len * progress)
            bar = '█' * filled + '░' * (bar_len - filled)
            print(f'\r{label}: [{bar}] {pct}%', end='', flush=True)

    return progress_callback


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='kdtrace - A Python Whitted-style Ray Tracer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python main.py --scene default --output render.png
  python main.py --scene mirrors --depth 10 --samples 4 --output mirrors.png
  python main.py --scene-file scenes/example.yaml --tonemap reinhard
  python main.py --scene default --frames 24 --output orbit.gif
        '''
    )

    parser.add_argument('--scene', type=str, default='default', choices=sorted(SCENES),
                        help='Built-in scene to render (default: default)')
    parser.add_argument('--scene-file', type=str, default=None,
                        help='YAML or JSON scene description (overrides --scene)')
    parser.add_argument('--width', type=int, default=None, help='Image width (default: 400)')
    parser.add_argument('--height', type=int, default=None, help='Image height (default: 300)')
    parser.add_argument('--samples', type=int, default=None, help='Samples per pixel (default: 1)')
    parser.add_argument('--depth', type=int, default=None, help='Max recursion depth for reflection/refraction')
    parser.add_argument('--threads', type=int, default=None, help='Number of threads (0=auto)')
    parser.add_argument('--output', type=str, default='output/render.png', help='Output filename')
    parser.add_argument('--frames', type=int, default=1,
                        help='Render an animation of this many frames (saved as GIF)')
    parser.add_argument('--tonemap', type=str, default=None,
                        choices=[op.value for op in ToneMappingOperator],
                        help='Tone mapping operator (default: linear)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--info', action='store_true', help='Show platform info and exit')

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    # Show platform info
    if args.info:
        info = get_platform_info()
        print("kdtrace Platform Info:")
        print(f"  System: {info['system']}")
        print(f"  Machine: {info['machine']}")
        print(f"  Python: {info['python_version']}")
        print(f"  CPU Cores: {info['cpu_count']}")
        return 0

    # Print header
    print("=" * 60)
    print("kdtrace Ray Tracer")
    print("=" * 60)

    # Settings from the scene file, overridden by explicit flags
    try:
        if args.scene_file:
            print(f"\nLoading scene file: {args.scene_file}")
            scene, settings = load_scene(args.scene_file)
        else:
            settings = RenderSettings()
    except SceneParseError as e:
        logger.error("Cannot load scene: %s", e)
        return 1

    try:
        settings = RenderSettings(
            width=args.width if args.width is not None else settings.width,
            height=args.height if args.height is not None else settings.height,
            samples_per_pixel=args.samples if args.samples is not None else settings.samples_per_pixel,
            num_threads=args.threads if args.threads is not None else settings.num_threads,
            seed=settings.seed,
            gamma=settings.gamma,
            tone_mapping=args.tonemap if args.tonemap is not None else settings.tone_mapping
        )
    except ValueError as e:
        logger.error("Invalid render settings: %s", e)
        return 1

    if not args.scene_file:
        print(f"\nCreating scene: {args.scene}")
        scene = SCENES[args.scene](settings.width, settings.height)

    if args.depth is not None:
        scene.max_depth = args.depth

    # Camera aspect follows the output size
    for camera in scene.cameras:
        camera.aspect_ratio = settings.aspect_ratio

    summary = scene.summary()
    print(f"\nRender Settings:")
    print(f"  Resolution: {settings.width}x{settings.height}")
    print(f"  Samples: {settings.samples_per_pixel}")
    print(f"  Max Depth: {scene.max_depth}")
    print(f"  Threads: {settings.num_threads}")
    print(f"  Tone mapping: {settings.tone_mapping}")
    print(f"\nScene:")
    print(f"  Primitives: {summary['primitives']}")
    print(f"  Lights: {summary['lights']}")
    print(f"  k-d tree: {summary.get('tree_leaves', 0)} leaves, depth {summary.get('tree_depth', 0)}, "
          f"{summary.get('duplicated_references', 0)} duplicated references")

    renderer = Renderer(settings)

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    start_time = time.time()
    try:
        if args.frames > 1:
            # Sweep the first light sideways across the frames
            animators = []
            if scene.lights:
                animators.append(Animator(scene.lights[0], 'position', Vec3(2.0, 0.0, 0.0)))
            print(f"\nRendering {args.frames} frames...")
            frame_progress = make_progress_callback("Frames")
            images = render_animation(
                renderer, scene, animators, args.frames, 1.0 / args.frames,
                on_frame=lambda i, _: frame_progress((i + 1) / args.frames)
            )
        else:
            print("\nRendering...")
            renderer.set_progress_callback(make_progress_callback("Rendering"))
            images = [renderer.render(scene)]
    except SpatialIndexError as e:
        logger.error("Render aborted: %s", e)
        return 1

    elapsed = time.time() - start_time
    pixels = settings.width * settings.height * settings.samples_per_pixel * len(images)
    print(f"\nRender completed in {elapsed:.2f} seconds")
    print(f"  Primary rays per second: {pixels / max(elapsed, 1e-9):.0f}")

    print(f"\nSaving to: {args.output}")
    if len(images) > 1:
        renderer.save_animation(images, args.output if output_path.suffix == '.gif'
                                else str(output_path.with_suffix('.gif')))
    else:
        renderer.save_image(images[0], args.output)

    print("\nDone!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
