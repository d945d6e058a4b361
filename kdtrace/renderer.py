"""
Render driver.

Casts one or more primary rays per pixel through the scene's camera and
averages the colors returned by the scene's recursive spawn. Work is split
by image column over a thread pool; the scene and its k-d tree are only
read while a pass runs.
"""

from __future__ import annotations
import logging
import os
import platform
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from .vec3 import Color
from .camera import Camera
from .scene import Scene
from .tonemapping import ToneMappingOperator, create_tone_mapper, apply_gamma

logger = logging.getLogger(__name__)


@dataclass
class RenderSettings:
    """Configuration for the renderer."""
    width: int = 400
    height: int = 300
    samples_per_pixel: int = 1
    num_threads: int = 0  # 0 = auto-detect
    seed: int = 0
    gamma: float = 1.0
    tone_mapping: str = ToneMappingOperator.LINEAR.value

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}")
        # Rejects unknown names early
        ToneMappingOperator(self.tone_mapping.lower())
        if self.num_threads == 0:
            self.num_threads = os.cpu_count() or 4

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


class Renderer:
    """Multi-threaded, column-parallel ray tracing driver."""

    def __init__(self, settings: RenderSettings = None):
        """Create a renderer with the given settings.

        Args:
            settings: Render configuration (uses defaults if None)
        """
        self.settings = settings if settings else RenderSettings()
        self._progress_callback: Optional[Callable[[float], None]] = None

    def set_progress_callback(self, callback: Callable[[float], None]) -> None:
        """Set a callback function for progress updates.

        Args:
            callback: Function that takes progress as float (0.0 to 1.0)
        """
        self._progress_callback = callback

    def render(self, scene: Scene, camera: Camera = None) -> np.ndarray:
        """Render the scene and return the image as a numpy array.

        Args:
            scene: The scene to render; its index must be built and current
            camera: Camera to render from (defaults to the scene's first)

        Returns:
            Image as numpy array of shape (height, width, 3), values in [0, 1]

        Raises:
            IndexNotBuiltError: the scene index was never built
            StaleIndexError: geometry changed after the index was built
        """
        scene.check_index()
        camera = camera if camera is not None else scene.camera

        width = self.settings.width
        height = self.settings.height
        samples = self.settings.samples_per_pixel
        seed = self.settings.seed

        image = np.zeros((height, width, 3), dtype=np.float64)
        completed_columns = [0]  # Use list for mutable in closure

        def render_column(x: int) -> Tuple[int, np.ndarray]:
            """Render a single image column, top row first."""
            rng = np.random.default_rng(seed + x)
            column = np.zeros((height, 3), dtype=np.float64)

            for y in range(height):
                pixel_color = Color(0, 0, 0)
                for s, t in self._sample_positions(x, y, samples, rng):
                    ray = camera.get_ray(s, t)
                    pixel_color = pixel_color + scene.trace(ray)
                column[y] = (pixel_color / samples).to_array()

            completed_columns[0] += 1
            if self._progress_callback:
                self._progress_callback(completed_columns[0] / width)

            return x, column

        logger.debug("Rendering %dx%d, %d spp on %d threads",
                     width, height, samples, self.settings.num_threads)

        if self.settings.num_threads > 1:
            with ThreadPoolExecutor(max_workers=self.settings.num_threads) as executor:
                results = list(executor.map(render_column, range(width)))
        else:
            results = [render_column(x) for x in range(width)]

        for x, column in results:
            image[:, x] = column

        return np.clip(image, 0.0, 1.0)

    def _sample_positions(
        self,
        x: int,
        y: int,
        samples: int,
        rng: np.random.Generator
    ) -> List[Tuple[float, float]]:
        """Screen coordinates (s, t) in [0, 1] for the samples of one pixel.

        A single sample goes through the pixel center; more samples are
        jittered uniformly within the pixel.
        """
        width = self.settings.width
        height = self.settings.height
        if samples == 1:
            offsets = [(0.5, 0.5)]
        else:
            offsets = rng.random((samples, 2))
        return [
            ((x + dx) / width, (height - 1 - y + dy) / height)
            for dx, dy in offsets
        ]

    def to_ldr(self, image: np.ndarray) -> np.ndarray:
        """Convert a rendered image to 8-bit with tone mapping and gamma.

        Args:
            image: Float image array (H, W, 3)

        Returns:
            LDR image as uint8 array
        """
        mapper = create_tone_mapper(self.settings.tone_mapping)
        corrected = apply_gamma(mapper.apply(image), self.settings.gamma)
        return np.clip(np.round(corrected * 255), 0, 255).astype(np.uint8)

    def save_image(self, image: np.ndarray, filename: str) -> None:
        """Save image to file.

        Args:
            image: Image array (float or uint8)
            filename: Output filename (extension determines format)
        """
        from PIL import Image as PILImage

        if image.dtype == np.float64 or image.dtype == np.float32:
            image = self.to_ldr(image)

        PILImage.fromarray(image, 'RGB').save(filename)
        logger.info("Saved %s", filename)

    def save_animation(self, frames: List[np.ndarray], filename: str, frame_time: float = 0.1) -> None:
        """Save rendered frames as an animated GIF.

        Args:
            frames: Float or uint8 images of equal size
            filename: Output filename
            frame_time: Seconds each frame is shown
        """
        from PIL import Image as PILImage

        if not frames:
            raise ValueError("No frames to save")

        images = []
        for frame in frames:
            if frame.dtype == np.float64 or frame.dtype == np.float32:
                frame = self.to_ldr(frame)
            images.append(PILImage.fromarray(frame, 'RGB'))

        images[0].save(
            filename,
            save_all=True,
            append_images=images[1:],
            duration=int(frame_time * 1000),
            loop=0
        )
        logger.info("Saved %d frames to %s", len(images), filename)


def get_platform_info() -> dict:
    """Get information about the current platform for thread-count decisions.

    Returns:
        Dictionary with platform details
    """
    return {
        'system': platform.system(),
        'machine': platform.machine(),
        'python_version': platform.python_version(),
        'cpu_count': os.cpu_count(),
    }
