"""
Frame-by-frame animation of lights and cameras.

Animators move a Vec3 attribute (a light's `position`, a camera's
`position` or `look_at`) linearly in time. Geometry is never touched, so
the scene's k-d tree stays valid across frames; each frame still checks
the index before rendering.
"""

from __future__ import annotations
from typing import Callable, List, Optional, Sequence
import logging

import numpy as np

from .vec3 import Vec3
from .scene import Scene
from .renderer import Renderer

logger = logging.getLogger(__name__)


class Animator:
    """Moves one Vec3 attribute of a light or camera at constant velocity."""

    def __init__(self, target, attribute: str, velocity: Vec3):
        """Create an animator.

        Args:
            target: Object owning the attribute (PointLight, Camera)
            attribute: Name of a Vec3 attribute on target
            velocity: Displacement per unit of time
        """
        if not isinstance(getattr(target, attribute, None), Vec3):
            raise AttributeError(f"{type(target).__name__}.{attribute} is not a Vec3 attribute")
        self.target = target
        self.attribute = attribute
        self.velocity = velocity

    def step(self, dt: float) -> Vec3:
        """Advance by dt and return the new attribute value."""
        value = getattr(self.target, self.attribute) + self.velocity * dt
        setattr(self.target, self.attribute, value)
        return value

    def __repr__(self) -> str:
        return f"Animator({type(self.target).__name__}.{self.attribute}, velocity={self.velocity})"


def render_animation(
    renderer: Renderer,
    scene: Scene,
    animators: Sequence[Animator],
    frames: int,
    frame_time: float = 1.0 / 24.0,
    on_frame: Optional[Callable[[int, np.ndarray], None]] = None
) -> List[np.ndarray]:
    """Render a sequence of frames, stepping every animator between them.

    Frame 0 shows the initial state. Each render pass completes before the
    animators move anything for the next frame.

    Args:
        renderer: Renderer used for every frame
        scene: Scene with a built index
        animators: Animators applied after each frame
        frames: Number of frames to render
        frame_time: Time advanced between frames
        on_frame: Optional callback receiving (frame_index, image)

    Returns:
        List of rendered images
    """
    images: List[np.ndarray] = []
    for frame in range(frames):
        image = renderer.render(scene)
        images.append(image)
        logger.debug("Rendered frame %d/%d", frame + 1, frames)
        if on_frame is not None:
            on_frame(frame, image)

        for animator in animators:
            animator.step(frame_time)

    return images
