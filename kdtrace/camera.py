"""
Camera module for generating primary rays.

Supports:
- Perspective projection
- Configurable field of view
- Arbitrary positioning via look-at, re-posable between frames
"""

from __future__ import annotations
import math
from .vec3 import Vec3, Point3
from .ray import Ray


class Camera:
    """A pinhole camera with perspective projection."""

    def __init__(
        self,
        look_from: Point3,
        look_at: Point3,
        vup: Vec3 = Vec3(0, 1, 0),
        vfov: float = 90.0,
        aspect_ratio: float = 16.0 / 9.0
    ):
        """Create a camera.

        Args:
            look_from: Camera position in world space
            look_at: Point the camera is looking at
            vup: World up vector (usually (0, 1, 0))
            vfov: Vertical field of view in degrees
            aspect_ratio: Width / Height ratio
        """
        self._look_from = look_from
        self._look_at = look_at
        self.vup = vup
        self.vfov = vfov
        self._aspect_ratio = aspect_ratio
        self._update_basis()

    @property
    def position(self) -> Point3:
        return self._look_from

    @position.setter
    def position(self, value: Point3) -> None:
        self._look_from = value
        self._update_basis()

    @property
    def aspect_ratio(self) -> float:
        return self._aspect_ratio

    @aspect_ratio.setter
    def aspect_ratio(self, value: float) -> None:
        self._aspect_ratio = value
        self._update_basis()

    @property
    def look_at(self) -> Point3:
        return self._look_at

    @look_at.setter
    def look_at(self, value: Point3) -> None:
        self._look_at = value
        self._update_basis()

    def _update_basis(self) -> None:
        theta = math.radians(self.vfov)
        h = math.tan(theta / 2)
        viewport_height = 2.0 * h
        viewport_width = self._aspect_ratio * viewport_height

        # Compute orthonormal camera basis
        self.w = (self._look_from - self._look_at).normalize()  # Points backward from camera
        self.u = self.vup.cross(self.w).normalize()              # Points right
        self.v = self.w.cross(self.u)                            # Points up

        self.origin = self._look_from
        self.horizontal = self.u * viewport_width
        self.vertical = self.v * viewport_height
        self.lower_left_corner = (
            self.origin
            - self.horizontal / 2
            - self.vertical / 2
            - self.w
        )

    def get_ray(self, s: float, t: float) -> Ray:
        """Generate a ray for the given UV coordinates on the image plane.

        Args:
            s: Horizontal coordinate [0, 1] (0 = left, 1 = right)
            t: Vertical coordinate [0, 1] (0 = bottom, 1 = top)

        Returns:
            A ray from the camera through the specified pixel
        """
        direction = (
            self.lower_left_corner
            + self.horizontal * s
            + self.vertical * t
            - self.origin
        )
        return Ray(self.origin, direction.normalize())

    def __repr__(self) -> str:
        return f"Camera(origin={self.origin}, look_at={self._look_at}, vfov={self.vfov})"
