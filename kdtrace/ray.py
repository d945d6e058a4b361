"""
Ray class for representing rays in 3D space.

A ray is defined by an origin point and a direction vector.
Ray(t) = origin + t * direction

The per-axis reciprocal of the direction and its sign are computed once
at construction so box slab tests avoid divisions.
"""

from __future__ import annotations
import math
from typing import Tuple

from .vec3 import Vec3, Point3


class Ray:
    """A ray with origin and direction.

    The parametric form is: P(t) = origin + t * direction
    where t >= 0 represents points along the ray.
    """

    __slots__ = ('origin', 'direction', 'inv_direction', 'sign')

    def __init__(self, origin: Point3, direction: Vec3):
        """Create a ray with given origin and direction.

        Args:
            origin: The starting point of the ray
            direction: The direction vector (callers normalize it)
        """
        self.origin = origin
        self.direction = direction
        self.inv_direction: Tuple[float, float, float] = tuple(
            1.0 / d if d != 0.0 else math.copysign(math.inf, d)
            for d in direction
        )
        self.sign: Tuple[int, int, int] = tuple(
            1 if inv < 0 else 0 for inv in self.inv_direction
        )

    def at(self, t: float) -> Point3:
        """Get the point along the ray at parameter t.

        Args:
            t: The parameter value (distance if direction is normalized)

        Returns:
            The point at origin + t * direction
        """
        return self.origin + self.direction * t

    def reversed(self) -> Ray:
        """Return a ray from the same origin pointing the opposite way."""
        return Ray(self.origin, -self.direction)

    def __repr__(self) -> str:
        return f"Ray(origin={self.origin}, direction={self.direction})"
