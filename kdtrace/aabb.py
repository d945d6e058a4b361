"""
Axis-aligned bounding boxes.

Boxes bound every shape and every node of the k-d tree. Besides the
ray slab test, the tree needs box/box overlap, splitting at a plane,
surface area (for the leaf cutoff) and unions.
"""

from __future__ import annotations
from typing import Iterable, Optional, Tuple
import math

from .vec3 import Vec3, Point3
from .ray import Ray


class AABB:
    """Axis-Aligned Bounding Box for acceleration structures."""

    __slots__ = ('minimum', 'maximum')

    def __init__(self, minimum: Point3, maximum: Point3):
        """Create an AABB from corner points.

        The corners may be given in any order; they are sorted per axis
        so that minimum[i] <= maximum[i] always holds.

        Args:
            minimum: Corner with smallest x, y, z values
            maximum: Corner with largest x, y, z values
        """
        self.minimum = minimum.min_components(maximum)
        self.maximum = minimum.max_components(maximum)

    @classmethod
    def from_points(cls, points: Iterable[Point3], padding: float = 0.0) -> AABB:
        """Smallest box containing all points, grown by padding on every side."""
        points = list(points)
        lo = points[0]
        hi = points[0]
        for p in points[1:]:
            lo = lo.min_components(p)
            hi = hi.max_components(p)
        pad = Vec3(padding, padding, padding)
        return cls(lo - pad, hi + pad)

    @property
    def center(self) -> Point3:
        return (self.minimum + self.maximum) * 0.5

    @property
    def size(self) -> Vec3:
        return self.maximum - self.minimum

    def surface_area(self) -> float:
        """Total area of the six faces."""
        dx, dy, dz = self.size
        return 2.0 * (dx * dy + dy * dz + dz * dx)

    def contains(self, point: Point3, epsilon: float = 0.0) -> bool:
        """Test whether a point lies inside the box (boundary included)."""
        for i in range(3):
            if point[i] < self.minimum[i] - epsilon or point[i] > self.maximum[i] + epsilon:
                return False
        return True

    def overlaps(self, other: AABB) -> bool:
        """Test whether two boxes share any point (touching counts)."""
        for i in range(3):
            if self.minimum[i] > other.maximum[i] or other.minimum[i] > self.maximum[i]:
                return False
        return True

    def split(self, axis: int, position: float) -> Tuple[AABB, AABB]:
        """Cut the box with the plane axis = position.

        Returns:
            (lower, upper) halves; the position is clamped into the box
        """
        position = min(max(position, self.minimum[axis]), self.maximum[axis])
        lower_max = self.maximum.to_array()
        lower_max[axis] = position
        upper_min = self.minimum.to_array()
        upper_min[axis] = position
        lower = AABB(self.minimum, Vec3.from_array(lower_max))
        upper = AABB(Vec3.from_array(upper_min), self.maximum)
        return lower, upper

    def intersect(
        self,
        ray: Ray,
        t_min: float = 0.0,
        t_max: float = math.inf
    ) -> Optional[Tuple[float, float]]:
        """Slab test returning the entry and exit distances.

        Uses the ray's precomputed reciprocal direction and sign bits.
        A ray parallel to a slab hits only if its origin lies inside it.

        Returns:
            (t_entry, t_exit) clipped to [t_min, t_max], or None on a miss
        """
        bounds = (self.minimum, self.maximum)
        origin = ray.origin
        for i in range(3):
            inv_d = ray.inv_direction[i]
            o = origin[i]
            if math.isinf(inv_d):
                if o < self.minimum[i] or o > self.maximum[i]:
                    return None
                continue
            sign = ray.sign[i]
            t0 = (bounds[sign][i] - o) * inv_d
            t1 = (bounds[1 - sign][i] - o) * inv_d
            if t0 > t_min:
                t_min = t0
            if t1 < t_max:
                t_max = t1
            if t_max < t_min:
                return None
        return t_min, t_max

    def hit(self, ray: Ray, t_min: float, t_max: float) -> bool:
        """Test if ray intersects this AABB within [t_min, t_max]."""
        return self.intersect(ray, t_min, t_max) is not None

    @staticmethod
    def surrounding_box(box0: AABB, box1: AABB) -> AABB:
        """Return the AABB that contains both input boxes."""
        return AABB(
            box0.minimum.min_components(box1.minimum),
            box0.maximum.max_components(box1.maximum)
        )

    @staticmethod
    def union(boxes: Iterable[AABB]) -> Optional[AABB]:
        """Return the box enclosing all given boxes, or None for no boxes."""
        result: Optional[AABB] = None
        for box in boxes:
            result = box if result is None else AABB.surrounding_box(result, box)
        return result

    def padded(self, amount: float) -> AABB:
        """Return a copy grown by amount on every side."""
        pad = Vec3(amount, amount, amount)
        return AABB(self.minimum - pad, self.maximum + pad)

    def __repr__(self) -> str:
        return f"AABB(min={self.minimum}, max={self.maximum})"
