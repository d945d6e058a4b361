"""
Vector3 class for 3D math operations.

This is the fundamental building block of the ray tracer, used for:
- Points in 3D space
- Direction vectors
- RGB color values
"""

from __future__ import annotations
import math
from typing import Optional, Tuple, Union
import numpy as np

# Below this length a vector has no usable direction
NORMALIZE_EPSILON = 1e-12


class Vec3:
    """A 3D vector class supporting common vector operations.

    Uses numpy internally for efficient computation while providing
    a clean, Pythonic API.
    """

    __slots__ = ('_data',)

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self._data = np.array([x, y, z], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> Vec3:
        """Create Vec3 from numpy array."""
        v = cls.__new__(cls)
        v._data = np.asarray(arr, dtype=np.float64)
        return v

    @classmethod
    def from_sequence(cls, values) -> Vec3:
        """Create Vec3 from any 3-element sequence."""
        x, y, z = values
        return cls(float(x), float(y), float(z))

    @property
    def x(self) -> float:
        return float(self._data[0])

    @property
    def y(self) -> float:
        return float(self._data[1])

    @property
    def z(self) -> float:
        return float(self._data[2])

    # Aliases for color operations
    @property
    def r(self) -> float:
        return self.x

    @property
    def g(self) -> float:
        return self.y

    @property
    def b(self) -> float:
        return self.z

    def __repr__(self) -> str:
        return f"Vec3({self.x:.4f}, {self.y:.4f}, {self.z:.4f})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vec3):
            return NotImplemented
        return np.allclose(self._data, other._data)

    def __hash__(self) -> int:
        return hash(tuple(self._data))

    def __neg__(self) -> Vec3:
        return Vec3.from_array(-self._data)

    def __add__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data + other._data)
        return Vec3.from_array(self._data + other)

    def __radd__(self, other: float) -> Vec3:
        return Vec3.from_array(other + self._data)

    def __sub__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data - other._data)
        return Vec3.from_array(self._data - other)

    def __rsub__(self, other: float) -> Vec3:
        return Vec3.from_array(other - self._data)

    def __mul__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data * other._data)
        return Vec3.from_array(self._data * other)

    def __rmul__(self, other: float) -> Vec3:
        return Vec3.from_array(other * self._data)

    def __truediv__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data / other._data)
        return Vec3.from_array(self._data / other)

    def __getitem__(self, index: int) -> float:
        return float(self._data[index])

    def __iter__(self):
        return iter(float(c) for c in self._data)

    def length(self) -> float:
        """Return the magnitude (length) of the vector."""
        return float(np.linalg.norm(self._data))

    def length_squared(self) -> float:
        """Return the squared magnitude (avoids sqrt for comparisons)."""
        return float(np.dot(self._data, self._data))

    def normalize(self) -> Vec3:
        """Return a unit vector in the same direction.

        A vector too short to carry a direction is returned unchanged.
        """
        length = self.length()
        if length < NORMALIZE_EPSILON:
            return Vec3.from_array(self._data.copy())
        return Vec3.from_array(self._data / length)

    def dot(self, other: Vec3) -> float:
        """Compute dot product with another vector."""
        return float(np.dot(self._data, other._data))

    def cross(self, other: Vec3) -> Vec3:
        """Compute cross product with another vector."""
        return Vec3.from_array(np.cross(self._data, other._data))

    def reflect(self, normal: Vec3) -> Vec3:
        """Reflect this vector around the given normal."""
        return self - normal * 2 * self.dot(normal)

    def refract(self, normal: Vec3, eta_ratio: float) -> Optional[Vec3]:
        """Refract this vector through surface with given normal and eta ratio.

        Args:
            normal: Unit surface normal on the incoming side (against self)
            eta_ratio: Ratio of refractive indices (n1/n2)

        Returns:
            Refracted unit direction, or None on total internal reflection
        """
        unit = self.normalize()
        cos_theta = min(-unit.dot(normal), 1.0)
        r_out_perp = (unit + normal * cos_theta) * eta_ratio
        perp_len_sq = r_out_perp.length_squared()

        if perp_len_sq > 1.0:
            return None

        r_out_parallel = normal * (-math.sqrt(abs(1.0 - perp_len_sq)))
        return (r_out_perp + r_out_parallel).normalize()

    def rotate(self, axis: Vec3, theta: float) -> Vec3:
        """Rotate this vector by theta radians about an axis through the origin."""
        return Vec3.from_array(rotation_matrix(axis, theta) @ self._data)

    def near_zero(self, epsilon: float = 1e-8) -> bool:
        """Check if vector is close to zero in all dimensions."""
        return all(abs(c) < epsilon for c in self._data)

    def to_array(self) -> np.ndarray:
        """Return the underlying numpy array (copy)."""
        return self._data.copy()

    def clamp(self, min_val: float = 0.0, max_val: float = 1.0) -> Vec3:
        """Clamp all components to the given range."""
        return Vec3.from_array(np.clip(self._data, min_val, max_val))

    def min_components(self, other: Vec3) -> Vec3:
        """Component-wise minimum."""
        return Vec3.from_array(np.minimum(self._data, other._data))

    def max_components(self, other: Vec3) -> Vec3:
        """Component-wise maximum."""
        return Vec3.from_array(np.maximum(self._data, other._data))


def rotation_matrix(axis: Union[Vec3, int], theta: float) -> np.ndarray:
    """Rodrigues rotation matrix for theta radians about an axis.

    Args:
        axis: A coordinate axis index (0, 1, 2) or an arbitrary axis vector
        theta: Rotation angle in radians (right-handed)
    """
    if isinstance(axis, int):
        k = np.zeros(3)
        k[axis] = 1.0
    else:
        k = axis.normalize().to_array()
    kx, ky, kz = k
    skew = np.array([
        [0.0, -kz, ky],
        [kz, 0.0, -kx],
        [-ky, kx, 0.0],
    ])
    return np.eye(3) + math.sin(theta) * skew + (1.0 - math.cos(theta)) * (skew @ skew)


def solve_quadratic(a: float, b: float, c: float) -> Optional[Tuple[float, float]]:
    """Solve a*t^2 + b*t + c = 0 with the numerically stable formulation.

    Returns:
        Ordered roots (t0, t1) with t0 <= t1, a repeated root for a zero
        discriminant, or None when there is no real solution.
    """
    if a == 0.0:
        if b == 0.0:
            return None
        t = -c / b
        return t, t

    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        return None
    if disc == 0.0:
        t = -0.5 * b / a
        return t, t

    sqrt_disc = math.sqrt(disc)
    q = -0.5 * (b + sqrt_disc) if b > 0 else -0.5 * (b - sqrt_disc)
    t0 = q / a
    t1 = c / q if q != 0.0 else t0
    if t0 > t1:
        t0, t1 = t1, t0
    return t0, t1


# Convenience type aliases
Point3 = Vec3
Color = Vec3
