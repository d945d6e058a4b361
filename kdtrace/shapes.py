"""
Geometric shapes for the ray tracer.

Each shape implements the Shape contract:
- `hit` / `intersect` for ray intersection
- `bounding_box` and `overlaps_box` for the k-d tree
- `uv` for procedural texturing
- in-place affine transforms (translate, rotate, scale)

Transforms mutate geometry and bump `revision`; a scene compares
revisions to notice that its spatial index no longer matches the shapes.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, TYPE_CHECKING
import math

import numpy as np

from .vec3 import Vec3, Point3, rotation_matrix, solve_quadratic
from .ray import Ray
from .aabb import AABB

if TYPE_CHECKING:
    from .materials import Material
    from .kdtree import TraversalStats


TRIANGLE_EPSILON = 1e-7
PLANE_EPSILON = 1e-5
# Slack used by the rectangle containment test and for flat bounding boxes
BOUNDS_TOLERANCE = 1e-4


@dataclass
class HitRecord:
    """Stores information about a ray-object intersection.

    Attributes:
        point: The intersection point in world space
        normal: The unit surface normal (always points against the ray)
        t: The ray parameter at intersection (distance for unit directions)
        front_face: True if ray hit from the outward side of the surface
        shape: The primitive that was hit
        material: The material at the hit point
        u, v: Barycentric coordinates for triangles, surface parameters otherwise
    """
    point: Point3
    normal: Vec3
    t: float
    front_face: bool
    shape: Optional['Shape'] = None
    material: Optional['Material'] = None
    u: float = 0.0
    v: float = 0.0

    def set_face_normal(self, ray: Ray, outward_normal: Vec3) -> None:
        """Set the normal to always point against the ray direction.

        Args:
            ray: The incoming ray
            outward_normal: The geometric normal pointing outward from surface
        """
        self.front_face = ray.direction.dot(outward_normal) < 0
        self.normal = outward_normal if self.front_face else -outward_normal

    @property
    def distance(self) -> float:
        return self.t

    @property
    def outward_normal(self) -> Vec3:
        """The geometric normal, independent of the ray side."""
        return self.normal if self.front_face else -self.normal


def closest_hit(
    shapes: Iterable['Shape'],
    ray: Ray,
    t_min: float,
    t_max: float,
    stats: Optional['TraversalStats'] = None
) -> Optional[HitRecord]:
    """Linear scan for the nearest intersection among shapes."""
    closest: Optional[HitRecord] = None
    closest_t = t_max

    for shape in shapes:
        if stats is not None:
            stats.shape_tests += 1
        hit_record = shape.hit(ray, t_min, closest_t)
        if hit_record is not None:
            closest = hit_record
            closest_t = hit_record.t

    return closest


class Shape(ABC):
    """Abstract base class for everything a ray can hit."""

    def __init__(self, material: Optional['Material'] = None):
        self.material = material
        self.revision = 0
        self.center: Point3 = Point3()
        self._bbox: Optional[AABB] = None

    @abstractmethod
    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Test if ray intersects this object.

        Args:
            ray: The ray to test
            t_min: Minimum t value to consider (avoid self-intersection)
            t_max: Maximum t value to consider

        Returns:
            HitRecord for the nearest intersection in range, None otherwise
        """

    @abstractmethod
    def _apply_affine(self, matrix: np.ndarray, offset: Vec3) -> None:
        """Map every defining point p to matrix @ p + offset."""

    @abstractmethod
    def _update(self) -> None:
        """Recompute derived data (center, normals, bounding box)."""

    def intersect(self, ray: Ray) -> Optional[HitRecord]:
        """Nearest intersection in front of the ray origin."""
        return self.hit(ray, 0.0, math.inf)

    def bounding_box(self) -> AABB:
        """Get the axis-aligned bounding box for this object."""
        return self._bbox

    def overlaps_box(self, box: AABB) -> bool:
        """Conservative test used when distributing shapes into tree cells."""
        return self._bbox.overlaps(box)

    def uv(self, point: Point3) -> Tuple[float, float]:
        """Texture coordinates of a surface point."""
        return 0.0, 0.0

    def transform(self, matrix: np.ndarray, offset: Optional[Vec3] = None) -> None:
        """Apply an affine map in place and refresh derived data."""
        self._apply_affine(matrix, offset if offset is not None else Vec3())
        self._touch()

    def translate(self, offset: Vec3) -> None:
        self.transform(np.eye(3), offset)

    def rotate(self, axis, theta: float) -> None:
        """Rotate about an axis through the world origin.

        Args:
            axis: Coordinate axis index (0, 1, 2) or axis vector
            theta: Angle in radians
        """
        self.transform(rotation_matrix(axis, theta))

    def rotate_x(self, theta: float) -> None:
        self.rotate(0, theta)

    def rotate_y(self, theta: float) -> None:
        self.rotate(1, theta)

    def rotate_z(self, theta: float) -> None:
        self.rotate(2, theta)

    def scale(self, sx: float, sy: Optional[float] = None, sz: Optional[float] = None) -> None:
        """Scale about the world origin; a single factor scales uniformly."""
        sy = sx if sy is None else sy
        sz = sx if sz is None else sz
        self.transform(np.diag([sx, sy, sz]))

    def _touch(self) -> None:
        self.revision += 1
        self._update()


class Sphere(Shape):
    """A sphere defined by center and radius."""

    def __init__(self, center: Point3, radius: float, material: Optional['Material'] = None):
        """Create a sphere.

        Args:
            center: Center point of the sphere
            radius: Radius of the sphere
            material: Material for shading
        """
        super().__init__(material)
        self.center = center
        self.radius = radius
        self._update()

    def roots(self, ray: Ray) -> Optional[Tuple[float, float]]:
        """Both ray parameters where the ray's line meets the sphere.

        The equation |O + tD - C|^2 = r^2 expands to
        t^2 (D.D) + 2t (D.(O-C)) + (O-C).(O-C) - r^2 = 0.
        """
        oc = ray.origin - self.center
        a = ray.direction.length_squared()
        b = 2.0 * oc.dot(ray.direction)
        c = oc.length_squared() - self.radius * self.radius
        return solve_quadratic(a, b, c)

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        roots = self.roots(ray)
        if roots is None:
            return None

        # Nearest root in the acceptable range
        t0, t1 = roots
        root = t0
        if root < t_min or root > t_max:
            root = t1
            if root < t_min or root > t_max:
                return None

        point = ray.at(root)
        outward_normal = (point - self.center).normalize()
        u, v = self.uv(point)

        hit_record = HitRecord(
            point=point,
            normal=outward_normal,
            t=root,
            front_face=True,
            shape=self,
            material=self.material,
            u=u,
            v=v
        )
        hit_record.set_face_normal(ray, outward_normal)
        return hit_record

    def uv(self, point: Point3) -> Tuple[float, float]:
        """Spherical coordinates of a surface point mapped to [0, 1]^2."""
        d = (self.center - point).normalize()
        u = 0.5 + math.atan2(d.z, d.x) / (2 * math.pi)
        v = 0.5 - math.asin(max(-1.0, min(1.0, d.y))) / math.pi
        return u, v

    def overlaps_box(self, box: AABB) -> bool:
        """Exact sphere/box test: distance from center to box against radius."""
        dist_sq = 0.0
        for i in range(3):
            c = self.center[i]
            if c < box.minimum[i]:
                dist_sq += (box.minimum[i] - c) ** 2
            elif c > box.maximum[i]:
                dist_sq += (c - box.maximum[i]) ** 2
        return dist_sq <= self.radius * self.radius

    def scale(self, sx: float, sy: Optional[float] = None, sz: Optional[float] = None) -> None:
        """Scale the center about the origin and the radius by the mean factor."""
        sy = sx if sy is None else sy
        sz = sx if sz is None else sz
        self.radius *= abs(sx + sy + sz) / 3.0
        self.center = Vec3.from_array(np.array([sx, sy, sz]) * self.center.to_array())
        self._touch()

    def _apply_affine(self, matrix: np.ndarray, offset: Vec3) -> None:
        """Map the center; the radius follows the volume change of the map."""
        self.center = Vec3.from_array(matrix @ self.center.to_array()) + offset
        self.radius *= abs(float(np.linalg.det(matrix))) ** (1.0 / 3.0)

    def _update(self) -> None:
        r = abs(self.radius)
        r_vec = Vec3(r, r, r)
        self._bbox = AABB(self.center - r_vec, self.center + r_vec)

    def __repr__(self) -> str:
        return f"Sphere(center={self.center}, radius={self.radius})"


class Triangle(Shape):
    """A triangle defined by three vertices.

    Optional per-vertex normals give smooth shading; optional per-vertex
    texture coordinates feed procedural materials.
    """

    def __init__(
        self,
        v0: Point3,
        v1: Point3,
        v2: Point3,
        material: Optional['Material'] = None,
        normals: Optional[Sequence[Vec3]] = None,
        uvs: Optional[Sequence[Tuple[float, float]]] = None
    ):
        """Create a triangle from three vertices.

        Args:
            v0, v1, v2: The three vertices in counter-clockwise order
            material: Material for shading
            normals: Optional per-vertex normals (n0, n1, n2)
            uvs: Optional per-vertex texture coordinates
        """
        super().__init__(material)
        self.v0 = v0
        self.v1 = v1
        self.v2 = v2
        self.normals: Optional[List[Vec3]] = (
            [n.normalize() for n in normals] if normals is not None else None
        )
        self.uvs: Optional[List[Tuple[float, float]]] = (
            [tuple(uv) for uv in uvs] if uvs is not None else None
        )
        self._update()

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Test ray-triangle intersection using Moller-Trumbore algorithm."""
        h = ray.direction.cross(self.e2)
        a = self.e1.dot(h)

        # Ray is parallel to triangle
        if abs(a) < TRIANGLE_EPSILON:
            return None

        f = 1.0 / a
        s = ray.origin - self.v0
        u = f * s.dot(h)

        if u < 0.0 or u > 1.0:
            return None

        q = s.cross(self.e1)
        v = f * ray.direction.dot(q)

        if v < 0.0 or u + v > 1.0:
            return None

        t = f * self.e2.dot(q)

        if t < t_min or t > t_max:
            return None

        outward_normal = self._interpolated_normal(u, v)
        hit_record = HitRecord(
            point=ray.at(t),
            normal=outward_normal,
            t=t,
            front_face=True,
            shape=self,
            material=self.material,
            u=u,
            v=v
        )
        hit_record.set_face_normal(ray, outward_normal)
        return hit_record

    def _interpolated_normal(self, u: float, v: float) -> Vec3:
        if self.normals is None:
            return self.normal
        n0, n1, n2 = self.normals
        return (n0 * (1.0 - u - v) + n1 * u + n2 * v).normalize()

    def barycentric(self, point: Point3) -> Tuple[float, float]:
        """Weights (u, v) of v1 and v2 for a point in the triangle's plane."""
        d = point - self.v0
        d00 = self.e1.dot(self.e1)
        d01 = self.e1.dot(self.e2)
        d11 = self.e2.dot(self.e2)
        d20 = d.dot(self.e1)
        d21 = d.dot(self.e2)
        denom = d00 * d11 - d01 * d01
        if abs(denom) < TRIANGLE_EPSILON:
            return 0.0, 0.0
        u = (d11 * d20 - d01 * d21) / denom
        v = (d00 * d21 - d01 * d20) / denom
        return u, v

    def uv(self, point: Point3) -> Tuple[float, float]:
        u, v = self.barycentric(point)
        if self.uvs is None:
            return u, v
        w = 1.0 - u - v
        uv0, uv1, uv2 = self.uvs
        return (
            uv0[0] * w + uv1[0] * u + uv2[0] * v,
            uv0[1] * w + uv1[1] * u + uv2[1] * v
        )

    def _apply_affine(self, matrix: np.ndarray, offset: Vec3) -> None:
        self.v0 = Vec3.from_array(matrix @ self.v0.to_array()) + offset
        self.v1 = Vec3.from_array(matrix @ self.v1.to_array()) + offset
        self.v2 = Vec3.from_array(matrix @ self.v2.to_array()) + offset
        if self.normals is not None and abs(np.linalg.det(matrix)) > 0.0:
            normal_matrix = np.linalg.inv(matrix).T
            self.normals = [
                Vec3.from_array(normal_matrix @ n.to_array()).normalize()
                for n in self.normals
            ]

    def _update(self) -> None:
        self.e1 = self.v1 - self.v0
        self.e2 = self.v2 - self.v0
        self.normal = self.e1.cross(self.e2).normalize()
        self.center = (self.v0 + self.v1 + self.v2) / 3.0
        self._bbox = AABB.from_points((self.v0, self.v1, self.v2), BOUNDS_TOLERANCE)

    def __repr__(self) -> str:
        return f"Triangle({self.v0}, {self.v1}, {self.v2})"


class BoundedPlane(Shape):
    """A finite planar quadrilateral given by four corners in winding order."""

    def __init__(
        self,
        corners: Sequence[Point3],
        material: Optional['Material'] = None,
        normal: Optional[Vec3] = None
    ):
        """Create a bounded plane.

        Args:
            corners: Four coplanar corners in order around the outline
            material: Material for shading
            normal: Explicit normal; derived from the winding when omitted
        """
        super().__init__(material)
        if len(corners) != 4:
            raise ValueError(f"BoundedPlane needs 4 corners, got {len(corners)}")
        self.corners: List[Point3] = list(corners)
        self._explicit_normal = normal.normalize() if normal is not None else None
        self._update()

    @classmethod
    def from_center(
        cls,
        center: Point3,
        normal: Vec3,
        width: float,
        height: float,
        material: Optional['Material'] = None
    ) -> 'BoundedPlane':
        """Build a width x height rectangle centered on a point.

        The horizontal edge direction is up x normal with up = +z, falling
        back to +y when the normal is parallel to z.
        """
        n = normal.normalize()
        up = Vec3(0, 0, 1)
        if abs(up.dot(n)) > 0.999:
            up = Vec3(0, 1, 0)
        h_axis = up.cross(n).normalize() * (width / 2.0)
        v_axis = n.cross(h_axis).normalize() * (height / 2.0)
        corners = [
            center - h_axis - v_axis,
            center + h_axis - v_axis,
            center + h_axis + v_axis,
            center - h_axis + v_axis,
        ]
        return cls(corners, material, n)

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Intersect the supporting plane, then clip to the quad outline."""
        denom = self.normal.dot(ray.direction)

        # Ray is parallel to plane
        if abs(denom) < PLANE_EPSILON:
            return None

        t = (self.center - ray.origin).dot(self.normal) / denom

        if t < t_min or t > t_max:
            return None

        point = ray.at(t)
        if not self.contains(point):
            return None

        u, v = self.uv(point)
        hit_record = HitRecord(
            point=point,
            normal=self.normal,
            t=t,
            front_face=True,
            shape=self,
            material=self.material,
            u=u,
            v=v
        )
        hit_record.set_face_normal(ray, self.normal)
        return hit_record

    def contains(self, point: Point3) -> bool:
        """Whether a point of the plane lies inside the (convex) outline."""
        for i in range(4):
            a = self.corners[i]
            b = self.corners[(i + 1) % 4]
            edge = b - a
            side = edge.cross(point - a).dot(self.normal)
            if side < -BOUNDS_TOLERANCE * edge.length():
                return False
        return True

    def uv(self, point: Point3) -> Tuple[float, float]:
        """Distances along the first two edges, in world units."""
        origin = self.corners[0]
        u_axis = (self.corners[1] - origin).normalize()
        v_axis = (self.corners[3] - origin).normalize()
        d = point - origin
        return d.dot(u_axis), d.dot(v_axis)

    def _apply_affine(self, matrix: np.ndarray, offset: Vec3) -> None:
        self.corners = [
            Vec3.from_array(matrix @ c.to_array()) + offset for c in self.corners
        ]
        # A transform invalidates a caller-supplied normal
        self._explicit_normal = None

    def _winding_normal(self) -> Vec3:
        """Newell's method, robust for slightly non-planar input."""
        n = np.zeros(3)
        for i in range(4):
            a = self.corners[i].to_array()
            b = self.corners[(i + 1) % 4].to_array()
            n[0] += (a[1] - b[1]) * (a[2] + b[2])
            n[1] += (a[2] - b[2]) * (a[0] + b[0])
            n[2] += (a[0] - b[0]) * (a[1] + b[1])
        return Vec3.from_array(n).normalize()

    def _update(self) -> None:
        if self._explicit_normal is not None:
            self.normal = self._explicit_normal
        else:
            self.normal = self._winding_normal()
        self.center = (self.corners[0] + self.corners[1] + self.corners[2] + self.corners[3]) / 4.0
        self._bbox = AABB.from_points(self.corners, BOUNDS_TOLERANCE)

    def __repr__(self) -> str:
        return f"BoundedPlane(center={self.center}, normal={self.normal})"


class Mesh(Shape):
    """A composite shape owning a list of child shapes.

    Intersection returns the closest child hit; transforms are forwarded
    to every child so the relative layout is preserved.
    """

    def __init__(self, children: Optional[List[Shape]] = None, material: Optional['Material'] = None):
        self.children: List[Shape] = list(children) if children is not None else []
        super().__init__(material)
        self._update()

    @property
    def material(self) -> Optional['Material']:
        return self._material

    @material.setter
    def material(self, value: Optional['Material']) -> None:
        self._material = value
        if value is not None:
            for child in self.children:
                child.material = value

    def add(self, shape: Shape) -> None:
        """Add a child; it inherits the mesh material when it has none."""
        if shape.material is None:
            shape.material = self._material
        self.children.append(shape)
        self._touch()

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        return closest_hit(self.children, ray, t_min, t_max)

    def flatten(self) -> Iterator[Shape]:
        """Yield the leaf primitives, descending into nested meshes."""
        for child in self.children:
            if isinstance(child, Mesh):
                yield from child.flatten()
            else:
                yield child

    def transform(self, matrix: np.ndarray, offset: Optional[Vec3] = None) -> None:
        for child in self.children:
            child.transform(matrix, offset)
        self._touch()

    def scale(self, sx: float, sy: Optional[float] = None, sz: Optional[float] = None) -> None:
        # Children apply their own scaling rules (spheres scale their radius)
        for child in self.children:
            child.scale(sx, sy, sz)
        self._touch()

    def _apply_affine(self, matrix: np.ndarray, offset: Vec3) -> None:
        for child in self.children:
            child.transform(matrix, offset)

    def _update(self) -> None:
        if not self.children:
            self.center = Point3()
            self._bbox = None
            return
        total = Point3()
        for child in self.children:
            total = total + child.center
        self.center = total / len(self.children)
        self._bbox = AABB.union(child.bounding_box() for child in self.children)

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self):
        return iter(self.children)

    def __repr__(self) -> str:
        return f"Mesh({len(self.children)} shapes)"


class ShapeList:
    """A flat collection of shapes searched by linear scan.

    This is the brute-force counterpart of the k-d tree.
    """

    def __init__(self, shapes: Optional[List[Shape]] = None):
        self.shapes: List[Shape] = shapes if shapes is not None else []

    def add(self, shape: Shape) -> None:
        """Add a shape to the list."""
        self.shapes.append(shape)

    def hit(self, ray: Ray, t_min: float, t_max: float) -> Optional[HitRecord]:
        """Find the closest intersection among all shapes."""
        return closest_hit(self.shapes, ray, t_min, t_max)

    def bounding_box(self) -> Optional[AABB]:
        """Return the AABB containing all shapes."""
        return AABB.union(shape.bounding_box() for shape in self.shapes)

    def __len__(self) -> int:
        return len(self.shapes)

    def __iter__(self):
        return iter(self.shapes)
