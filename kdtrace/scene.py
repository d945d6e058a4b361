"""
Scene container and recursive ray spawning.

A Scene owns the shapes, lights and cameras of a render together with the
ambient parameters and the k-d tree built over its primitives. Geometry
may be transformed freely while the scene is assembled; `build_index()`
freezes it. After that, any transform or new shape makes the index stale,
and `check_index()` refuses to let a render run against it.
"""

from __future__ import annotations
from typing import Iterator, List, Optional, Tuple
import logging
import math

from .vec3 import Color
from .ray import Ray
from .shapes import Shape, Mesh, HitRecord, closest_hit
from .kdtree import KDTree, BuildReport, TraversalStats, build_kdtree, DEFAULT_LEAF_SIZE, DEFAULT_MAX_DEPTH
from .materials import Material, DEFAULT_MATERIAL
from .lights import PointLight
from .camera import Camera

logger = logging.getLogger(__name__)

# Offset of secondary ray origins from the surface, avoids self-intersection
SURFACE_OFFSET = 1e-3
DEFAULT_AMBIENT_LIGHT = Color(0.2, 0.2, 0.25)
DEFAULT_AMBIENT_COEFFICIENT = 0.1
DEFAULT_RECURSION_DEPTH = 5


class SpatialIndexError(RuntimeError):
    """Base class for misuse of the scene's spatial index."""


class IndexNotBuiltError(SpatialIndexError):
    """Raised when the scene is queried before build_index()."""


class StaleIndexError(SpatialIndexError):
    """Raised when geometry changed after the index was built."""


class Scene:
    """Shapes, lights, cameras and the spatial index over them."""

    def __init__(
        self,
        shapes: Optional[List[Shape]] = None,
        lights: Optional[List[PointLight]] = None,
        cameras: Optional[List[Camera]] = None,
        ambient_light: Color = None,
        ambient_coefficient: float = DEFAULT_AMBIENT_COEFFICIENT,
        max_depth: int = DEFAULT_RECURSION_DEPTH,
        leaf_size: int = DEFAULT_LEAF_SIZE,
        index_depth: int = DEFAULT_MAX_DEPTH
    ):
        """Create a scene.

        Args:
            shapes: Top-level shapes (meshes are flattened for indexing)
            lights: Point lights
            cameras: Cameras; the first one is used by default
            ambient_light: Ambient/background color (La)
            ambient_coefficient: Ambient weight (ka)
            max_depth: Recursion cap for reflection/refraction rays
            leaf_size: k-d tree leaf threshold
            index_depth: k-d tree depth cap
        """
        self.shapes: List[Shape] = list(shapes) if shapes is not None else []
        self.lights: List[PointLight] = list(lights) if lights is not None else []
        self.cameras: List[Camera] = list(cameras) if cameras is not None else []
        self.ambient_light = ambient_light if ambient_light is not None else DEFAULT_AMBIENT_LIGHT
        self.ambient_coefficient = ambient_coefficient
        self.max_depth = max_depth
        self.leaf_size = leaf_size
        self.index_depth = index_depth
        self.index: Optional[KDTree] = None
        self._fingerprint: Optional[Tuple] = None

    def add(self, shape: Shape) -> None:
        """Add a shape; a built index becomes stale."""
        self.shapes.append(shape)

    def add_light(self, light: PointLight) -> None:
        self.lights.append(light)

    def add_camera(self, camera: Camera) -> None:
        self.cameras.append(camera)

    @property
    def camera(self) -> Camera:
        """The default (first) camera."""
        if not self.cameras:
            raise ValueError("Scene has no camera")
        return self.cameras[0]

    @property
    def background(self) -> Color:
        """Color returned for rays that escape or exhaust the depth cap."""
        return self.ambient_light * self.ambient_coefficient

    def primitives(self) -> List[Shape]:
        """All leaf shapes, with meshes expanded into their children."""
        result: List[Shape] = []
        for shape in self.shapes:
            if isinstance(shape, Mesh):
                result.extend(shape.flatten())
            else:
                result.append(shape)
        return result

    def _current_fingerprint(self) -> Tuple:
        return tuple((id(s), s.revision) for s in self.primitives())

    def build_index(self) -> BuildReport:
        """Build the k-d tree over the current primitives and freeze geometry.

        Returns:
            The tree's build report
        """
        primitives = self.primitives()
        self.index = build_kdtree(primitives, leaf_size=self.leaf_size, max_depth=self.index_depth)
        self._fingerprint = tuple((id(s), s.revision) for s in primitives)
        logger.info("Indexed %d primitives (%d leaves, depth %d)",
                    len(primitives), self.index.report.leaf_count,
                    self.index.report.max_depth_reached)
        return self.index.report

    def is_index_stale(self) -> bool:
        """True when shapes were added or transformed since the last build."""
        return self.index is not None and self._fingerprint != self._current_fingerprint()

    def check_index(self) -> None:
        """Verify the index is usable.

        Raises:
            IndexNotBuiltError: build_index() was never called
            StaleIndexError: geometry changed after the last build
        """
        if self.index is None:
            raise IndexNotBuiltError("Scene index has not been built; call build_index() first")
        if self.is_index_stale():
            logger.error("Scene geometry changed after the index was built")
            raise StaleIndexError("Scene geometry changed since build_index(); rebuild the index")

    def nearest_hit(
        self,
        ray: Ray,
        t_min: float = 0.0,
        t_max: float = math.inf,
        stats: Optional[TraversalStats] = None
    ) -> Optional[HitRecord]:
        """Closest intersection through the k-d tree."""
        if self.index is None:
            raise IndexNotBuiltError("Scene index has not been built; call build_index() first")
        return self.index.nearest_hit(ray, t_min, t_max, stats)

    def linear_nearest_hit(
        self,
        ray: Ray,
        t_min: float = 0.0,
        t_max: float = math.inf,
        stats: Optional[TraversalStats] = None
    ) -> Optional[HitRecord]:
        """Closest intersection by brute force over every primitive."""
        return closest_hit(self.primitives(), ray, t_min, t_max, stats)

    def material_at(self, hit: HitRecord) -> Material:
        """The concrete material at a hit, falling back to a grey default."""
        material = hit.material if hit.material is not None else DEFAULT_MATERIAL
        return material.resolve(hit)

    def trace(self, ray: Ray) -> Color:
        """Color seen along a primary ray."""
        return self.spawn_ray(ray, 0)

    def spawn_ray(self, ray: Ray, depth: int = 0) -> Color:
        """Shade a ray, recursing for reflection and refraction.

        Args:
            ray: The ray to follow
            depth: Number of bounces already taken

        Returns:
            Color clamped to [0, 1]
        """
        if depth > self.max_depth:
            return self.background

        hit = self.nearest_hit(ray)
        if hit is None:
            return self.background

        material = self.material_at(hit)
        color = material.shade(ray, hit, self)
        normal = hit.normal

        if material.k_reflection > 0.0:
            reflected = Ray(hit.point + normal * SURFACE_OFFSET,
                            ray.direction.reflect(normal).normalize())
            color = color + self.spawn_ray(reflected, depth + 1) * material.k_reflection

        if material.k_transmission > 0.0:
            eta = 1.0 / material.ior if hit.front_face else material.ior
            refracted = ray.direction.refract(normal, eta)
            if refracted is None:
                # Total internal reflection
                transmitted = Ray(hit.point + normal * SURFACE_OFFSET,
                                  ray.direction.reflect(normal).normalize())
            else:
                transmitted = Ray(hit.point - normal * SURFACE_OFFSET, refracted)
            color = color + self.spawn_ray(transmitted, depth + 1) * material.k_transmission

        return color.clamp(0.0, 1.0)

    def summary(self) -> dict:
        """Counts describing the scene, for diagnostics."""
        info = {
            'shapes': len(self.shapes),
            'primitives': len(self.primitives()),
            'lights': len(self.lights),
            'cameras': len(self.cameras),
            'max_depth': self.max_depth,
            'indexed': self.index is not None,
        }
        if self.index is not None:
            report = self.index.report
            info.update({
                'tree_nodes': report.node_count,
                'tree_leaves': report.leaf_count,
                'tree_depth': report.max_depth_reached,
                'duplicated_references': report.duplicated_references,
                'unplaced': len(report.unplaced),
            })
        return info

    def __iter__(self) -> Iterator[Shape]:
        return iter(self.shapes)

    def __len__(self) -> int:
        return len(self.shapes)
