"""
kdtrace - A Python Whitted-style Ray Tracer

A recursive ray tracer built around a k-d tree, with support for:
- Spheres, triangles, bounded planes and composite meshes
- Phong illumination with partial (transmissive) shadows
- Mirror reflection and refraction with a recursion cap
- Procedural checkerboard materials
- Multi-threaded, column-parallel rendering
- OBJ import and YAML/JSON scene files
- Light/camera animation
"""

__version__ = "0.1.0"
__author__ = "kdtrace Team"

from .vec3 import Vec3, Point3, Color, rotation_matrix, solve_quadratic
from .ray import Ray
from .aabb import AABB
from .shapes import Shape, Sphere, Triangle, BoundedPlane, Mesh, ShapeList, HitRecord
from .kdtree import KDTree, KDNode, KDLeaf, PartitionPlane, BuildReport, TraversalStats, build_kdtree
from .materials import Material, Flat, Phong, Mirror, Transmissive, Checkerboard
from .lights import PointLight, LightSample, phong_illumination
from .camera import Camera
from .scene import Scene, SpatialIndexError, IndexNotBuiltError, StaleIndexError
from .renderer import Renderer, RenderSettings, get_platform_info
from .tonemapping import (
    ToneMapper, ToneMappingOperator, LinearToneMapper, ReinhardToneMapper,
    WardToneMapper, create_tone_mapper, apply_gamma
)
from .obj_loader import OBJLoader, load_obj, get_mesh_stats
from .scene_parser import SceneParser, SceneParseError, load_scene, parse_scene
from .animation import Animator, render_animation
from .scenes import SCENES, default_scene, mirror_corridor, glass_scene, random_spheres, mesh_scene
