"""
Built-in demo scenes.

Every factory returns a Scene with lights, a camera and a built index,
ready to hand to a Renderer.
"""

from __future__ import annotations
from typing import Callable, Dict, Optional
import math

import numpy as np

from .vec3 import Vec3, Point3, Color
from .camera import Camera
from .shapes import Sphere, Triangle, BoundedPlane, Mesh
from .materials import Material, Phong, Mirror, Transmissive, Checkerboard
from .lights import PointLight
from .scene import Scene
from .obj_loader import load_obj


def _checker_floor(y: float, z: float, width: float, depth: float, cell_size: float = 0.5) -> BoundedPlane:
    red = Phong(Color(0.9, 0.1, 0.1), k_diffuse=1.0, k_specular=0.3, specular_exponent=5.0)
    yellow = Phong(Color(0.9, 0.9, 0.1), k_diffuse=1.0, k_specular=0.3, specular_exponent=5.0)
    return BoundedPlane.from_center(
        Point3(0, y, z), Vec3(0, 1, 0), width, depth,
        Checkerboard(red, yellow, cell_size)
    )


def default_scene(width: int = 400, height: int = 300) -> Scene:
    """Two Phong spheres (one checkered) and a mirror sphere over a checkerboard floor."""
    scene = Scene()

    blue = Phong(Color(0.1, 0.1, 0.9), k_diffuse=1.0, k_specular=0.5, specular_exponent=5.0)
    red = Phong(Color(0.9, 0.1, 0.1), k_diffuse=1.0, k_specular=1.0, specular_exponent=5.0)

    scene.add(_checker_floor(y=-0.5, z=-3.0, width=6.0, depth=10.0))
    scene.add(Sphere(Point3(-0.6, -0.1, -2.4), 0.4, blue))
    scene.add(Sphere(Point3(0.5, -0.1, -2.0), 0.4, Checkerboard(red, blue, 0.1)))
    scene.add(Sphere(Point3(0.0, 0.3, -3.8), 0.8, Mirror()))

    scene.add_light(PointLight(Point3(0.0, 2.0, -1.0), Color(1, 1, 1), 7.5))
    scene.add_camera(Camera(
        look_from=Point3(0.0, 0.3, 0.5),
        look_at=Point3(0.0, 0.0, -2.5),
        vfov=60,
        aspect_ratio=width / height
    ))

    scene.build_index()
    return scene


def mirror_corridor(width: int = 400, height: int = 300, max_depth: int = 5) -> Scene:
    """Two parallel mirrors facing each other with a sphere between them.

    Every reflection bounces back and forth until the recursion cap.
    """
    scene = Scene(max_depth=max_depth)

    scene.add(BoundedPlane.from_center(Point3(-1.0, 0, -3), Vec3(1, 0, 0), 8.0, 4.0, Mirror()))
    scene.add(BoundedPlane.from_center(Point3(1.0, 0, -3), Vec3(-1, 0, 0), 8.0, 4.0, Mirror()))
    scene.add(_checker_floor(y=-1.0, z=-3.0, width=2.0, depth=8.0, cell_size=0.25))
    scene.add(Sphere(Point3(0.0, -0.5, -3.0), 0.5, Phong(Color(0.2, 0.8, 0.2))))

    scene.add_light(PointLight(Point3(0.0, 1.5, -2.0), Color(1, 1, 1), 5.0))
    scene.add_camera(Camera(
        look_from=Point3(0.3, 0.2, 0.5),
        look_at=Point3(-0.4, -0.3, -3.0),
        vfov=60,
        aspect_ratio=width / height
    ))

    scene.build_index()
    return scene


def glass_scene(width: int = 400, height: int = 300) -> Scene:
    """A transmissive sphere in front of an opaque one, over a checkerboard."""
    scene = Scene()

    scene.add(_checker_floor(y=-0.5, z=-3.0, width=6.0, depth=10.0))
    scene.add(Sphere(Point3(0.0, 0.0, -2.0), 0.5, Transmissive(ior=1.5)))
    scene.add(Sphere(Point3(0.4, 0.0, -4.0), 0.5, Phong(Color(0.2, 0.3, 0.9), k_specular=0.5)))

    scene.add_light(PointLight(Point3(-1.0, 2.0, 0.0), Color(1, 1, 1), 10.0))
    scene.add_camera(Camera(
        look_from=Point3(0.0, 0.2, 0.5),
        look_at=Point3(0.0, 0.0, -2.0),
        vfov=50,
        aspect_ratio=width / height
    ))

    scene.build_index()
    return scene


def random_spheres(width: int = 400, height: int = 300, count: int = 200, seed: int = 0) -> Scene:
    """Many small random Phong spheres; exercises the k-d tree."""
    rng = np.random.default_rng(seed)
    scene = Scene()

    for _ in range(count):
        x, y, z = rng.uniform(-3.0, 3.0), rng.uniform(-2.0, 2.0), rng.uniform(-9.0, -3.0)
        r, g, b = rng.uniform(0.1, 1.0, size=3)
        material = Phong(Color(r, g, b), k_diffuse=0.9, k_specular=0.3,
                         k_reflection=0.3 if rng.random() < 0.1 else 0.0)
        scene.add(Sphere(Point3(x, y, z), float(rng.uniform(0.1, 0.3)), material))

    scene.add_light(PointLight(Point3(0.0, 4.0, 0.0), Color(1, 1, 1), 30.0))
    scene.add_camera(Camera(
        look_from=Point3(0.0, 0.0, 1.0),
        look_at=Point3(0.0, 0.0, -6.0),
        vfov=60,
        aspect_ratio=width / height
    ))

    scene.build_index()
    return scene


def octahedron(material: Optional[Material] = None) -> Mesh:
    """A unit octahedron as a mesh of eight triangles."""
    px, nx = Point3(1, 0, 0), Point3(-1, 0, 0)
    py, ny = Point3(0, 1, 0), Point3(0, -1, 0)
    pz, nz = Point3(0, 0, 1), Point3(0, 0, -1)
    faces = [
        (px, py, pz), (pz, py, nx), (nx, py, nz), (nz, py, px),
        (pz, ny, px), (nx, ny, pz), (nz, ny, nx), (px, ny, nz),
    ]
    return Mesh([Triangle(a, b, c) for a, b, c in faces], material)


def mesh_scene(width: int = 400, height: int = 300, obj_path: Optional[str] = None) -> Scene:
    """A mesh (an OBJ file, or a built-in octahedron) posed with transforms."""
    scene = Scene()

    material = Phong(Color(0.8, 0.5, 0.2), k_diffuse=0.9, k_specular=0.4, specular_exponent=30.0)
    if obj_path is not None:
        mesh = load_obj(obj_path, material, center=True)
        size = mesh.bounding_box().size
        extent = max(size.x, size.y, size.z)
        if extent > 0.0:
            mesh.scale(1.2 / extent)
    else:
        mesh = octahedron(material)
        mesh.scale(0.6)
    mesh.rotate_y(math.radians(30))
    mesh.rotate_x(math.radians(15))
    mesh.translate(Vec3(0.0, 0.0, -2.5))

    scene.add(mesh)
    scene.add(_checker_floor(y=-0.7, z=-3.0, width=6.0, depth=10.0))

    scene.add_light(PointLight(Point3(1.0, 2.0, 0.0), Color(1, 1, 1), 8.0))
    scene.add_camera(Camera(
        look_from=Point3(0.0, 0.4, 0.5),
        look_at=Point3(0.0, 0.0, -2.5),
        vfov=50,
        aspect_ratio=width / height
    ))

    scene.build_index()
    return scene


SCENES: Dict[str, Callable[..., Scene]] = {
    'default': default_scene,
    'mirrors': mirror_corridor,
    'glass': glass_scene,
    'random': random_spheres,
    'mesh': mesh_scene,
}
