"""Tests for geometric shapes."""

import pytest
import math
import numpy as np

from kdtrace.vec3 import Vec3, Point3
from kdtrace.ray import Ray
from kdtrace.aabb import AABB
from kdtrace.shapes import Sphere, Triangle, BoundedPlane, Mesh, ShapeList


class TestSphere:
    """Test Sphere class."""

    def test_ray_hits_sphere(self):
        sphere = Sphere(Point3(0, 0, -5), 1.0)
        ray = Ray(Point3(0, 0, 0), Vec3(0, 0, -1))

        hit = sphere.hit(ray, 0.001, float('inf'))

        assert hit is not None
        assert abs(hit.t - 4.0) < 1e-6
        assert hit.normal == Vec3(0, 0, 1)
        assert hit.front_face
        assert hit.shape is sphere

    def test_ray_misses_sphere(self):
        sphere = Sphere(Point3(0, 0, -5), 1.0)
        ray = Ray(Point3(0, 2, 0), Vec3(0, 0, -1))
        assert sphere.hit(ray, 0.001, float('inf')) is None

    def test_sphere_behind_ray(self):
        sphere = Sphere(Point3(0, 0, 5), 1.0)
        ray = Ray(Point3(0, 0, 0), Vec3(0, 0, -1))
        assert sphere.intersect(ray) is None

    def test_chord_length(self):
        # A ray passing at distance d from the center cuts a chord of 2*sqrt(r^2 - d^2)
        r, d = 2.0, 1.2
        sphere = Sphere(Point3(0, 0, -10), r)
        ray = Ray(Point3(d, 0, 0), Vec3(0, 0, -1))

        t0, t1 = sphere.roots(ray)

        assert abs((t1 - t0) - 2 * math.sqrt(r * r - d * d)) < 1e-9

    def test_tangent_ray_repeated_root(self):
        sphere = Sphere(Point3(0, 0, -5), 1.0)
        ray = Ray(Point3(1, 0, 0), Vec3(0, 0, -1))

        t0, t1 = sphere.roots(ray)

        assert abs(t0 - 5.0) < 1e-6
        assert abs(t1 - 5.0) < 1e-6

    def test_ray_from_inside(self):
        sphere = Sphere(Point3(0, 0, 0), 2.0)
        ray = Ray(Point3(0, 0, 0), Vec3(1, 0, 0))

        hit = sphere.hit(ray, 0.001, float('inf'))

        assert abs(hit.t - 2.0) < 1e-6
        assert not hit.front_face
        # Normal flipped to face the ray
        assert hit.normal == Vec3(-1, 0, 0)
        assert hit.outward_normal == Vec3(1, 0, 0)

    def test_bounding_box(self):
        sphere = Sphere(Point3(1, 2, 3), 0.5)
        bbox = sphere.bounding_box()
        assert bbox.minimum == Point3(0.5, 1.5, 2.5)
        assert bbox.maximum == Point3(1.5, 2.5, 3.5)

    def test_overlaps_box_is_exact(self):
        sphere = Sphere(Point3(0, 0, 0), 1.0)
        # The box corner region is within the sphere's bbox but outside the sphere
        corner_box = AABB(Point3(0.8, 0.8, 0.8), Point3(2, 2, 2))
        face_box = AABB(Point3(0.9, -0.1, -0.1), Point3(2, 0.1, 0.1))
        assert sphere.bounding_box().overlaps(corner_box)
        assert not sphere.overlaps_box(corner_box)
        assert sphere.overlaps_box(face_box)

    def test_uv_in_unit_square(self):
        sphere = Sphere(Point3(0, 0, 0), 1.0)
        for point in (Point3(1, 0, 0), Point3(0, 1, 0), Point3(0, 0, -1)):
            u, v = sphere.uv(point)
            assert 0.0 <= u <= 1.0
            assert 0.0 <= v <= 1.0


class TestTriangle:
    """Test Triangle class."""

    @pytest.fixture
    def triangle(self):
        return Triangle(Point3(-1, -1, -2), Point3(1, -1, -2), Point3(0, 1, -2))

    def test_ray_hits_triangle(self, triangle):
        ray = Ray(Point3(0, 0, 0), Vec3(0, 0, -1))

        hit = triangle.hit(ray, 0.001, float('inf'))

        assert hit is not None
        assert abs(hit.t - 2.0) < 1e-6
        assert hit.normal == Vec3(0, 0, 1)

    def test_ray_misses_triangle(self, triangle):
        ray = Ray(Point3(5, 5, 0), Vec3(0, 0, -1))
        assert triangle.hit(ray, 0.001, float('inf')) is None

    def test_parallel_ray_misses(self, triangle):
        ray = Ray(Point3(-5, 0, -2), Vec3(1, 0, 0))
        assert triangle.hit(ray, 0.0, float('inf')) is None

    def test_barycentric_at_vertices(self, triangle):
        for vertex, expected in ((triangle.v0, (0, 0)), (triangle.v1, (1, 0)), (triangle.v2, (0, 1))):
            u, v = triangle.barycentric(vertex)
            assert abs(u - expected[0]) < 1e-9
            assert abs(v - expected[1]) < 1e-9

    def test_hit_barycentrics_match(self, triangle):
        ray = Ray(Point3(0.2, -0.5, 0), Vec3(0, 0, -1))

        hit = triangle.hit(ray, 0.0, float('inf'))
        u, v = triangle.barycentric(hit.point)

        assert abs(hit.u - u) < 1e-9
        assert abs(hit.v - v) < 1e-9

    def test_interpolated_normals(self):
        n = Vec3(0, 1, 1)
        tri = Triangle(Point3(-1, -1, -2), Point3(1, -1, -2), Point3(0, 1, -2),
                       normals=[n, n, n])
        hit = tri.hit(Ray(Point3(0, 0, 0), Vec3(0, 0, -1)), 0.0, float('inf'))
        assert hit.normal == n.normalize()

    def test_uv_from_vertex_coordinates(self):
        tri = Triangle(Point3(0, 0, 0), Point3(1, 0, 0), Point3(0, 1, 0),
                       uvs=[(0.0, 0.0), (2.0, 0.0), (0.0, 4.0)])
        u, v = tri.uv(Point3(0.5, 0.25, 0))
        assert abs(u - 1.0) < 1e-9
        assert abs(v - 1.0) < 1e-9

    def test_flat_bounding_box_has_thickness(self, triangle):
        bbox = triangle.bounding_box()
        assert bbox.size.z > 0.0


class TestBoundedPlane:
    """Test BoundedPlane class."""

    @pytest.fixture
    def floor(self):
        return BoundedPlane.from_center(Point3(0, -1, 0), Vec3(0, 1, 0), 4.0, 2.0)

    def test_ray_hits_plane(self, floor):
        ray = Ray(Point3(0.5, 1, 0.5), Vec3(0, -1, 0))

        hit = floor.hit(ray, 0.001, float('inf'))

        assert hit is not None
        assert abs(hit.t - 2.0) < 1e-6
        assert hit.normal == Vec3(0, 1, 0)

    def test_ray_outside_outline_misses(self, floor):
        ray = Ray(Point3(3.0, 1, 0), Vec3(0, -1, 0))
        assert floor.hit(ray, 0.001, float('inf')) is None

    def test_parallel_ray_misses(self, floor):
        ray = Ray(Point3(-5, -1, 0), Vec3(1, 0, 0))
        assert floor.hit(ray, 0.0, float('inf')) is None

    def test_from_center_dimensions(self, floor):
        # Horizontal edge is up x normal with up = +z, so it runs along x
        edge_h = floor.corners[1] - floor.corners[0]
        edge_v = floor.corners[3] - floor.corners[0]
        assert abs(edge_h.length() - 4.0) < 1e-9
        assert abs(edge_v.length() - 2.0) < 1e-9
        assert abs(edge_h.x) > 0.0

    def test_z_normal_uses_y_up(self):
        wall = BoundedPlane.from_center(Point3(0, 0, -3), Vec3(0, 0, 1), 2.0, 2.0)
        assert wall.normal == Vec3(0, 0, 1)
        assert wall.contains(Point3(0.9, 0.9, -3))
        assert not wall.contains(Point3(1.1, 0, -3))

    def test_winding_normal(self):
        plane = BoundedPlane([Point3(0, 0, 0), Point3(1, 0, 0), Point3(1, 1, 0), Point3(0, 1, 0)])
        assert plane.normal == Vec3(0, 0, 1)

    def test_requires_four_corners(self):
        with pytest.raises(ValueError):
            BoundedPlane([Point3(0, 0, 0), Point3(1, 0, 0), Point3(1, 1, 0)])

    def test_uv_distances_along_edges(self):
        plane = BoundedPlane([Point3(0, 0, 0), Point3(2, 0, 0), Point3(2, 3, 0), Point3(0, 3, 0)])
        u, v = plane.uv(Point3(1.5, 0.5, 0))
        assert abs(u - 1.5) < 1e-9
        assert abs(v - 0.5) < 1e-9


class TestTransforms:
    """Test in-place affine transforms."""

    def test_translate_sphere(self):
        sphere = Sphere(Point3(0, 0, 0), 1.0)
        sphere.translate(Vec3(1, 2, 3))
        assert sphere.center == Point3(1, 2, 3)
        assert sphere.bounding_box().minimum == Point3(0, 1, 2)

    def test_transform_bumps_revision(self):
        sphere = Sphere(Point3(0, 0, 0), 1.0)
        assert sphere.revision == 0
        sphere.translate(Vec3(1, 0, 0))
        sphere.rotate_y(0.5)
        assert sphere.revision == 2

    def test_scale_sphere_radius(self):
        sphere = Sphere(Point3(1, 0, 0), 1.0)
        sphere.scale(2.0)
        assert sphere.center == Point3(2, 0, 0)
        assert abs(sphere.radius - 2.0) < 1e-9

    def test_transform_matrix_scales_sphere_radius(self):
        sphere = Sphere(Point3(1, 0, 0), 1.0)
        sphere.transform(np.diag([3.0, 3.0, 3.0]), Vec3(0, 1, 0))
        assert sphere.center == Point3(3, 1, 0)
        assert abs(sphere.radius - 3.0) < 1e-9
        assert abs(sphere.bounding_box().size.x - 6.0) < 1e-9

    def test_rotation_keeps_sphere_radius(self):
        sphere = Sphere(Point3(1, 0, 0), 1.5)
        sphere.rotate(Vec3(1, 1, 0), 0.7)
        assert abs(sphere.radius - 1.5) < 1e-9

    def test_rotate_triangle(self):
        tri = Triangle(Point3(1, 0, 0), Point3(0, 1, 0), Point3(0, 0, 1))
        tri.rotate_z(math.pi / 2)
        assert tri.v0 == Point3(0, 1, 0)
        assert tri.v1 == Point3(-1, 0, 0)
        assert tri.v2 == Point3(0, 0, 1)

    def test_rotate_triangle_normals(self):
        n = Vec3(1, 0, 0)
        tri = Triangle(Point3(0, 0, 0), Point3(0, 1, 0), Point3(0, 0, 1), normals=[n, n, n])
        tri.rotate_z(math.pi / 2)
        assert tri.normals[0] == Vec3(0, 1, 0)

    def test_rotate_plane_updates_normal(self):
        plane = BoundedPlane.from_center(Point3(0, 0, 0), Vec3(0, 1, 0), 2.0, 2.0)
        plane.rotate_x(math.pi / 2)
        assert plane.normal == Vec3(0, 0, 1) or plane.normal == Vec3(0, 0, -1)

    def test_nonuniform_scale(self):
        tri = Triangle(Point3(1, 1, 1), Point3(2, 1, 1), Point3(1, 2, 1))
        tri.scale(2.0, 3.0, 4.0)
        assert tri.v0 == Point3(2, 3, 4)
        assert tri.v2 == Point3(2, 6, 4)

    def test_general_matrix(self):
        sphere = Sphere(Point3(1, 0, 0), 1.0)
        sphere.transform(np.array([[0, -1, 0], [1, 0, 0], [0, 0, 1]], dtype=float), Vec3(0, 0, 5))
        assert sphere.center == Point3(0, 1, 5)


class TestMesh:
    """Test the composite Mesh shape."""

    @pytest.fixture
    def mesh(self):
        return Mesh([
            Sphere(Point3(-2, 0, -5), 1.0),
            Sphere(Point3(2, 0, -5), 1.0),
            Triangle(Point3(-1, -1, -3), Point3(1, -1, -3), Point3(0, 1, -3)),
        ])

    def test_closest_child_hit(self, mesh):
        hit = mesh.hit(Ray(Point3(0, 0, 0), Vec3(0, 0, -1)), 0.0, float('inf'))
        assert isinstance(hit.shape, Triangle)
        assert abs(hit.t - 3.0) < 1e-6

    def test_center_is_mean_of_children(self, mesh):
        expected = (Point3(-2, 0, -5) + Point3(2, 0, -5) + Point3(0, -1 / 3, -3)) / 3
        assert mesh.center == expected

    def test_transform_forwards_to_children(self, mesh):
        mesh.translate(Vec3(0, 10, 0))
        for child in mesh:
            assert child.revision == 1
            assert child.center.y > 9.0
        assert mesh.revision == 1
        assert mesh.bounding_box().minimum.y > 8.0

    def test_scale_forwards_sphere_radius(self, mesh):
        mesh.scale(0.5)
        assert abs(mesh.children[0].radius - 0.5) < 1e-9
        assert mesh.children[0].center == Point3(-1, 0, -2.5)

    def test_transform_forwards_sphere_radius(self, mesh):
        mesh.transform(np.eye(3) * 2.0)
        assert abs(mesh.children[0].radius - 2.0) < 1e-9
        assert mesh.children[0].center == Point3(-4, 0, -10)

    def test_material_propagates(self, mesh):
        marker = object()
        mesh.material = marker
        assert all(child.material is marker for child in mesh)

    def test_flatten_nested(self, mesh):
        outer = Mesh([mesh, Sphere(Point3(0, 5, 0), 1.0)])
        assert len(list(outer.flatten())) == 4

    def test_empty_mesh(self):
        mesh = Mesh()
        assert len(mesh) == 0
        assert mesh.bounding_box() is None


class TestShapeList:
    """Test the brute-force shape list."""

    def test_closest_hit(self):
        shapes = ShapeList()
        shapes.add(Sphere(Point3(0, 0, -10), 1.0))
        shapes.add(Sphere(Point3(0, 0, -5), 1.0))

        hit = shapes.hit(Ray(Point3(0, 0, 0), Vec3(0, 0, -1)), 0.0, float('inf'))

        assert abs(hit.t - 4.0) < 1e-6
        assert len(shapes) == 2

    def test_bounding_box(self):
        shapes = ShapeList([Sphere(Point3(0, 0, 0), 1.0), Sphere(Point3(5, 0, 0), 1.0)])
        bbox = shapes.bounding_box()
        assert bbox.minimum.x == -1.0
        assert bbox.maximum.x == 6.0
