"""Tests for Camera class."""

import pytest
import math
from kdtrace.vec3 import Vec3, Point3
from kdtrace.camera import Camera


class TestCameraCreation:
    """Test Camera construction."""

    def test_default_camera(self):
        cam = Camera(
            look_from=Point3(0, 0, 0),
            look_at=Point3(0, 0, -1),
            vup=Vec3(0, 1, 0),
            vfov=90,
            aspect_ratio=16/9
        )
        assert cam.origin == Point3(0, 0, 0)
        assert cam.position == Point3(0, 0, 0)

    def test_camera_basis_vectors(self):
        cam = Camera(
            look_from=Point3(0, 0, 0),
            look_at=Point3(0, 0, -1),
            vup=Vec3(0, 1, 0),
            vfov=90,
            aspect_ratio=1.0
        )
        # w should point backward (opposite of look direction)
        assert cam.w.z > 0
        # u should point right
        assert abs(cam.u.x - 1.0) < 1e-6
        # v should point up
        assert abs(cam.v.y - 1.0) < 1e-6


class TestCameraRays:
    """Test Camera.get_ray() method."""

    @pytest.fixture
    def cam(self):
        return Camera(
            look_from=Point3(0, 0, 0),
            look_at=Point3(0, 0, -1),
            vup=Vec3(0, 1, 0),
            vfov=90,
            aspect_ratio=1.0
        )

    def test_center_ray(self, cam):
        ray = cam.get_ray(0.5, 0.5)
        assert ray.direction == Vec3(0, 0, -1)

    def test_rays_are_normalized(self, cam):
        for s, t in ((0, 0), (1, 1), (0.3, 0.8)):
            assert abs(cam.get_ray(s, t).direction.length() - 1.0) < 1e-9

    def test_corner_rays(self, cam):
        # Bottom-left
        bl = cam.get_ray(0, 0)
        assert bl.direction.x < 0
        assert bl.direction.y < 0

        # Top-right
        tr = cam.get_ray(1, 1)
        assert tr.direction.x > 0
        assert tr.direction.y > 0

    def test_field_of_view(self, cam):
        # 90 degrees vertical: the top edge is 45 degrees above the axis
        top = cam.get_ray(0.5, 1.0)
        angle = math.degrees(math.acos(-top.direction.z))
        assert abs(angle - 45.0) < 1e-9


class TestCameraMotion:
    """Test re-posing a camera between frames."""

    def test_move_position(self):
        cam = Camera(Point3(0, 0, 0), Point3(0, 0, -1), aspect_ratio=1.0)
        cam.position = Point3(0, 0, 5)

        ray = cam.get_ray(0.5, 0.5)

        assert ray.origin == Point3(0, 0, 5)
        assert ray.direction == Vec3(0, 0, -1)

    def test_move_look_at(self):
        cam = Camera(Point3(0, 0, 0), Point3(0, 0, -1), aspect_ratio=1.0)
        cam.look_at = Point3(1, 0, 0)

        ray = cam.get_ray(0.5, 0.5)

        assert ray.direction == Vec3(1, 0, 0)

    def test_aspect_ratio_widens_view(self):
        cam = Camera(Point3(0, 0, 0), Point3(0, 0, -1), aspect_ratio=1.0)
        narrow = cam.get_ray(1.0, 0.5).direction.x

        cam.aspect_ratio = 2.0
        wide = cam.get_ray(1.0, 0.5).direction.x

        assert wide > narrow
        assert abs(cam.horizontal.length() - 4.0) < 1e-9
