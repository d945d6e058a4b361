"""Tests for Ray class."""

import math

from kdtrace.vec3 import Vec3, Point3
from kdtrace.ray import Ray


class TestRay:
    """Test Ray class."""

    def test_at(self):
        ray = Ray(Point3(1, 2, 3), Vec3(0, 0, -1))
        assert ray.at(0) == Point3(1, 2, 3)
        assert ray.at(2.5) == Point3(1, 2, 0.5)

    def test_inverse_direction(self):
        ray = Ray(Point3(0, 0, 0), Vec3(2, -4, 0.5))
        assert ray.inv_direction == (0.5, -0.25, 2.0)

    def test_sign_bits(self):
        ray = Ray(Point3(0, 0, 0), Vec3(1, -1, 1))
        assert ray.sign == (0, 1, 0)

    def test_zero_component_is_signed_infinity(self):
        ray = Ray(Point3(0, 0, 0), Vec3(1, 0.0, -0.0))
        assert ray.inv_direction[1] == math.inf
        assert ray.inv_direction[2] == -math.inf
        assert ray.sign[1] == 0
        assert ray.sign[2] == 1

    def test_reversed(self):
        ray = Ray(Point3(1, 1, 1), Vec3(0, 1, 0)).reversed()
        assert ray.origin == Point3(1, 1, 1)
        assert ray.direction == Vec3(0, -1, 0)
        assert ray.sign == (0, 1, 0)
