"""Tests for axis-aligned bounding boxes."""

import math

from kdtrace.vec3 import Vec3, Point3
from kdtrace.ray import Ray
from kdtrace.aabb import AABB


def unit_box():
    return AABB(Point3(-1, -1, -1), Point3(1, 1, 1))


class TestAABBConstruction:
    """Test box construction and measures."""

    def test_corners_are_sorted(self):
        box = AABB(Point3(1, -1, 2), Point3(-1, 1, 0))
        assert box.minimum == Point3(-1, -1, 0)
        assert box.maximum == Point3(1, 1, 2)

    def test_from_points_with_padding(self):
        box = AABB.from_points([Point3(0, 0, 0), Point3(1, 2, 0)], padding=0.5)
        assert box.minimum == Point3(-0.5, -0.5, -0.5)
        assert box.maximum == Point3(1.5, 2.5, 0.5)

    def test_center_size_area(self):
        box = AABB(Point3(0, 0, 0), Point3(1, 2, 3))
        assert box.center == Point3(0.5, 1, 1.5)
        assert box.size == Vec3(1, 2, 3)
        assert abs(box.surface_area() - 22.0) < 1e-10

    def test_union(self):
        box = AABB.union([
            AABB(Point3(0, 0, 0), Point3(1, 1, 1)),
            AABB(Point3(-2, 0.5, 0), Point3(0, 3, 0.5)),
        ])
        assert box.minimum == Point3(-2, 0, 0)
        assert box.maximum == Point3(1, 3, 1)

    def test_union_of_nothing(self):
        assert AABB.union([]) is None


class TestAABBQueries:
    """Test containment, overlap and splitting."""

    def test_contains(self):
        box = unit_box()
        assert box.contains(Point3(0, 0, 0))
        assert box.contains(Point3(1, 1, 1))
        assert not box.contains(Point3(1.1, 0, 0))

    def test_touching_boxes_overlap(self):
        a = unit_box()
        b = AABB(Point3(1, 0, 0), Point3(2, 1, 1))
        c = AABB(Point3(1.01, 0, 0), Point3(2, 1, 1))
        assert a.overlaps(b)
        assert not a.overlaps(c)

    def test_split(self):
        lower, upper = unit_box().split(0, 0.25)
        assert lower.maximum.x == 0.25
        assert upper.minimum.x == 0.25
        assert lower.minimum == Point3(-1, -1, -1)
        assert upper.maximum == Point3(1, 1, 1)

    def test_split_clamps_position(self):
        lower, upper = unit_box().split(2, 5.0)
        assert lower.maximum.z == 1.0
        assert upper.minimum.z == 1.0


class TestAABBIntersect:
    """Test the slab test."""

    def test_entry_and_exit(self):
        ray = Ray(Point3(0, 0, 5), Vec3(0, 0, -1))
        t_entry, t_exit = unit_box().intersect(ray)
        assert abs(t_entry - 4.0) < 1e-10
        assert abs(t_exit - 6.0) < 1e-10

    def test_origin_inside(self):
        ray = Ray(Point3(0, 0, 0), Vec3(1, 0, 0))
        t_entry, t_exit = unit_box().intersect(ray)
        assert t_entry == 0.0
        assert abs(t_exit - 1.0) < 1e-10

    def test_miss(self):
        ray = Ray(Point3(0, 3, 5), Vec3(0, 0, -1))
        assert unit_box().intersect(ray) is None
        assert not unit_box().hit(ray, 0.0, math.inf)

    def test_box_behind_ray(self):
        ray = Ray(Point3(0, 0, 5), Vec3(0, 0, 1))
        assert unit_box().intersect(ray) is None

    def test_clipped_by_t_max(self):
        ray = Ray(Point3(0, 0, 5), Vec3(0, 0, -1))
        assert unit_box().intersect(ray, 0.0, 3.0) is None

    def test_diagonal_ray(self):
        ray = Ray(Point3(-3, -3, 0), Vec3(1, 1, 0).normalize())
        t_entry, t_exit = unit_box().intersect(ray)
        assert abs(t_entry - 2 * math.sqrt(2)) < 1e-9
        assert abs(t_exit - 4 * math.sqrt(2)) < 1e-9
