"""Tests for point lights, shadows and Phong illumination."""

import pytest

from kdtrace.vec3 import Vec3, Point3, Color
from kdtrace.ray import Ray
from kdtrace.shapes import Sphere, BoundedPlane
from kdtrace.materials import Phong, Flat
from kdtrace.lights import PointLight, shadow_factor, phong_illumination, SHADOW_OFFSET
from kdtrace.scene import Scene


def floor_scene(occluder=None, light_position=Point3(0, 4, 0)):
    """A lit floor under an optional occluder, with the floor hit at the origin."""
    floor_material = Phong(Color(1, 0, 0), k_diffuse=1.0, k_specular=1.0, specular_exponent=10.0)
    floor = BoundedPlane.from_center(Point3(0, 0, 0), Vec3(0, 1, 0), 10.0, 10.0, floor_material)
    shapes = [floor] if occluder is None else [floor, occluder]

    scene = Scene(shapes, [PointLight(light_position, Color(1, 1, 1), 1.0)],
                  ambient_light=Color(1, 1, 1), ambient_coefficient=0.1)
    scene.build_index()

    ray = Ray(Point3(0, 1, 1), Vec3(0, -1, -1).normalize())
    hit = floor.hit(ray, 0.0, float('inf'))
    return scene, floor_material, ray, hit


class TestPointLight:
    """Test PointLight sampling."""

    def test_inverse_square_falloff(self):
        light = PointLight(Point3(0, 2, 0), Color(1, 0.5, 0.25), strength=8.0)

        sample = light.sample(Point3(0, 0, 0))

        assert sample.direction == Vec3(0, 1, 0)
        assert abs(sample.distance - 2.0) < 1e-12
        assert sample.intensity == Color(2.0, 1.0, 0.5)

    def test_default_color_is_white(self):
        assert PointLight(Point3(0, 0, 0)).color == Color(1, 1, 1)

    def test_sample_at_light_position(self):
        light = PointLight(Point3(1, 1, 1))
        sample = light.sample(Point3(1, 1, 1))
        assert sample.distance == 0.0
        assert sample.intensity.near_zero()


class TestShadowFactor:
    """Test occlusion between a point and a light."""

    def test_unobstructed(self):
        scene, _, _, hit = floor_scene()
        origin = hit.point + hit.normal * SHADOW_OFFSET
        sample = scene.lights[0].sample(origin)
        assert shadow_factor(scene, origin, sample) == 1.0

    def test_opaque_occluder(self):
        scene, _, _, hit = floor_scene(Sphere(Point3(0, 2, 0), 0.5, Phong(Color(1, 1, 1))))
        origin = hit.point + hit.normal * SHADOW_OFFSET
        sample = scene.lights[0].sample(origin)
        assert shadow_factor(scene, origin, sample) == 0.0

    def test_transmissive_occluder(self):
        glass = Phong(Color(1, 1, 1), k_transmission=0.5)
        scene, _, _, hit = floor_scene(Sphere(Point3(0, 2, 0), 0.5, glass))
        origin = hit.point + hit.normal * SHADOW_OFFSET
        sample = scene.lights[0].sample(origin)
        assert shadow_factor(scene, origin, sample) == 0.5

    def test_occluder_beyond_light_is_ignored(self):
        scene, _, _, hit = floor_scene(Sphere(Point3(0, 6, 0), 0.5, Phong(Color(1, 1, 1))))
        origin = hit.point + hit.normal * SHADOW_OFFSET
        sample = scene.lights[0].sample(origin)
        assert shadow_factor(scene, origin, sample) == 1.0

    def test_transmission_is_clamped(self):
        odd = Phong(Color(1, 1, 1), k_transmission=1.7)
        scene, _, _, hit = floor_scene(Sphere(Point3(0, 2, 0), 0.5, odd))
        origin = hit.point + hit.normal * SHADOW_OFFSET
        sample = scene.lights[0].sample(origin)
        assert shadow_factor(scene, origin, sample) == 1.0


class TestPhongIllumination:
    """Test the Phong model at a floor point."""

    def test_ambient_only_without_lights(self):
        scene, material, ray, hit = floor_scene()
        scene.lights.clear()

        color = phong_illumination(material, ray, hit, scene)

        assert color == Color(0.1, 0.1, 0.1)

    def test_lit_point_is_brighter_than_ambient(self):
        scene, material, ray, hit = floor_scene()

        color = phong_illumination(material, ray, hit, scene)

        assert color.r > 0.1
        assert all(0.0 <= c <= 1.0 for c in color)

    def test_light_below_surface_contributes_nothing(self):
        scene, material, ray, hit = floor_scene(light_position=Point3(0, -4, 0))

        color = phong_illumination(material, ray, hit, scene)

        assert color == Color(0.1, 0.1, 0.1)

    def test_opaque_occluder_removes_light_exactly(self):
        blocker = Sphere(Point3(0, 2, 0), 0.5, Phong(Color(1, 1, 1)))
        scene, material, ray, hit = floor_scene(blocker)

        color = phong_illumination(material, ray, hit, scene)

        ambient = scene.ambient_light * scene.ambient_coefficient
        assert (color - ambient).near_zero(1e-12)

    def test_half_transparent_occluder_halves_light(self):
        _, material, ray, hit = floor_scene()
        lit_scene, _, _, _ = floor_scene()
        half_scene, _, _, _ = floor_scene(
            Sphere(Point3(0, 2, 0), 0.5, Phong(Color(1, 1, 1), k_transmission=0.5))
        )
        ambient = lit_scene.ambient_light * lit_scene.ambient_coefficient

        lit = phong_illumination(material, ray, hit, lit_scene) - ambient
        half = phong_illumination(material, ray, hit, half_scene) - ambient

        assert lit.r > 0.0
        assert (half - lit * 0.5).near_zero(1e-9)

    def test_flat_occluder_counts_as_opaque(self):
        blocker = Sphere(Point3(0, 2, 0), 0.5, Flat(Color(1, 1, 1)))
        scene, material, ray, hit = floor_scene(blocker)

        color = phong_illumination(material, ray, hit, scene)

        assert color == Color(0.1, 0.1, 0.1)

    def test_specular_peak_along_mirror_direction(self):
        material = Phong(Color(0, 0, 0), k_diffuse=0.0, k_specular=1.0, specular_exponent=50.0)
        floor = BoundedPlane.from_center(Point3(0, 0, 0), Vec3(0, 1, 0), 10.0, 10.0, material)
        scene = Scene([floor], [PointLight(Point3(-2, 2, 0), strength=1.0)],
                      ambient_light=Color(0, 0, 0))
        scene.build_index()

        mirror_ray = Ray(Point3(2, 2, 0), Vec3(-1, -1, 0).normalize())
        off_ray = Ray(Point3(0.5, 2, 0), Vec3(-0.5, -2, 0).normalize())
        on = phong_illumination(material, mirror_ray, floor.hit(mirror_ray, 0.0, float('inf')), scene)
        off = phong_illumination(material, off_ray, floor.hit(off_ray, 0.0, float('inf')), scene)

        assert on.r > off.r
