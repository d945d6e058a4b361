"""
Point lights and the Phong illumination model.

The model evaluated at a hit is

    L = ka * La + sum_i [ kd * max(S_i . N, 0) * Li * Od * att_i * shadow_i
                        + ks * max(R_i . V, 0)^ke * Li * Os * att_i * shadow_i ]

with att_i = strength_i / d_i^2. When something sits between the point and
light i, its contribution is reduced by 1 - clamp(kT of the nearest occluder),
so shadow_i is that occluder's clamped kT (zero for opaque shapes).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .vec3 import Vec3, Point3, Color
from .ray import Ray
from .shapes import HitRecord

if TYPE_CHECKING:
    from .materials import Phong
    from .scene import Scene

# Offset of shadow ray origins along the normal, avoids self-shadowing
SHADOW_OFFSET = 1e-3


@dataclass
class LightSample:
    """Result of sampling a light source."""
    direction: Vec3       # Unit direction from the shaded point to the light
    distance: float       # Distance to the light
    intensity: Color      # Light color scaled by strength / distance^2


class PointLight:
    """A point light source with inverse-square falloff.

    Point lights emit light equally in all directions from a single point.
    They produce hard shadows.
    """

    def __init__(self, position: Point3, color: Color = None, strength: float = 1.0):
        """Create a point light.

        Args:
            position: Position of the light
            color: Color of the light (white by default)
            strength: Brightness multiplier for the attenuation term
        """
        self.position = position
        self.color = color if color is not None else Color(1, 1, 1)
        self.strength = strength

    def sample(self, point: Point3) -> LightSample:
        direction = self.position - point
        distance = direction.length()
        direction = direction.normalize()

        if distance > 0.0:
            attenuation = self.strength / (distance * distance)
        else:
            attenuation = 0.0

        return LightSample(
            direction=direction,
            distance=distance,
            intensity=self.color * attenuation
        )

    def __repr__(self) -> str:
        return f"PointLight(position={self.position}, strength={self.strength})"


def shadow_factor(scene: 'Scene', origin: Point3, sample: LightSample) -> float:
    """Fraction of a light that reaches a point.

    Only the nearest occluder between the point and the light counts. An
    opaque occluder blocks everything; a transmissive one lets its
    k_transmission through.

    Args:
        scene: Scene whose index answers the occlusion query
        origin: Shadow ray origin (already offset from the surface)
        sample: Light sample taken from origin

    Returns:
        Value in [0, 1], 1.0 for an unobstructed light
    """
    shadow_ray = Ray(origin, sample.direction)
    blocker = scene.nearest_hit(shadow_ray, 0.0, sample.distance)
    if blocker is None:
        return 1.0

    material = scene.material_at(blocker)
    # The blocked share is 1 - kT, so what gets through is kT itself
    return min(max(material.k_transmission, 0.0), 1.0)


def phong_illumination(material: 'Phong', ray: Ray, hit: HitRecord, scene: 'Scene') -> Color:
    """Evaluate the Phong model for a material at a hit.

    Args:
        material: The Phong material being shaded
        ray: The incoming ray
        hit: The intersection (normal faces the incoming ray)
        scene: Lights, ambient parameters and occlusion queries

    Returns:
        The local color, clamped to [0, 1]
    """
    normal = hit.normal
    view = -ray.direction.normalize()
    origin = hit.point + normal * SHADOW_OFFSET

    diffuse = Color(0, 0, 0)
    specular = Color(0, 0, 0)

    for light in scene.lights:
        sample = light.sample(origin)

        s_dot_n = sample.direction.dot(normal)
        # Light behind the surface contributes nothing
        if s_dot_n <= 0.0:
            continue

        shadow = shadow_factor(scene, origin, sample)
        if shadow <= 0.0:
            continue

        # Mirror of the light direction about the normal
        reflected = (-sample.direction).reflect(normal)
        r_dot_v = max(reflected.dot(view), 0.0)

        diffuse = diffuse + material.diffuse_color * sample.intensity * (s_dot_n * shadow)
        specular = specular + material.specular_color * sample.intensity * (
            (r_dot_v ** material.specular_exponent) * shadow
        )

    ambient = scene.ambient_light * scene.ambient_coefficient
    color = ambient + diffuse * material.k_diffuse + specular * material.k_specular
    return color.clamp(0.0, 1.0)
