"""
Materials for the ray tracer.

Implements:
- Flat (constant color, no lighting)
- Phong (ambient + diffuse + specular with shadows)
- Checkerboard (procedural, delegates to two sub-materials)
- Mirror and Transmissive (Phong presets driving recursive rays)

A material only computes the local color at a hit. Reflection and
refraction rays are spawned by the scene from `k_reflection` and
`k_transmission`.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
import math

from .vec3 import Color
from .ray import Ray
from .shapes import HitRecord
from .lights import phong_illumination

if TYPE_CHECKING:
    from .scene import Scene


class Material(ABC):
    """Abstract base class for materials."""

    k_reflection: float = 0.0
    k_transmission: float = 0.0
    ior: float = 1.0

    @abstractmethod
    def shade(self, ray: Ray, hit: HitRecord, scene: 'Scene') -> Color:
        """Compute the local color at a hit.

        Args:
            ray: The incoming ray
            hit: The intersection being shaded
            scene: Scene providing lights, ambient light and shadow queries

        Returns:
            Color with components in [0, 1]
        """

    def resolve(self, hit: HitRecord) -> 'Material':
        """Return the concrete material in effect at the hit point."""
        return self


class Flat(Material):
    """A constant color that ignores lights."""

    def __init__(self, color: Color):
        self.color = color

    def shade(self, ray: Ray, hit: HitRecord, scene: 'Scene') -> Color:
        return self.color.clamp(0.0, 1.0)

    def __repr__(self) -> str:
        return f"Flat({self.color})"


class Phong(Material):
    """Phong illumination: ambient + diffuse + specular per light.

    Reflection and transmission coefficients are carried here and used
    by the scene's recursive ray spawn.
    """

    def __init__(
        self,
        diffuse_color: Color,
        specular_color: Color = None,
        k_diffuse: float = 0.8,
        k_specular: float = 0.2,
        specular_exponent: float = 20.0,
        k_reflection: float = 0.0,
        k_transmission: float = 0.0,
        ior: float = 1.5
    ):
        """Create a Phong material.

        Args:
            diffuse_color: Diffuse albedo (Od)
            specular_color: Specular albedo (Os), white by default
            k_diffuse: Diffuse coefficient (kd)
            k_specular: Specular coefficient (ks)
            specular_exponent: Highlight sharpness (ke)
            k_reflection: Weight of the mirrored ray
            k_transmission: Weight of the refracted ray, also the fraction of
                light passing through when this material casts a shadow
            ior: Index of refraction of the medium behind the surface
        """
        self.diffuse_color = diffuse_color
        self.specular_color = specular_color if specular_color is not None else Color(1, 1, 1)
        self.k_diffuse = k_diffuse
        self.k_specular = k_specular
        self.specular_exponent = specular_exponent
        self.k_reflection = k_reflection
        self.k_transmission = k_transmission
        self.ior = ior

    def shade(self, ray: Ray, hit: HitRecord, scene: 'Scene') -> Color:
        return phong_illumination(self, ray, hit, scene)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(diffuse={self.diffuse_color}, "
                f"kd={self.k_diffuse}, ks={self.k_specular}, "
                f"kr={self.k_reflection}, kt={self.k_transmission})")


class Mirror(Phong):
    """A near-perfect mirror; its color comes almost entirely from reflection."""

    def __init__(self, color: Color = None, k_reflection: float = 1.0):
        color = color if color is not None else Color(1, 1, 1)
        super().__init__(
            diffuse_color=color,
            specular_color=color,
            k_diffuse=0.001,
            k_specular=0.001,
            specular_exponent=0.01,
            k_reflection=k_reflection
        )


class Transmissive(Phong):
    """A glass-like material that mostly transmits light."""

    def __init__(self, color: Color = None, k_transmission: float = 0.9, ior: float = 1.5):
        color = color if color is not None else Color(1, 1, 1)
        super().__init__(
            diffuse_color=color,
            specular_color=Color(1, 1, 1),
            k_diffuse=0.001,
            k_specular=0.001,
            specular_exponent=20.0,
            k_transmission=k_transmission,
            ior=ior
        )


class Checkerboard(Material):
    """Alternates between two materials in a grid over the surface parameters.

    The cell containing (u, v) is picked by the parity of
    floor(u / cell_size) + floor(v / cell_size): even cells use
    material_a, odd cells material_b.
    """

    def __init__(self, material_a: Material, material_b: Material, cell_size: float = 0.1):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.material_a = material_a
        self.material_b = material_b
        self.cell_size = cell_size

    def select(self, u: float, v: float) -> Material:
        """Pick the sub-material for a surface coordinate."""
        parity = math.floor(u / self.cell_size) + math.floor(v / self.cell_size)
        return self.material_a if parity % 2 == 0 else self.material_b

    def resolve(self, hit: HitRecord) -> Material:
        if hit.shape is not None:
            u, v = hit.shape.uv(hit.point)
        else:
            u, v = hit.u, hit.v
        return self.select(u, v).resolve(hit)

    def shade(self, ray: Ray, hit: HitRecord, scene: 'Scene') -> Color:
        return self.resolve(hit).shade(ray, hit, scene)

    def __repr__(self) -> str:
        return f"Checkerboard({self.material_a!r}, {self.material_b!r}, cell_size={self.cell_size})"


# Used for shapes assembled without a material
DEFAULT_MATERIAL = Phong(Color(0.5, 0.5, 0.5))
