"""
Scene description language parser.

Reads YAML or JSON scene descriptions into a Scene with its index built,
plus the RenderSettings stored in the file.

Example scene file:
```yaml
scene:
  ambient_light: [0.2, 0.2, 0.25]
  ambient_coefficient: 0.1
  max_depth: 5

camera:
  look_from: [0, 1, 6]
  look_at: [0, 0, 0]
  vfov: 45

render:
  width: 400
  height: 300
  samples: 4
  tone_mapping: reinhard

materials:
  red:
    type: phong
    diffuse: [0.9, 0.1, 0.1]
    ks: 0.3
    ke: 30
  white:
    type: flat
    color: [1, 1, 1]
  floor:
    type: checkerboard
    a: red
    b: white
    cell_size: 0.5
  glass:
    type: transmissive
    ior: 1.5

objects:
  - type: plane
    center: [0, -1, 0]
    normal: [0, 1, 0]
    width: 10
    height: 10
    material: floor

  - type: sphere
    center: [0, 0, 0]
    radius: 1
    material: glass
    transform:
      - translate: [0, 0.5, 0]

  - type: mesh
    file: models/cube.obj
    material: red
    transform:
      - rotate: {axis: y, angle: 30}
      - scale: 0.5

lights:
  - position: [0, 5, 5]
    color: [1, 1, 1]
    strength: 20
```

Angles are given in degrees. Mesh paths are relative to the scene file.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple
import json
import logging
import math

import yaml

from .vec3 import Vec3, Point3, Color
from .camera import Camera
from .shapes import Shape, Sphere, Triangle, BoundedPlane
from .materials import Material, Flat, Phong, Mirror, Transmissive, Checkerboard
from .lights import PointLight
from .renderer import RenderSettings
from .scene import Scene
from .obj_loader import load_obj

logger = logging.getLogger(__name__)

AXIS_NAMES = {'x': 0, 'y': 1, 'z': 2}


class SceneParseError(Exception):
    """Error during scene parsing."""
    pass


class SceneParser:
    """Parser for scene description files."""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = base_dir if base_dir is not None else Path.cwd()
        self.materials: Dict[str, Material] = {}
        self._material_data: Dict[str, Any] = {}
        self._resolving: Set[str] = set()
        self.scene: Optional[Scene] = None
        self.settings: Optional[RenderSettings] = None

    def parse_file(self, filepath: str) -> Tuple[Scene, RenderSettings]:
        """Parse a scene file.

        Args:
            filepath: Path to the scene file (YAML or JSON)

        Returns:
            Tuple of (scene, settings); the scene index is built
        """
        path = Path(filepath)
        if not path.exists():
            raise SceneParseError(f"Scene file not found: {filepath}")

        self.base_dir = path.parent
        content = path.read_text()

        try:
            if path.suffix == '.json':
                data = json.loads(content)
            else:
                # YAML is a superset of JSON
                data = yaml.safe_load(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise SceneParseError(f"Cannot read {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise SceneParseError(f"Scene file {filepath} must contain a mapping at top level")

        logger.debug("Parsing scene file %s", path)
        return self.parse_dict(data)

    def parse_dict(self, data: Dict[str, Any]) -> Tuple[Scene, RenderSettings]:
        """Parse a scene from a dictionary.

        Args:
            data: Scene description dictionary

        Returns:
            Tuple of (scene, settings); the scene index is built
        """
        self.scene = self._parse_scene_params(data.get('scene', {}))

        # Materials first (objects reference them)
        materials = data.get('materials', {}) or {}
        if not isinstance(materials, dict):
            raise SceneParseError("materials must be a mapping of name to definition")
        self._material_data = dict(materials)
        for name in self._material_data:
            self._get_material(name)

        for obj_data in data.get('objects', []) or []:
            self.scene.add(self._parse_object(obj_data))

        for light_data in data.get('lights', []) or []:
            self.scene.add_light(self._parse_light(light_data))

        if 'render' in data:
            self.settings = self._parse_settings(data['render'])
        else:
            self.settings = RenderSettings()

        cameras = data.get('cameras')
        if cameras is None and 'camera' in data:
            cameras = [data['camera']]
        for camera_data in cameras or []:
            self.scene.add_camera(self._parse_camera(camera_data))
        if not self.scene.cameras:
            # Default camera
            self.scene.add_camera(Camera(
                look_from=Point3(0, 0, 5),
                look_at=Point3(0, 0, 0),
                vfov=60,
                aspect_ratio=self.settings.aspect_ratio
            ))

        self.scene.build_index()
        return self.scene, self.settings

    def _parse_vec3(self, data: Any) -> Vec3:
        """Parse a Vec3 from a list or an x/y/z mapping."""
        try:
            if isinstance(data, (list, tuple)):
                if len(data) != 3:
                    raise SceneParseError(f"Vec3 must have 3 components, got {len(data)}")
                return Vec3(float(data[0]), float(data[1]), float(data[2]))
            elif isinstance(data, dict):
                return Vec3(
                    float(data.get('x', 0)),
                    float(data.get('y', 0)),
                    float(data.get('z', 0))
                )
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Cannot parse Vec3 from {data!r}: {e}") from e
        raise SceneParseError(f"Cannot parse Vec3 from: {data!r}")

    def _parse_color(self, data: Any) -> Color:
        """Parse a Color from a list, an r/g/b mapping or a hex string."""
        if isinstance(data, str):
            hex_color = data[1:] if data.startswith('#') else data
            if len(hex_color) == 6:
                try:
                    r = int(hex_color[0:2], 16) / 255.0
                    g = int(hex_color[2:4], 16) / 255.0
                    b = int(hex_color[4:6], 16) / 255.0
                except ValueError:
                    raise SceneParseError(f"Cannot parse color from string: {data}") from None
                return Color(r, g, b)
            raise SceneParseError(f"Cannot parse color from string: {data}")
        if isinstance(data, dict):
            return self._parse_vec3({'x': data.get('r', 0), 'y': data.get('g', 0), 'z': data.get('b', 0)})
        return self._parse_vec3(data)

    def _parse_scene_params(self, data: Dict[str, Any]) -> Scene:
        """Parse the global scene section (ambient, recursion, index tuning)."""
        scene = Scene()
        if 'ambient_light' in data:
            scene.ambient_light = self._parse_color(data['ambient_light'])
        try:
            scene.ambient_coefficient = float(data.get('ambient_coefficient', scene.ambient_coefficient))
            scene.max_depth = int(data.get('max_depth', scene.max_depth))
            scene.leaf_size = int(data.get('leaf_size', scene.leaf_size))
            scene.index_depth = int(data.get('index_depth', scene.index_depth))
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Invalid scene parameters: {e}") from e
        return scene

    def _get_material(self, mat_ref: Any) -> Optional[Material]:
        """Get a material by name or inline definition."""
        if mat_ref is None:
            return None
        if isinstance(mat_ref, dict):
            return self._build_material(mat_ref, '<inline>')
        if not isinstance(mat_ref, str):
            raise SceneParseError(f"Invalid material reference: {mat_ref!r}")

        if mat_ref in self.materials:
            return self.materials[mat_ref]
        if mat_ref not in self._material_data:
            raise SceneParseError(f"Unknown material: {mat_ref}")
        if mat_ref in self._resolving:
            raise SceneParseError(f"Material {mat_ref} refers to itself")

        self._resolving.add(mat_ref)
        try:
            material = self._build_material(self._material_data[mat_ref], mat_ref)
        finally:
            self._resolving.discard(mat_ref)
        self.materials[mat_ref] = material
        return material

    def _build_material(self, mat_data: Dict[str, Any], name: str) -> Material:
        mat_type = str(mat_data.get('type', 'phong')).lower()

        try:
            if mat_type == 'flat':
                return Flat(self._parse_color(mat_data.get('color', [1, 1, 1])))

            elif mat_type == 'phong':
                specular = mat_data.get('specular')
                return Phong(
                    diffuse_color=self._parse_color(mat_data.get('diffuse', [0.5, 0.5, 0.5])),
                    specular_color=self._parse_color(specular) if specular is not None else None,
                    k_diffuse=float(mat_data.get('kd', 0.8)),
                    k_specular=float(mat_data.get('ks', 0.2)),
                    specular_exponent=float(mat_data.get('ke', 20.0)),
                    k_reflection=float(mat_data.get('kr', 0.0)),
                    k_transmission=float(mat_data.get('kt', 0.0)),
                    ior=float(mat_data.get('ior', 1.5))
                )

            elif mat_type == 'mirror':
                color = mat_data.get('color')
                return Mirror(
                    self._parse_color(color) if color is not None else None,
                    k_reflection=float(mat_data.get('kr', 1.0))
                )

            elif mat_type == 'transmissive':
                color = mat_data.get('color')
                return Transmissive(
                    self._parse_color(color) if color is not None else None,
                    k_transmission=float(mat_data.get('kt', 0.9)),
                    ior=float(mat_data.get('ior', 1.5))
                )

            elif mat_type == 'checkerboard':
                return Checkerboard(
                    self._get_material(mat_data['a']),
                    self._get_material(mat_data['b']),
                    float(mat_data.get('cell_size', 0.1))
                )

        except KeyError as e:
            raise SceneParseError(f"Material {name} is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Invalid material {name}: {e}") from e

        raise SceneParseError(f"Unknown material type: {mat_type}")

    def _parse_object(self, obj_data: Dict[str, Any]) -> Shape:
        """Parse one entry of the objects section, applying its transforms."""
        obj_type = str(obj_data.get('type', 'sphere')).lower()
        material = self._get_material(obj_data.get('material'))

        try:
            if obj_type == 'sphere':
                center = self._parse_vec3(obj_data.get('center', [0, 0, 0]))
                radius = float(obj_data.get('radius', 1.0))
                shape = Sphere(center, radius, material)

            elif obj_type == 'triangle':
                normals = obj_data.get('normals')
                shape = Triangle(
                    self._parse_vec3(obj_data['v0']),
                    self._parse_vec3(obj_data['v1']),
                    self._parse_vec3(obj_data['v2']),
                    material,
                    [self._parse_vec3(n) for n in normals] if normals else None
                )

            elif obj_type == 'plane':
                if 'corners' in obj_data:
                    corners = [self._parse_vec3(c) for c in obj_data['corners']]
                    shape = BoundedPlane(corners, material)
                else:
                    shape = BoundedPlane.from_center(
                        self._parse_vec3(obj_data.get('center', [0, 0, 0])),
                        self._parse_vec3(obj_data.get('normal', [0, 1, 0])),
                        float(obj_data.get('width', 1.0)),
                        float(obj_data.get('height', 1.0)),
                        material
                    )

            elif obj_type == 'mesh':
                path = self.base_dir / obj_data['file']
                shape = load_obj(
                    str(path),
                    material,
                    scale=float(obj_data.get('scale', 1.0)),
                    center=bool(obj_data.get('center', False)),
                    smooth_shading=bool(obj_data.get('smooth', True))
                )

            else:
                raise SceneParseError(f"Unknown object type: {obj_type}")

        except KeyError as e:
            raise SceneParseError(f"{obj_type} object is missing field {e}") from e
        except FileNotFoundError as e:
            raise SceneParseError(str(e)) from e
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Invalid {obj_type} object: {e}") from e

        for step in obj_data.get('transform', []) or []:
            self._apply_transform(shape, step)

        return shape

    def _parse_axis(self, data: Any):
        if isinstance(data, str):
            if data.lower() not in AXIS_NAMES:
                raise SceneParseError(f"Unknown axis: {data}")
            return AXIS_NAMES[data.lower()]
        if isinstance(data, int):
            if data not in (0, 1, 2):
                raise SceneParseError(f"Axis index must be 0, 1 or 2, got {data}")
            return data
        return self._parse_vec3(data)

    def _apply_transform(self, shape: Shape, step: Dict[str, Any]) -> None:
        """Apply one transform step: translate, rotate or scale."""
        if not isinstance(step, dict) or len(step) != 1:
            raise SceneParseError(f"Transform step must be a single-key mapping, got {step!r}")

        (kind, value), = step.items()
        if kind == 'translate':
            shape.translate(self._parse_vec3(value))
        elif kind == 'rotate':
            if not isinstance(value, dict) or 'angle' not in value:
                raise SceneParseError(f"rotate needs an axis and an angle, got {value!r}")
            axis = self._parse_axis(value.get('axis', 'y'))
            shape.rotate(axis, math.radians(float(value['angle'])))
        elif kind == 'scale':
            if isinstance(value, (int, float)):
                shape.scale(float(value))
            else:
                s = self._parse_vec3(value)
                shape.scale(s.x, s.y, s.z)
        else:
            raise SceneParseError(f"Unknown transform: {kind}")

    def _parse_light(self, light_data: Dict[str, Any]) -> PointLight:
        """Parse lights section."""
        light_type = str(light_data.get('type', 'point')).lower()
        if light_type != 'point':
            raise SceneParseError(f"Unknown light type: {light_type}")

        position = self._parse_vec3(light_data.get('position', [0, 5, 0]))
        color = self._parse_color(light_data.get('color', [1, 1, 1]))
        strength = float(light_data.get('strength', 1.0))
        return PointLight(position, color, strength)

    def _parse_camera(self, camera_data: Dict[str, Any]) -> Camera:
        """Parse one camera entry."""
        return Camera(
            look_from=self._parse_vec3(camera_data.get('look_from', [0, 0, 5])),
            look_at=self._parse_vec3(camera_data.get('look_at', [0, 0, 0])),
            vup=self._parse_vec3(camera_data.get('vup', [0, 1, 0])),
            vfov=float(camera_data.get('vfov', 60)),
            aspect_ratio=float(camera_data.get('aspect_ratio', self.settings.aspect_ratio))
        )

    def _parse_settings(self, settings_data: Dict[str, Any]) -> RenderSettings:
        """Parse render settings section."""
        try:
            return RenderSettings(
                width=int(settings_data.get('width', 400)),
                height=int(settings_data.get('height', 300)),
                samples_per_pixel=int(settings_data.get('samples', 1)),
                num_threads=int(settings_data.get('threads', 0)),
                seed=int(settings_data.get('seed', 0)),
                gamma=float(settings_data.get('gamma', 1.0)),
                tone_mapping=str(settings_data.get('tone_mapping', 'linear'))
            )
        except (TypeError, ValueError) as e:
            raise SceneParseError(f"Invalid render settings: {e}") from e


def load_scene(filepath: str) -> Tuple[Scene, RenderSettings]:
    """Convenience function to load a scene file.

    Args:
        filepath: Path to the scene file

    Returns:
        Tuple of (scene, settings)
    """
    parser = SceneParser()
    return parser.parse_file(filepath)


def parse_scene(data: Dict[str, Any], base_dir: Optional[str] = None) -> Tuple[Scene, RenderSettings]:
    """Convenience function to parse a scene from a dictionary.

    Args:
        data: Scene description dictionary
        base_dir: Directory mesh paths are relative to (defaults to cwd)

    Returns:
        Tuple of (scene, settings)
    """
    parser = SceneParser(Path(base_dir) if base_dir is not None else None)
    return parser.parse_dict(data)
