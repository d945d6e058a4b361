"""
OBJ file loader for importing 3D meshes.

Supports:
- Vertices (v)
- Texture coordinates (vt)
- Normals (vn)
- Faces (f): triangles, planar quads (as bounded planes), larger polygons
  fan-triangulated

Malformed lines and faces referencing missing vertices are logged and
skipped; the rest of the file still loads.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

from .vec3 import Vec3, Point3
from .shapes import Shape, Triangle, BoundedPlane, Mesh
from .materials import Material

logger = logging.getLogger(__name__)

# Quads whose fourth corner is further than this from the plane of the
# first three are split into triangles
PLANARITY_TOLERANCE = 1e-6


@dataclass
class OBJVertex:
    """A face corner: position index plus optional texcoord and normal indices."""
    position_idx: int
    texcoord_idx: Optional[int] = None
    normal_idx: Optional[int] = None


class OBJLoader:
    """Loader for Wavefront OBJ files."""

    def __init__(self):
        self.vertices: List[Point3] = []
        self.texcoords: List[Tuple[float, float]] = []
        self.normals: List[Vec3] = []
        self.skipped_lines = 0

    def load(
        self,
        filename: str,
        material: Material = None,
        scale: float = 1.0,
        center: bool = False,
        smooth_shading: bool = True
    ) -> Mesh:
        """Load an OBJ file into a mesh.

        Args:
            filename: Path to the OBJ file
            material: Material assigned to every face
            scale: Scale factor applied to vertex positions
            center: If True, move the mesh so its bounds are centered at the origin
            smooth_shading: If True, use per-vertex normals when the file has them

        Returns:
            Mesh of triangles and bounded planes

        Raises:
            FileNotFoundError: the file does not exist
        """
        path = Path(filename)
        if not path.exists():
            raise FileNotFoundError(f"OBJ file not found: {filename}")

        self.vertices = []
        self.texcoords = []
        self.normals = []
        self.skipped_lines = 0

        faces: List[Shape] = []

        with open(path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()

                # Skip empty lines and comments
                if not line or line.startswith('#'):
                    continue

                parts = line.split()
                cmd = parts[0]

                try:
                    if cmd == 'v':
                        x, y, z = float(parts[1]), float(parts[2]), float(parts[3])
                        self.vertices.append(Point3(x * scale, y * scale, z * scale))

                    elif cmd == 'vt':
                        u = float(parts[1])
                        v = float(parts[2]) if len(parts) > 2 else 0.0
                        self.texcoords.append((u, v))

                    elif cmd == 'vn':
                        nx, ny, nz = float(parts[1]), float(parts[2]), float(parts[3])
                        self.normals.append(Vec3(nx, ny, nz).normalize())

                    elif cmd == 'f':
                        face_verts = self._parse_face(parts[1:])
                        faces.extend(self._build_face(face_verts, material, smooth_shading))

                    # Groups, objects, smoothing groups and materials are ignored

                except (ValueError, IndexError) as e:
                    self.skipped_lines += 1
                    logger.warning("%s:%d: skipping malformed line %r (%s)", path.name, line_num, line, e)

        mesh = Mesh(faces, material)
        logger.info("Loaded %s: %d vertices, %d faces, %d lines skipped",
                    path.name, len(self.vertices), len(faces), self.skipped_lines)

        if center and len(mesh) > 0:
            mesh.translate(-mesh.bounding_box().center)

        return mesh

    def _resolve_index(self, token: str, count: int, kind: str) -> int:
        """Convert a 1-based (or negative, relative) OBJ index to 0-based."""
        idx = int(token)
        idx = count + idx if idx < 0 else idx - 1
        if idx < 0 or idx >= count:
            raise IndexError(f"{kind} index {token} out of range (have {count})")
        return idx

    def _parse_face(self, face_parts: List[str]) -> List[OBJVertex]:
        """Parse face vertex indices (handles v, v/vt, v/vt/vn, v//vn formats)."""
        vertices = []

        for part in face_parts:
            indices = part.split('/')

            pos_idx = self._resolve_index(indices[0], len(self.vertices), "vertex")

            tex_idx = None
            if len(indices) > 1 and indices[1]:
                tex_idx = self._resolve_index(indices[1], len(self.texcoords), "texcoord")

            norm_idx = None
            if len(indices) > 2 and indices[2]:
                norm_idx = self._resolve_index(indices[2], len(self.normals), "normal")

            vertices.append(OBJVertex(pos_idx, tex_idx, norm_idx))

        if len(vertices) < 3:
            raise ValueError(f"face needs at least 3 vertices, got {len(vertices)}")

        return vertices

    def _build_face(self, face_verts: List[OBJVertex], material: Material, smooth: bool) -> List[Shape]:
        """Turn one face into shapes: a plane for convex planar quads, triangles otherwise."""
        if len(face_verts) == 4 and self._is_planar(face_verts):
            reflex = self._reflex_corner(face_verts)
            if reflex is None:
                corners = [self.vertices[fv.position_idx] for fv in face_verts]
                return [BoundedPlane(corners, material)]
            # A concave quad fans correctly only from its reflex corner
            face_verts = face_verts[reflex:] + face_verts[:reflex]

        # Fan triangulation: v0, v1, v2 then v0, v2, v3 etc.
        triangles: List[Shape] = []
        v0 = face_verts[0]
        for i in range(1, len(face_verts) - 1):
            triangles.append(self._triangle((v0, face_verts[i], face_verts[i + 1]), material, smooth))
        return triangles

    def _triangle(self, corners: Tuple[OBJVertex, ...], material: Material, smooth: bool) -> Triangle:
        positions = [self.vertices[c.position_idx] for c in corners]

        normals = None
        if smooth and all(c.normal_idx is not None for c in corners):
            normals = [self.normals[c.normal_idx] for c in corners]

        uvs = None
        if all(c.texcoord_idx is not None for c in corners):
            uvs = [self.texcoords[c.texcoord_idx] for c in corners]

        return Triangle(positions[0], positions[1], positions[2], material, normals, uvs)

    def _is_planar(self, face_verts: List[OBJVertex]) -> bool:
        p = [self.vertices[fv.position_idx] for fv in face_verts]
        normal = (p[1] - p[0]).cross(p[2] - p[0])
        if normal.near_zero():
            return False
        return abs((p[3] - p[0]).dot(normal.normalize())) < PLANARITY_TOLERANCE

    def _reflex_corner(self, face_verts: List[OBJVertex]) -> Optional[int]:
        """Index of the corner of a planar quad that turns against the others.

        Returns None for convex quads. A self-intersecting quad has no single
        odd corner and is fanned from its first vertex.
        """
        p = [self.vertices[fv.position_idx] for fv in face_verts]
        normal = (p[1] - p[0]).cross(p[2] - p[0])
        tolerance = PLANARITY_TOLERANCE * normal.length_squared()
        turns = [(p[i] - p[i - 1]).cross(p[(i + 1) % 4] - p[i]).dot(normal) for i in range(4)]

        positive = [i for i, turn in enumerate(turns) if turn > tolerance]
        negative = [i for i, turn in enumerate(turns) if turn < -tolerance]
        if not positive or not negative:
            return None
        if len(negative) == 1:
            return negative[0]
        if len(positive) == 1:
            return positive[0]
        return 0


def load_obj(
    filename: str,
    material: Material = None,
    scale: float = 1.0,
    center: bool = False,
    smooth_shading: bool = True
) -> Mesh:
    """Convenience function to load an OBJ file.

    Args:
        filename: Path to the OBJ file
        material: Material to apply to every face
        scale: Scale factor for the mesh
        center: Center the mesh at origin
        smooth_shading: Use interpolated normals for smooth shading

    Returns:
        Mesh containing the faces
    """
    loader = OBJLoader()
    return loader.load(filename, material, scale, center, smooth_shading)


def get_mesh_stats(mesh: Mesh) -> Dict[str, Any]:
    """Get statistics about a loaded mesh.

    Returns:
        Dictionary with mesh statistics
    """
    bbox = mesh.bounding_box()
    min_pt, max_pt = (bbox.minimum, bbox.maximum) if bbox else (Point3(0, 0, 0), Point3(0, 0, 0))
    size = max_pt - min_pt
    primitives = list(mesh.flatten())

    return {
        'triangle_count': sum(1 for s in primitives if isinstance(s, Triangle)),
        'plane_count': sum(1 for s in primitives if isinstance(s, BoundedPlane)),
        'bounds_min': (min_pt.x, min_pt.y, min_pt.z),
        'bounds_max': (max_pt.x, max_pt.y, max_pt.z),
        'size': (size.x, size.y, size.z),
    }
