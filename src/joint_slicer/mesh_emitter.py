"""
Quad-quilt mesh synthesis for slice points.

Every accepted point becomes one plane-aligned square of side `resolution`
with its own four vertices. Neighbouring squares touch but share no
vertices. The quilt approximates the cross-section; outline() recovers its
boundary as a Shapely polygon in plane-local coordinates.
"""
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
import shapely
import trimesh
from shapely.geometry import MultiPolygon, Polygon, box
from shapely.ops import unary_union

from joint_slicer.geometry_kernel import Plane

# Corner signs along (x_axis, y_axis), in face winding order
QUAD_CORNERS: Tuple[Tuple[float, float], ...] = (
    (1.0, 1.0),
    (1.0, -1.0),
    (-1.0, -1.0),
    (-1.0, 1.0),
)


@dataclass
class SliceMesh:
    """Quad mesh for one (joint, layer) slice."""
    vertices: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    faces: np.ndarray = field(default_factory=lambda: np.zeros((0, 4), dtype=np.int64))

    @property
    def vertex_count(self) -> int:
        return int(len(self.vertices))

    @property
    def face_count(self) -> int:
        return int(len(self.faces))

    @property
    def is_empty(self) -> bool:
        return self.face_count == 0

    def to_trimesh(self) -> trimesh.Trimesh:
        """Triangulated copy for export; vertices are not merged."""
        triangles = trimesh.geometry.triangulate_quads(self.faces)
        return trimesh.Trimesh(vertices=self.vertices.copy(), faces=triangles, process=False)

    def outline(self, plane: Plane, simplify_tolerance: float = 0.0) -> shapely.Geometry:
        """Union of the quads projected to the plane's (u, v) frame."""
        if self.is_empty:
            return Polygon()
        squares: List[Polygon] = []
        for face in self.faces:
            uv = [plane.to_local(self.vertices[i]) for i in face]
            us = [p[0] for p in uv]
            vs = [p[1] for p in uv]
            # Snap so touching quads share exact edges in the union
            squares.append(box(*(round(c, 9) for c in (min(us), min(vs), max(us), max(vs)))))
        merged = unary_union(squares)
        if simplify_tolerance > 0:
            merged = merged.simplify(simplify_tolerance, preserve_topology=True)
        return merged


def emit_quads(
    mesh: SliceMesh,
    plane: Plane,
    points: np.ndarray,
    resolution: float,
) -> SliceMesh:
    """Append one disjoint quad per point to *mesh* and return it."""
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    if len(pts) == 0:
        return mesh

    half = resolution / 2.0
    offsets = np.array(
        [sx * half * plane.x_axis + sy * half * plane.y_axis for sx, sy in QUAD_CORNERS]
    )  # (4, 3)
    new_vertices = (pts[:, None, :] + offsets[None, :, :]).reshape(-1, 3)

    base = mesh.vertex_count
    new_faces = base + np.arange(len(pts) * 4, dtype=np.int64).reshape(-1, 4)

    mesh.vertices = np.vstack([mesh.vertices, new_vertices])
    mesh.faces = np.vstack([mesh.faces, new_faces])
    return mesh


def build_slice_mesh(plane: Plane, points: np.ndarray, resolution: float) -> SliceMesh:
    return emit_quads(SliceMesh(), plane, points, resolution)


def outline_to_coords(geometry: shapely.Geometry) -> List[List[Tuple[float, float]]]:
    """Exterior rings of a (multi)polygon as coordinate lists."""
    if geometry.is_empty:
        return []
    if isinstance(geometry, MultiPolygon):
        polygons = list(geometry.geoms)
    elif isinstance(geometry, Polygon):
        polygons = [geometry]
    else:
        return []
    return [[(float(x), float(y)) for x, y in p.exterior.coords[:-1]] for p in polygons]
