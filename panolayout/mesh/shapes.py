"""Builders for small closed polyhedra with ``numpy`` vertex positions."""

from __future__ import annotations

import math
from typing import List, Optional

import numpy as np

from .core import Mesh
from .handles import VertHandle


def _point(x: float, y: float, z: float) -> np.ndarray:
    return np.array([x, y, z], dtype=float)


def _fresh(mesh: Optional[Mesh]) -> Mesh:
    if mesh is None:
        return Mesh()
    mesh.clear()
    return mesh


def make_tetrahedron(mesh: Optional[Mesh] = None) -> Mesh:
    mesh = _fresh(mesh)
    v1 = mesh.add_vertex(_point(0, 0, 0))
    v2 = mesh.add_vertex(_point(0, 0, 1))
    v3 = mesh.add_vertex(_point(0, 1, 0))
    v4 = mesh.add_vertex(_point(1, 0, 0))

    mesh.add_face_from_vertices([v1, v2, v3])
    mesh.add_face_from_vertices([v1, v4, v2])
    mesh.add_face_from_vertices([v1, v3, v4])
    mesh.add_face_from_vertices([v2, v4, v3])
    return mesh


def _cube_vertices(mesh: Mesh) -> List[VertHandle]:
    #       4 ----- 5
    #      /       /|
    #     0 ----- 1 |
    #     |       | |
    #     | 7     | 6  -- x
    #     |       |/
    #     3 ----- 2
    #    /
    #   y
    coords = [
        (0, 1, 1), (1, 1, 1), (1, 1, 0), (0, 1, 0),
        (0, 0, 1), (1, 0, 1), (1, 0, 0), (0, 0, 0),
    ]
    return [mesh.add_vertex(_point(*c)) for c in coords]


_CUBE_QUADS = (
    (0, 1, 2, 3),
    (1, 5, 6, 2),
    (5, 4, 7, 6),
    (4, 0, 3, 7),
    (4, 5, 1, 0),
    (3, 2, 6, 7),
)


def make_quad_faced_cube(mesh: Optional[Mesh] = None) -> Mesh:
    """Unit cube with 8 vertices, 12 edges and 6 quad faces."""

    mesh = _fresh(mesh)
    vs = _cube_vertices(mesh)
    for quad in _CUBE_QUADS:
        mesh.add_face_from_vertices([vs[i] for i in quad])
    return mesh


def make_tri_faced_cube(mesh: Optional[Mesh] = None) -> Mesh:
    """Unit cube with every quad split into two triangles along its first diagonal."""

    mesh = _fresh(mesh)
    vs = _cube_vertices(mesh)
    for a, b, c, d in _CUBE_QUADS:
        mesh.add_face_from_vertices([vs[a], vs[b], vs[c]])
        mesh.add_face_from_vertices([vs[a], vs[c], vs[d]])
    return mesh


_ICOSAHEDRON_FACES = (
    (0, 1, 2), (0, 2, 3), (0, 3, 4), (0, 4, 5), (0, 5, 1),
    (1, 2, 6), (2, 3, 7), (3, 4, 8), (4, 5, 9), (5, 1, 10),
    (6, 7, 2), (7, 8, 3), (8, 9, 4), (9, 10, 5), (10, 6, 1),
    (11, 6, 7), (11, 7, 8), (11, 8, 9), (11, 9, 10), (11, 10, 6),
)


def make_icosahedron(mesh: Optional[Mesh] = None, radius: float = 1.0) -> Mesh:
    mesh = _fresh(mesh)
    phi = math.radians(26.56505)
    step = math.radians(72.0)

    coords = [_point(0.0, 0.0, radius)]
    for i in range(5):
        theta = step * i
        coords.append(_point(radius * math.cos(theta) * math.cos(phi), radius * math.sin(theta) * math.cos(phi), radius * math.sin(phi)))
    for i in range(5):
        theta = math.radians(36.0) + step * i
        coords.append(_point(radius * math.cos(theta) * math.cos(-phi), radius * math.sin(theta) * math.cos(-phi), radius * math.sin(-phi)))
    coords.append(_point(0.0, 0.0, -radius))

    vs = [mesh.add_vertex(c) for c in coords]
    for a, b, c in _ICOSAHEDRON_FACES:
        mesh.add_face_from_vertices([vs[a], vs[b], vs[c]])
    return mesh


def make_prism(nsides: int, height: float, mesh: Optional[Mesh] = None) -> Mesh:
    mesh = _fresh(mesh)
    step = 2.0 * math.pi / nsides
    bottom: List[VertHandle] = []
    top: List[VertHandle] = []
    for i in range(nsides):
        x, y = math.cos(step * i), math.sin(step * i)
        bottom.append(mesh.add_vertex(_point(x, y, 0.0)))
        top.append(mesh.add_vertex(_point(x, y, height)))
    for i in range(nsides):
        j = (i + 1) % nsides
        mesh.add_face_from_vertices([bottom[i], bottom[j], top[j], top[i]])
    mesh.add_face_from_vertices(bottom)
    mesh.add_face_from_vertices(top)
    return mesh


def make_cone(nsides: int, height: float, mesh: Optional[Mesh] = None) -> Mesh:
    mesh = _fresh(mesh)
    step = 2.0 * math.pi / nsides
    apex = mesh.add_vertex(_point(0.0, 0.0, height))
    rim = [mesh.add_vertex(_point(math.cos(step * i), math.sin(step * i), 0.0)) for i in range(nsides)]
    for i in range(nsides):
        mesh.add_face_from_vertices([rim[i], rim[(i + 1) % nsides], apex])
    mesh.add_face_from_vertices(rim)
    return mesh


def make_star_prism(
    nsides: int,
    inner_radius: float,
    outer_radius: float,
    height: float,
    mesh: Optional[Mesh] = None,
) -> Mesh:
    """Prism over a star polygon alternating between ``inner_radius`` and ``outer_radius``."""

    mesh = _fresh(mesh)
    count = nsides * 2
    step = math.pi / nsides
    bottom: List[VertHandle] = []
    top: List[VertHandle] = []
    for i in range(count):
        r = inner_radius if i % 2 == 0 else outer_radius
        x, y = math.cos(step * i) * r, math.sin(step * i) * r
        bottom.append(mesh.add_vertex(_point(x, y, 0.0)))
        top.append(mesh.add_vertex(_point(x, y, height)))
    for i in range(count):
        j = (i + 1) % count
        mesh.add_face_from_vertices([bottom[i], bottom[j], top[j], top[i]])
    mesh.add_face_from_vertices(bottom)
    mesh.add_face_from_vertices(top)
    return mesh
