import logging

import numpy as np
import pytest

from panolayout.mesh import (
    Mesh,
    make_quad_faced_cube,
    position_parallelism,
    search_and_add_faces,
    search_and_add_faces_from_positions,
)


def _wireframe(points, edges):
    mesh = Mesh()
    vs = [mesh.add_vertex(np.array(p, dtype=float)) for p in points]
    for i, j in edges:
        mesh.add_edge(vs[i], vs[j])
    return mesh


def _strip_faces(mesh):
    for fh in list(mesh.faces()):
        mesh.remove(fh)
    mesh.gc()
    return mesh


def _assert_valid_faces(mesh, faces):
    used = set()
    for fh in faces:
        halfedges = mesh.topo(fh).halfedges
        assert len(halfedges) >= 3
        for hh in halfedges:
            assert hh not in used
            used.add(hh)
            assert mesh.face_of(hh) == fh


def test_triangle_wireframe_gets_both_sides():
    mesh = _wireframe([(0, 0, 0), (1, 0, 0), (0, 1, 0)], [(0, 1), (1, 2), (2, 0)])

    faces = search_and_add_faces_from_positions(mesh)

    assert len(faces) == 2
    assert all(mesh.degree(fh) == 3 for fh in faces)
    assert all(mesh.face_of(hh).valid() for hh in mesh.halfedges())
    _assert_valid_faces(mesh, faces)


def test_square_wireframe_without_seed_still_closes(caplog):
    mesh = _wireframe([(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)], [(0, 1), (1, 2), (2, 3), (3, 0)])

    with caplog.at_level(logging.WARNING):
        faces = search_and_add_faces_from_positions(mesh)

    assert "No degree-3 vertex" in caplog.text
    assert len(faces) == 2
    assert all(mesh.degree(fh) == 4 for fh in faces)
    _assert_valid_faces(mesh, faces)


def test_cube_wireframe_faces_are_disjoint_cycles():
    mesh = _strip_faces(make_quad_faced_cube())
    assert mesh.num_faces() == 0

    faces = search_and_add_faces_from_positions(mesh)

    assert len(faces) == 6
    assert all(mesh.degree(fh) == 4 for fh in faces)
    assert all(mesh.face_of(hh).valid() for hh in mesh.halfedges())
    _assert_valid_faces(mesh, faces)


def test_step_cap_ends_the_search(caplog):
    mesh = _strip_faces(make_quad_faced_cube())

    with caplog.at_level(logging.WARNING):
        faces = search_and_add_faces(mesh, position_parallelism, max_steps=0)

    assert faces == []
    assert "stopped after 0 steps" in caplog.text


def test_mask_excluding_every_edge_finds_nothing():
    mesh = _wireframe([(0, 0, 0), (1, 0, 0), (0, 1, 0)], [(0, 1), (1, 2), (2, 0)])

    faces = search_and_add_faces(mesh, position_parallelism, mask=lambda m, hh: False)

    assert faces == []
    assert mesh.num_faces() == 0


def test_position_parallelism():
    mesh = _wireframe(
        [(0, 0, 0), (1, 0, 0), (0, 1, 0), (2, 0, 0), (2, 0, 0)],
        [(0, 1), (0, 2), (1, 3), (3, 4)],
    )
    h01 = mesh.find_edge(0, 1)
    h02 = mesh.find_edge(0, 2)
    h13 = mesh.find_edge(1, 3)
    h34 = mesh.find_edge(3, 4)

    assert position_parallelism(mesh, h01, h13) == pytest.approx(1.0)
    assert position_parallelism(mesh, h01, mesh.opposite(h13)) == pytest.approx(1.0)
    assert position_parallelism(mesh, h01, h02) == pytest.approx(0.0)
    assert position_parallelism(mesh, h01, h34) == 0.0
