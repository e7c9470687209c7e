import logging

import numpy as np
import pytest

from panolayout.errors import MeshContractError
from panolayout.mesh import (
    HalfHandle,
    Mesh,
    assert_edges_are_stitched,
    construct_internal_loop_from,
    decompose_all,
    decompose_on_internal_loop,
    find_upper_bound_of_drf,
    make_quad_faced_cube,
)


def _never_intersects(mesh, h1, h2):
    return False


def _double_box():
    """A 2x1x1 box made of two unit cubes glued along the ring at ``x = 1``."""

    mesh = Mesh()
    vs = {}
    for x in range(3):
        for y in range(2):
            for z in range(2):
                vs[x, y, z] = mesh.add_vertex(np.array([x, y, z], dtype=float))

    faces = [
        [(0, 0, 0), (0, 0, 1), (0, 1, 1), (0, 1, 0)],
        [(2, 0, 0), (2, 1, 0), (2, 1, 1), (2, 0, 1)],
    ]
    for x0, x1 in ((0, 1), (1, 2)):
        faces.append([(x0, 0, 0), (x1, 0, 0), (x1, 0, 1), (x0, 0, 1)])
        faces.append([(x0, 1, 0), (x0, 1, 1), (x1, 1, 1), (x1, 1, 0)])
        faces.append([(x0, 0, 0), (x0, 1, 0), (x1, 1, 0), (x1, 0, 0)])
        faces.append([(x0, 0, 1), (x1, 0, 1), (x1, 1, 1), (x0, 1, 1)])
    for face in faces:
        mesh.add_face_from_vertices([vs[p] for p in face])
    return mesh, vs


def test_double_box_is_stitched():
    mesh, _ = _double_box()
    assert mesh.num_vertices() == 12
    assert mesh.num_halfedges() == 40
    assert mesh.num_faces() == 10
    assert_edges_are_stitched(mesh)


def test_internal_loop_runs_around_the_middle_ring():
    mesh, vs = _double_box()
    initial = mesh.find_edge(vs[1, 0, 0], vs[1, 1, 0])

    loop = construct_internal_loop_from(mesh, initial, _never_intersects)

    assert len(loop) == 4
    assert loop[0] == initial
    ring = {vs[1, y, z] for y in range(2) for z in range(2)}
    assert {mesh.to_vertex(hh) for hh in loop} == ring


def test_no_internal_loop_on_a_cube():
    mesh = make_quad_faced_cube()
    for hh in mesh.halfedges():
        assert construct_internal_loop_from(mesh, hh, _never_intersects) == []


def test_decompose_on_internal_loop_splits_into_two_cubes():
    mesh, vs = _double_box()
    initial = mesh.find_edge(vs[1, 0, 0], vs[1, 1, 0])
    loop = construct_internal_loop_from(mesh, initial, _never_intersects)

    fh1, fh2 = decompose_on_internal_loop(mesh, loop, face_data="left", oppo_face_data="right")

    assert fh1.valid() and fh2.valid()
    assert mesh.num_vertices() == 16
    assert mesh.num_faces() == 12
    assert mesh.num_halfedges() == 48
    assert mesh.degree(fh1) == 4 and mesh.degree(fh2) == 4
    assert mesh.data(fh1) == "left"
    assert mesh.data(fh2) == "right"
    assert_edges_are_stitched(mesh)


def test_decompose_all_cuts_once():
    mesh, _ = _double_box()

    cuts = decompose_all(mesh, _never_intersects)

    assert len(cuts) == 1
    assert mesh.num_vertices() == 16
    assert mesh.num_faces() == 12
    assert_edges_are_stitched(mesh)


def test_decompose_requires_stitched_mesh():
    mesh = make_quad_faced_cube()
    mesh.remove(next(iter(mesh.faces())))

    with pytest.raises(MeshContractError):
        decompose_all(mesh, _never_intersects)


def test_empty_loop_yields_invalid_faces():
    mesh = make_quad_faced_cube()
    fh1, fh2 = decompose_on_internal_loop(mesh, [])
    assert fh1.invalid() and fh2.invalid()


def test_upper_bound_of_drf_on_cube():
    mesh = make_quad_faced_cube()
    faces = list(mesh.faces())

    assert find_upper_bound_of_drf(mesh, faces, lambda m, hhs: False) == 3
    assert find_upper_bound_of_drf(mesh, faces, lambda m, hhs: True) == 3 + len(faces) - 1
    assert find_upper_bound_of_drf(mesh, [], lambda m, hhs: True) == 0
    with pytest.raises(MeshContractError):
        find_upper_bound_of_drf(mesh, faces[:2], lambda m, hhs: False)


def test_internal_loop_search_gives_up_past_max_paths(caplog):
    mesh, vs = _double_box()
    initial = mesh.find_edge(vs[1, 0, 0], vs[1, 1, 0])

    with caplog.at_level(logging.WARNING):
        loop = construct_internal_loop_from(mesh, initial, _never_intersects, max_paths=1)

    assert loop == []
    assert "gave up" in caplog.text
