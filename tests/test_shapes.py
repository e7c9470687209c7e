import numpy as np
import pytest

from panolayout.mesh import (
    Mesh,
    assert_edges_are_stitched,
    make_cone,
    make_icosahedron,
    make_prism,
    make_quad_faced_cube,
    make_star_prism,
    make_tetrahedron,
    make_tri_faced_cube,
)


@pytest.mark.parametrize(
    "factory, vertices, faces",
    [
        (make_tetrahedron, 4, 4),
        (make_quad_faced_cube, 8, 6),
        (make_tri_faced_cube, 8, 12),
        (make_icosahedron, 12, 20),
        (lambda: make_prism(5, 2.0), 10, 7),
        (lambda: make_cone(6, 1.0), 7, 7),
        (lambda: make_star_prism(4, 0.5, 1.0, 1.0), 16, 10),
    ],
)
def test_closed_shapes_satisfy_euler(factory, vertices, faces):
    mesh = factory()

    edges = mesh.num_halfedges() // 2
    assert mesh.num_vertices() == vertices
    assert mesh.num_faces() == faces
    assert vertices - edges + faces == 2
    assert_edges_are_stitched(mesh)


def test_builder_reuses_given_mesh():
    mesh = make_tetrahedron()
    same = make_quad_faced_cube(mesh)

    assert same is mesh
    assert mesh.num_vertices() == 8


def test_icosahedron_vertices_lie_on_sphere():
    mesh = make_icosahedron(radius=2.0)
    radii = [np.linalg.norm(mesh.data(vh)) for vh in mesh.vertices()]
    assert np.allclose(radii, 2.0, atol=1e-6)


def test_prism_height():
    mesh = make_prism(4, 3.0, Mesh())
    zs = sorted({float(mesh.data(vh)[2]) for vh in mesh.vertices()})
    assert zs == [0.0, 3.0]
