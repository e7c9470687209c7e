import numpy as np
import pytest

from panolayout.errors import MeshContractError
from panolayout.mesh import (
    FaceHandle,
    HalfHandle,
    Mesh,
    VertHandle,
    assert_edges_are_stitched,
    make_proxy,
    make_quad_faced_cube,
    make_tetrahedron,
    transform,
)


def _triangle_mesh():
    mesh = Mesh()
    vs = [mesh.add_vertex(np.array(p, dtype=float)) for p in [(0, 0, 0), (1, 0, 0), (0, 1, 0)]]
    return mesh, vs


def test_handles_default_to_invalid():
    assert VertHandle().invalid()
    assert HalfHandle(3).valid()
    assert repr(FaceHandle()) == "FaceHandle()"
    assert repr(VertHandle(2)) == "VertHandle(2)"


def test_add_edge_merges_duplicates():
    mesh, (a, b, _) = _triangle_mesh()

    h1 = mesh.add_edge(a, b)
    h2 = mesh.add_edge(a, b)
    h3 = mesh.add_edge(b, a)

    assert h1 == h2
    assert h3 == mesh.opposite(h1)
    assert mesh.num_halfedges() == 2
    assert mesh.from_vertex(mesh.opposite(h1)) == mesh.to_vertex(h1)


def test_add_edge_without_merging_creates_parallel_edges():
    mesh, (a, b, _) = _triangle_mesh()

    mesh.add_edge(a, b)
    mesh.add_edge(a, b, merge_duplicate=False)

    assert mesh.num_halfedges() == 4


def test_add_edge_self_loop_is_invalid():
    mesh, (a, _, _) = _triangle_mesh()
    assert mesh.add_edge(a, a).invalid()
    assert mesh.num_halfedges() == 0


def test_add_face_rejects_open_cycle():
    mesh, (a, b, c) = _triangle_mesh()
    hab = mesh.add_edge(a, b)
    hac = mesh.add_edge(a, c)

    with pytest.raises(MeshContractError):
        mesh.add_face([hab, hac])
    # contract violations are assertion failures
    with pytest.raises(AssertionError):
        mesh.topo(VertHandle(10))


def test_add_face_from_vertices_autoflips_winding():
    mesh, (a, b, c) = _triangle_mesh()
    f1 = mesh.add_face_from_vertices([a, b, c])
    f2 = mesh.add_face_from_vertices([a, b, c])

    assert f1 != f2
    assert mesh.num_halfedges() == 6
    assert_edges_are_stitched(mesh)
    for hh in mesh.topo(f2).halfedges:
        assert mesh.face_of(mesh.opposite(hh)) == f1


def test_cube_counts_and_stitching():
    mesh = make_quad_faced_cube()

    assert mesh.num_vertices() == 8
    assert mesh.num_halfedges() == 24
    assert mesh.num_faces() == 6
    assert all(mesh.degree(fh) == 4 for fh in mesh.faces())
    assert all(mesh.degree(vh) == 3 for vh in mesh.vertices())
    assert_edges_are_stitched(mesh)


def test_find_edge_and_first_half():
    mesh = make_quad_faced_cube()
    hh = mesh.find_edge(VertHandle(0), VertHandle(1))
    assert hh.valid()
    assert mesh.find_edge(VertHandle(0), VertHandle(6)).invalid()
    first = mesh.first_half(hh)
    assert first == min(hh, mesh.opposite(hh))


def test_find_edge_from_invalid_vertex_raises():
    mesh, (a, b, _) = _triangle_mesh()
    mesh.add_edge(b, a)

    with pytest.raises(MeshContractError):
        mesh.find_edge(VertHandle(), a)
    with pytest.raises(MeshContractError):
        mesh.find_edge(VertHandle(7), a)


def test_removing_face_keeps_vertices_and_edges():
    mesh = make_quad_faced_cube()
    fh = FaceHandle(0)
    boundary = list(mesh.topo(fh).halfedges)

    mesh.remove(fh)

    assert mesh.removed(fh)
    assert mesh.num_faces() == 5
    assert mesh.num_vertices() == 8
    assert mesh.num_halfedges() == 24
    assert all(mesh.face_of(hh).invalid() for hh in boundary)


def test_removing_vertex_cascades_to_edges_and_faces():
    mesh = make_quad_faced_cube()

    mesh.remove(VertHandle(0))

    assert mesh.num_vertices() == 7
    assert mesh.num_halfedges() == 18
    assert mesh.num_faces() == 3
    # removing twice is a no-op
    mesh.remove(VertHandle(0))
    assert mesh.num_vertices() == 7


def test_gc_compacts_and_remaps_external_handles():
    mesh = make_quad_faced_cube()
    mesh.remove(VertHandle(0))
    refs = [VertHandle(0), VertHandle(5)]

    vmap, hmap, fmap = mesh.gc(vert_refs=refs)

    assert refs == [VertHandle(), VertHandle(4)]
    assert vmap[0].invalid()
    assert len(mesh.internal_vertices) == 7
    assert len(mesh.internal_halfedges) == 18
    assert len(mesh.internal_faces) == 3
    for rec in mesh.internal_halfedges:
        assert mesh.topo(rec.opposite).opposite == rec.hd
        assert rec.hd in mesh.topo(rec.from_v).halfedges
    for i, rec in enumerate(mesh.internal_vertices):
        assert rec.hd == i


def test_gc_is_idempotent():
    mesh = make_quad_faced_cube()
    mesh.remove(FaceHandle(2))
    mesh.gc()
    before = mesh.summary()

    vmap, hmap, fmap = mesh.gc()

    assert mesh.summary() == before
    assert list(vmap) == list(range(len(vmap)))
    assert list(hmap) == list(range(len(hmap)))
    assert list(fmap) == list(range(len(fmap)))


def test_unite_appends_a_copy():
    mesh = make_quad_faced_cube()
    other = make_tetrahedron()

    result = mesh.unite(other)

    assert result is mesh
    assert mesh.num_vertices() == 12
    assert mesh.num_halfedges() == 36
    assert mesh.num_faces() == 10
    assert_edges_are_stitched(mesh)
    # payloads are copied, not shared
    mesh.data(VertHandle(8))[0] = 42.0
    assert other.data(VertHandle(0))[0] == 0.0


def test_transform_and_proxy_keep_topology():
    mesh = make_tetrahedron()

    doubled = transform(mesh, lambda p: p * 2)
    proxy = make_proxy(mesh)

    assert np.allclose(doubled.data(VertHandle(1)), [0, 0, 2])
    assert doubled.num_faces() == mesh.num_faces()
    assert proxy.data(VertHandle(3)) == VertHandle(3)
    assert proxy.data(HalfHandle(5)) == HalfHandle(5)
    assert proxy.data(FaceHandle(2)) == FaceHandle(2)
    assert_edges_are_stitched(proxy)


def test_clear_and_copy():
    mesh = make_tetrahedron()
    duplicate = mesh.copy()
    mesh.clear()

    assert mesh.num_vertices() == 0
    assert duplicate.num_vertices() == 4
    assert "faces=4/4" in duplicate.summary()
