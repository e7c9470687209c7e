from panolayout.mesh import (
    Mesh,
    VertHandle,
    connected_components,
    connected_components_of,
    depth_first_search,
    make_quad_faced_cube,
    make_tetrahedron,
    remove_dangling_components,
)


def test_connected_components_partition_vertices():
    mesh = make_tetrahedron().unite(make_tetrahedron())
    labels = {}

    count = connected_components(mesh, lambda m, vh, cid: labels.__setitem__(vh, cid))

    assert count == 2
    assert sorted(labels) == list(range(8))
    assert {labels[VertHandle(i)] for i in range(4)} == {0}
    assert {labels[VertHandle(i)] for i in range(4, 8)} == {1}


def test_connected_components_skip_removed_vertices():
    mesh = make_tetrahedron().unite(make_tetrahedron())
    for i in range(4):
        mesh.remove(VertHandle(i))
    labels = {}

    count = connected_components(mesh, lambda m, vh, cid: labels.__setitem__(vh, cid))

    assert count == 1
    assert sorted(labels) == [4, 5, 6, 7]


def test_depth_first_search_visits_each_vertex_once():
    mesh = make_quad_faced_cube()
    visited = []

    completed = depth_first_search(mesh, lambda m, vh: visited.append(vh) is None)

    assert completed
    assert visited[0] == 0
    assert sorted(visited) == list(range(8))


def test_depth_first_search_stops_early():
    mesh = make_quad_faced_cube()
    visited = []

    def callback(m, vh):
        visited.append(vh)
        return len(visited) < 3

    assert not depth_first_search(mesh, callback)
    assert len(visited) == 3


def test_generic_components_ignore_foreign_neighbours():
    graph = {1: [2, 99], 2: [1], 3: [4], 4: [3], 5: []}
    labels = {}

    count = connected_components_of([1, 2, 3, 4, 5], lambda x: graph[x], lambda x, cid: labels.__setitem__(x, cid))

    assert count == 3
    assert labels == {1: 0, 2: 0, 3: 1, 4: 1, 5: 2}


def test_remove_dangling_components_reaches_fixed_point():
    mesh = Mesh()
    a, b, c, tail = (mesh.add_vertex() for _ in range(4))
    mesh.add_edge(a, b)
    mesh.add_edge(b, c)
    mesh.add_edge(c, a)
    mesh.add_edge(c, tail)

    assert remove_dangling_components(mesh) == 1
    assert mesh.removed(tail)
    assert mesh.num_vertices() == 3

    chain = Mesh()
    x, y, z = (chain.add_vertex() for _ in range(3))
    chain.add_edge(x, y)
    chain.add_edge(y, z)

    assert remove_dangling_components(chain) == 3
    assert chain.num_vertices() == 0
