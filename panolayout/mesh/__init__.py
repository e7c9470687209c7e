"""Half-edge mesh data structure and topology algorithms."""

from __future__ import annotations

from .core import (
    FaceRecord,
    HalfEdgeRecord,
    Mesh,
    VertexRecord,
    assert_edges_are_stitched,
    make_proxy,
    transform,
)
from .decompose import (
    construct_internal_loop_from,
    decompose_all,
    decompose_on_internal_loop,
    find_upper_bound_of_drf,
)
from .faces import (
    SearchState,
    position_parallelism,
    search_and_add_faces,
    search_and_add_faces_from_positions,
)
from .handles import FaceHandle, HalfHandle, Handle, VertHandle
from .shapes import (
    make_cone,
    make_icosahedron,
    make_prism,
    make_quad_faced_cube,
    make_star_prism,
    make_tetrahedron,
    make_tri_faced_cube,
)
from .traversal import (
    connected_components,
    connected_components_of,
    depth_first_search,
    remove_dangling_components,
)

__all__ = [
    "FaceHandle",
    "FaceRecord",
    "HalfEdgeRecord",
    "HalfHandle",
    "Handle",
    "Mesh",
    "SearchState",
    "VertHandle",
    "VertexRecord",
    "assert_edges_are_stitched",
    "connected_components",
    "connected_components_of",
    "construct_internal_loop_from",
    "decompose_all",
    "decompose_on_internal_loop",
    "depth_first_search",
    "find_upper_bound_of_drf",
    "make_cone",
    "make_icosahedron",
    "make_prism",
    "make_proxy",
    "make_quad_faced_cube",
    "make_star_prism",
    "make_tetrahedron",
    "make_tri_faced_cube",
    "position_parallelism",
    "remove_dangling_components",
    "search_and_add_faces",
    "search_and_add_faces_from_positions",
    "transform",
]
