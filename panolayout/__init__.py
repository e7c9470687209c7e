from .errors import MeshContractError, ReconstructionError
from .geometry import Line3, Plane3
from .mesh import (
    FaceHandle,
    HalfHandle,
    Mesh,
    SearchState,
    VertHandle,
    assert_edges_are_stitched,
    connected_components,
    connected_components_of,
    construct_internal_loop_from,
    decompose_all,
    decompose_on_internal_loop,
    depth_first_search,
    find_upper_bound_of_drf,
    make_cone,
    make_icosahedron,
    make_prism,
    make_proxy,
    make_quad_faced_cube,
    make_star_prism,
    make_tetrahedron,
    make_tri_faced_cube,
    remove_dangling_components,
    search_and_add_faces,
    search_and_add_faces_from_positions,
    transform,
)
from .recon import (
    ComponentLabels,
    LineIndex,
    LineObservation,
    LineRelation,
    ReconstructionConfig,
    ReconstructionOptions,
    ReconstructionResult,
    RegionBoundary,
    RegionIndex,
    RegionObservation,
    SceneData,
    compute_connected_components,
    estimate_spatial_line_depths,
    estimate_spatial_region_planes,
    get_reconstruction_config,
    reconstruct_layout,
    set_reconstruction_config,
)
from .recon.scenes import make_corner_scene

__all__ = [
    'MeshContractError',
    'ReconstructionError',
    'Line3',
    'Plane3',
    'FaceHandle',
    'HalfHandle',
    'Mesh',
    'SearchState',
    'VertHandle',
    'assert_edges_are_stitched',
    'connected_components',
    'connected_components_of',
    'construct_internal_loop_from',
    'decompose_all',
    'decompose_on_internal_loop',
    'depth_first_search',
    'find_upper_bound_of_drf',
    'make_cone',
    'make_icosahedron',
    'make_prism',
    'make_proxy',
    'make_quad_faced_cube',
    'make_star_prism',
    'make_tetrahedron',
    'make_tri_faced_cube',
    'remove_dangling_components',
    'search_and_add_faces',
    'search_and_add_faces_from_positions',
    'transform',
    'ComponentLabels',
    'LineIndex',
    'LineObservation',
    'LineRelation',
    'ReconstructionConfig',
    'ReconstructionOptions',
    'ReconstructionResult',
    'RegionBoundary',
    'RegionIndex',
    'RegionObservation',
    'SceneData',
    'compute_connected_components',
    'estimate_spatial_line_depths',
    'estimate_spatial_region_planes',
    'get_reconstruction_config',
    'reconstruct_layout',
    'set_reconstruction_config',
    'make_corner_scene',
]
