"""Reconstruction façade chaining labelling, line depths and the mixed-graph solve."""

from __future__ import annotations

import logging
from typing import Optional

from .config import get_reconstruction_config, set_reconstruction_config
from .connectivity import compute_connected_components
from .graph import (
    EdgeKind,
    LineCCVertexData,
    MixedGraph,
    MixedGraphEdge,
    MixedGraphVertex,
    RegionCCVertexData,
    SolverContext,
    build_mixed_graph,
    collect_determined_anchors,
    compute_determined_anchors_ratio,
)
from .line_depths import LinearSolve, estimate_spatial_line_depths, lsqr_solve
from .model import (
    Camera,
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
    TrialResult,
)
from .solver import estimate_spatial_region_planes, initialize_spatial_region_planes, score_assignment

logger = logging.getLogger(__name__)

if not logging.getLogger().handlers:  # pragma: no cover - depends on host application
    logging.basicConfig(level=logging.INFO)


def reconstruct_layout(
    scene: SceneData,
    options: Optional[ReconstructionOptions] = None,
    *,
    config: Optional[ReconstructionConfig] = None,
    constant_eta: float = 1.0,
    twice_estimation: bool = False,
    solve: Optional[LinearSolve] = None,
) -> ReconstructionResult:
    """Reconstruct spatial lines and region planes of ``scene``."""

    cfg = config or get_reconstruction_config()
    logger.info(
        "Reconstructing layout from %d regions and %d lines", len(scene.regions), len(scene.lines)
    )
    labels = compute_connected_components(scene, cfg)
    lines = estimate_spatial_line_depths(
        scene, labels, constant_eta=constant_eta, twice_estimation=twice_estimation, solve=solve, config=cfg
    )
    lines, planes, best, trials = estimate_spatial_region_planes(scene, labels, lines, options, cfg)
    return ReconstructionResult(
        labels,
        best.region_cc_planes,
        best.line_cc_depth_factors,
        lines,
        planes,
        best.score,
        trials,
    )


__all__ = [
    "Camera",
    "ComponentLabels",
    "EdgeKind",
    "LineCCVertexData",
    "LineIndex",
    "LineObservation",
    "LineRelation",
    "LinearSolve",
    "MixedGraph",
    "MixedGraphEdge",
    "MixedGraphVertex",
    "ReconstructionConfig",
    "ReconstructionOptions",
    "ReconstructionResult",
    "RegionBoundary",
    "RegionCCVertexData",
    "RegionIndex",
    "RegionObservation",
    "SceneData",
    "SolverContext",
    "TrialResult",
    "build_mixed_graph",
    "collect_determined_anchors",
    "compute_connected_components",
    "compute_determined_anchors_ratio",
    "estimate_spatial_line_depths",
    "estimate_spatial_region_planes",
    "get_reconstruction_config",
    "initialize_spatial_region_planes",
    "lsqr_solve",
    "reconstruct_layout",
    "score_assignment",
    "set_reconstruction_config",
]
