"""Connected components of regions and lines."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from ..logging_utils import apply_debug_logging
from ..mesh.traversal import connected_components_of
from .config import get_reconstruction_config
from .model import ComponentLabels, LineIndex, ReconstructionConfig, RegionIndex, SceneData

logger = logging.getLogger(__name__)


def _region_neighbors(scene: SceneData, config: ReconstructionConfig) -> Dict[RegionIndex, List[RegionIndex]]:
    neighbors: Dict[RegionIndex, List[RegionIndex]] = defaultdict(list)
    for (r1, r2), ratio in scene.region_overlappings.items():
        if ratio >= config.min_region_overlap_ratio:
            neighbors[r1].append(r2)
            neighbors[r2].append(r1)
    return neighbors


def _line_neighbors(scene: SceneData, config: ReconstructionConfig) -> Dict[LineIndex, List[LineIndex]]:
    neighbors: Dict[LineIndex, List[LineIndex]] = defaultdict(list)
    for rel in scene.line_relations:
        if rel.junction_weight >= config.min_junction_weight:
            neighbors[rel.line1].append(rel.line2)
            neighbors[rel.line2].append(rel.line1)
    for l1, l2 in scene.inter_view_line_incidences:
        neighbors[l1].append(l2)
        neighbors[l2].append(l1)
    return neighbors


def compute_connected_components(
    scene: SceneData,
    config: Optional[ReconstructionConfig] = None,
) -> ComponentLabels:
    """Label regions connected by sufficient overlap and lines connected by constraints.

    Component ids are dense and assigned in sorted ``(view id, handle)`` order
    of the first member reached.
    """

    cfg = config or get_reconstruction_config()
    scene.validate()

    region_ids: Dict[RegionIndex, int] = {}
    region_neighbors = _region_neighbors(scene, cfg)
    region_count = connected_components_of(
        scene.region_indices(),
        lambda ri: region_neighbors.get(ri, ()),
        lambda ri, cid: region_ids.__setitem__(ri, cid),
    )

    line_ids: Dict[LineIndex, int] = {}
    line_neighbors = _line_neighbors(scene, cfg)
    line_count = connected_components_of(
        scene.line_indices(),
        lambda li: line_neighbors.get(li, ()),
        lambda li, cid: line_ids.__setitem__(li, cid),
    )

    logger.info(
        "Found %d region components over %d regions and %d line components over %d lines",
        region_count,
        len(region_ids),
        line_count,
        len(line_ids),
    )
    return ComponentLabels(region_count, region_ids, line_count, line_ids)


apply_debug_logging(globals(), logger=logger)
