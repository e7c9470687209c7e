"""Mixed reconstruction graph over region and line connected components.

Vertices are either region components (solved for a plane) or line components
(solved for a depth factor). Edges carry anchors: ray directions while the
edge is undetermined, resolved 3D points once one endpoint has been decided.
"""

from __future__ import annotations

import copy
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar, Union

import numpy as np

from ..errors import ReconstructionError, require
from ..geometry import (
    Line3,
    Plane3,
    bounding_sphere_radius,
    gaussian,
    intersect_ray_with_plane,
    nearest_point_on_ray_to_line,
    normalize,
    propose_xy_directions,
    visual_area_of_directions,
)
from ..logging_utils import apply_debug_logging
from .config import get_reconstruction_config
from .model import ComponentLabels, LineIndex, ReconstructionConfig, RegionIndex, SceneData

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class EdgeKind(enum.Enum):
    REGION_REGION = "region-region"
    REGION_LINE = "region-line"


class ToleranceMap(Generic[K, V]):
    """Insertion-ordered map whose keys match when closer than ``tolerance``."""

    def __init__(self, tolerance: float) -> None:
        self.tolerance = tolerance
        self._items: List[Tuple[K, V]] = []

    def _find(self, key: K) -> int:
        probe = np.atleast_1d(np.asarray(key, dtype=float))
        for i, (existing, _) in enumerate(self._items):
            if float(np.linalg.norm(np.atleast_1d(np.asarray(existing, dtype=float)) - probe)) <= self.tolerance:
                return i
        return -1

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        i = self._find(key)
        return self._items[i][1] if i >= 0 else default

    def __setitem__(self, key: K, value: V) -> None:
        i = self._find(key)
        if i >= 0:
            self._items[i] = (self._items[i][0], value)
        else:
            self._items.append((key, value))

    def setdefault(self, key: K, factory: Callable[[], V]) -> V:
        i = self._find(key)
        if i >= 0:
            return self._items[i][1]
        value = factory()
        self._items.append((key, value))
        return value

    def items(self) -> List[Tuple[K, V]]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class PlaneCandidate:
    plane: Plane3
    inlier_anchors: List[int] = field(default_factory=list)
    inlier_convex_area: float = 0.0
    distance_votes: float = 0.0


@dataclass
class Choice:
    vertex_id: int
    candidate_id: int
    probability: float


@dataclass
class MixedGraphEdge:
    kind: EdgeKind
    vertices: Tuple[int, int]
    indices: Tuple[RegionIndex, Union[RegionIndex, LineIndex]]
    anchors: np.ndarray
    determined: bool = False

    def other(self, vertex_id: int) -> int:
        return self.vertices[1] if self.vertices[0] == vertex_id else self.vertices[0]


@dataclass
class SolverContext:
    """Read-only inputs shared by every vertex while solving."""

    scene: SceneData
    labels: ComponentLabels
    reconstructed_lines: Dict[LineIndex, Line3]
    config: ReconstructionConfig
    scale: float = 1.0

    @classmethod
    def create(
        cls,
        scene: SceneData,
        labels: ComponentLabels,
        reconstructed_lines: Dict[LineIndex, Line3],
        config: Optional[ReconstructionConfig] = None,
    ) -> "SolverContext":
        endpoints = []
        for line in reconstructed_lines.values():
            endpoints.extend((line.first, line.second))
        return cls(
            scene,
            labels,
            reconstructed_lines,
            config or get_reconstruction_config(),
            bounding_sphere_radius(endpoints),
        )

    @property
    def vanishing_points(self) -> np.ndarray:
        return self.scene.vanishing_points


@dataclass
class RegionCCVertexData:
    cc_id: int
    region_indices: List[RegionIndex]
    tangent_plane: Plane3
    x_axis: np.ndarray
    y_axis: np.ndarray
    contours: List[np.ndarray]
    visual_area: float
    convex_visual_area: float
    candidates: ToleranceMap = field(default_factory=lambda: ToleranceMap(0.05))

    def build_candidates(self, ctx: SolverContext, graph: "MixedGraph", vertex_id: int) -> None:
        cfg = ctx.config
        self.candidates = ToleranceMap(cfg.plane_root_tolerance)
        anchors = collect_determined_anchors(graph, vertex_id)
        if cfg.use_first_anchor_only:
            anchors = anchors[:1]
        threshold = ctx.scale / cfg.inlier_distance_divisor

        for anchor in anchors:
            for vp in ctx.vanishing_points:
                plane = Plane3(anchor, vp)
                root = plane.root()
                if float(np.linalg.norm(root)) <= ctx.scale / cfg.skewed_plane_root_factor:
                    continue
                if self._too_far(plane, ctx.scale * cfg.far_plane_factor):
                    continue

                inliers = []
                votes = 0.0
                for i, other in enumerate(anchors):
                    distance = plane.distance_to(other)
                    if distance <= threshold:
                        inliers.append(i)
                        votes += gaussian(distance, threshold)
                area = visual_area_of_directions(
                    self.tangent_plane, self.x_axis, self.y_axis, [anchors[i] for i in inliers], True
                )
                # a later anchor proposing a merged root replaces the earlier proposal
                self.candidates[root] = PlaneCandidate(plane, inliers, area, votes)

    def _too_far(self, plane: Plane3, limit: float) -> bool:
        for contour in self.contours:
            if len(contour) < 3:
                continue
            for direction in contour:
                p = intersect_ray_with_plane(direction, plane)
                if not np.all(np.isfinite(p)) or float(np.linalg.norm(p)) > limit:
                    return True
        return False

    def register_choices(self, ctx: SolverContext, graph: "MixedGraph", vertex_id: int) -> List[Choice]:
        cfg = ctx.config
        completeness = compute_determined_anchors_ratio(graph, vertex_id)
        choices = []
        for i, (_, candidate) in enumerate(self.candidates.items()):
            occupation = (
                candidate.inlier_convex_area / self.convex_visual_area if self.convex_visual_area > 0 else 0.0
            )
            mean_vote = candidate.distance_votes / len(candidate.inlier_anchors) if candidate.inlier_anchors else 0.0
            factor = 1.0 if occupation > cfg.inlier_occupation_threshold else cfg.low_occupation_penalty
            choices.append(Choice(vertex_id, i, completeness * factor * mean_vote + cfg.base_probability))
        choices.sort(key=lambda c: c.probability, reverse=True)
        return choices[: cfg.max_choices_per_vertex]

    def pick_choice(self, ctx: SolverContext, graph: "MixedGraph", vertex_id: int, candidate_id: int) -> Plane3:
        candidate = self.candidates.items()[candidate_id][1]
        plane = candidate.plane
        for edge in graph.incident_edges(vertex_id):
            edge.anchors = np.array([intersect_ray_with_plane(a, plane) for a in edge.anchors]).reshape(-1, 3)
            edge.determined = True
        return plane


@dataclass
class LineCCVertexData:
    cc_id: int
    line_indices: List[LineIndex]
    candidates: ToleranceMap = field(default_factory=lambda: ToleranceMap(1e-4))

    def build_candidates(self, ctx: SolverContext, graph: "MixedGraph", vertex_id: int) -> None:
        cfg = ctx.config
        self.candidates = ToleranceMap(cfg.depth_factor_tolerance)
        self.candidates[1.0] = cfg.baseline_depth_vote
        for edge in graph.incident_edges(vertex_id):
            if not edge.determined:
                continue
            require(edge.kind is EdgeKind.REGION_LINE, "line component %d has a %s edge", self.cc_id, edge.kind)
            line = ctx.reconstructed_lines[edge.indices[1]]
            for anchor in edge.anchors:
                on_ray = nearest_point_on_ray_to_line(line, anchor)
                with np.errstate(divide="ignore", invalid="ignore"):
                    factor = np.float64(np.linalg.norm(anchor)) / np.float64(np.linalg.norm(on_ray))
                if not np.isfinite(factor):
                    continue
                factor = float(factor)
                self.candidates[factor] = self.candidates.get(factor, 0.0) + 1.0

    def register_choices(self, ctx: SolverContext, graph: "MixedGraph", vertex_id: int) -> List[Choice]:
        cfg = ctx.config
        items = self.candidates.items()
        if not items:
            return []
        completeness = compute_determined_anchors_ratio(graph, vertex_id)
        total_lines = max(1, len(ctx.scene.lines))
        coverage = len(self.line_indices) / total_lines
        weight = cfg.line_completeness_weight
        max_vote = max(vote for _, vote in items)
        choices = []
        for i, (_, vote) in enumerate(items):
            prob = (completeness * weight + coverage * (1.0 - weight)) * vote / max_vote + cfg.base_probability
            choices.append(Choice(vertex_id, i, prob))
        choices.sort(key=lambda c: c.probability, reverse=True)
        return choices[: cfg.max_choices_per_vertex]

    def pick_choice(self, ctx: SolverContext, graph: "MixedGraph", vertex_id: int, candidate_id: int) -> float:
        factor = float(self.candidates.items()[candidate_id][0])
        for edge in graph.incident_edges(vertex_id):
            line = ctx.reconstructed_lines[edge.indices[1]]
            edge.anchors = np.array([nearest_point_on_ray_to_line(line, a) * factor for a in edge.anchors]).reshape(-1, 3)
            edge.determined = True
        return factor


VertexData = Union[RegionCCVertexData, LineCCVertexData]


@dataclass
class MixedGraphVertex:
    data: VertexData
    determined: bool = False

    def is_region(self) -> bool:
        return isinstance(self.data, RegionCCVertexData)

    def is_line(self) -> bool:
        return isinstance(self.data, LineCCVertexData)


class MixedGraph:
    """Vertices, edges and per-vertex incidence lists of the reconstruction graph."""

    def __init__(self) -> None:
        self.vertices: List[MixedGraphVertex] = []
        self.edges: List[MixedGraphEdge] = []
        self.incidence: List[List[int]] = []
        self.region_vertex_of_cc: Dict[int, int] = {}
        self.line_vertex_of_cc: Dict[int, int] = {}

    def add_vertex(self, vertex: MixedGraphVertex) -> int:
        vid = len(self.vertices)
        self.vertices.append(vertex)
        self.incidence.append([])
        if vertex.is_region():
            self.region_vertex_of_cc[vertex.data.cc_id] = vid
        else:
            self.line_vertex_of_cc[vertex.data.cc_id] = vid
        return vid

    def add_edge(self, edge: MixedGraphEdge) -> int:
        v1, v2 = edge.vertices
        require(v1 != v2, "mixed graph edge %s would be a self-loop", edge.indices)
        eid = len(self.edges)
        self.edges.append(edge)
        self.incidence[v1].append(eid)
        self.incidence[v2].append(eid)
        return eid

    def incident_edges(self, vertex_id: int) -> List[MixedGraphEdge]:
        return [self.edges[eid] for eid in self.incidence[vertex_id]]

    def copy(self) -> "MixedGraph":
        return copy.deepcopy(self)

    def summary(self) -> str:
        regions = sum(1 for v in self.vertices if v.is_region())
        determined = sum(1 for v in self.vertices if v.determined)
        return (
            f"MixedGraph(region_vertices={regions}, line_vertices={len(self.vertices) - regions}, "
            f"edges={len(self.edges)}, determined={determined})"
        )


def compute_determined_anchors_ratio(graph: MixedGraph, vertex_id: int) -> float:
    """Fraction of a vertex's incident anchors that are already resolved."""

    determined = 0
    total = 0
    for edge in graph.incident_edges(vertex_id):
        total += len(edge.anchors)
        if edge.determined:
            determined += len(edge.anchors)
    return determined / total if total else 0.0


def collect_determined_anchors(graph: MixedGraph, vertex_id: int) -> List[np.ndarray]:
    anchors: List[np.ndarray] = []
    for edge in graph.incident_edges(vertex_id):
        if edge.determined:
            anchors.extend(np.asarray(a, dtype=float) for a in edge.anchors)
    return anchors


def _region_vertex_data(scene: SceneData, cc_id: int, regions: List[RegionIndex]) -> RegionCCVertexData:
    center = np.zeros(3)
    for ri in regions:
        center += normalize(scene.regions[ri].center_direction)
    center = normalize(center)
    if not np.any(center):
        raise ReconstructionError(f"region component {cc_id} has no usable centre direction")
    tangent = Plane3(center, center)
    x_axis, y_axis = propose_xy_directions(center)
    contours = [scene.regions[ri].contour_directions for ri in regions]
    visual_area = sum(visual_area_of_directions(tangent, x_axis, y_axis, c, False) for c in contours)
    convex_visual_area = visual_area_of_directions(
        tangent, x_axis, y_axis, [d for c in contours for d in c], True
    )
    return RegionCCVertexData(
        cc_id, regions, tangent, x_axis, y_axis, contours, visual_area, convex_visual_area
    )


def build_mixed_graph(scene: SceneData, labels: ComponentLabels) -> MixedGraph:
    """One vertex per region and line component, one edge per boundary or region-line connection.

    Region-region edges precede region-line edges; a boundary inside a
    single region component is skipped.
    """

    graph = MixedGraph()
    for cc in range(labels.region_cc_count):
        graph.add_vertex(MixedGraphVertex(_region_vertex_data(scene, cc, labels.regions_in(cc))))
    for cc in range(labels.line_cc_count):
        graph.add_vertex(MixedGraphVertex(LineCCVertexData(cc, labels.lines_in(cc))))

    skipped = 0
    for boundary in scene.region_boundaries:
        v1 = graph.region_vertex_of_cc[labels.region_cc(boundary.region1)]
        v2 = graph.region_vertex_of_cc[labels.region_cc(boundary.region2)]
        if v1 == v2:
            skipped += 1
            continue
        graph.add_edge(
            MixedGraphEdge(
                EdgeKind.REGION_REGION,
                (v1, v2),
                (boundary.region1, boundary.region2),
                boundary.sampled_directions.copy(),
            )
        )
    for (ri, li), directions in scene.region_line_connections.items():
        v1 = graph.region_vertex_of_cc[labels.region_cc(ri)]
        v2 = graph.line_vertex_of_cc[labels.line_cc(li)]
        graph.add_edge(MixedGraphEdge(EdgeKind.REGION_LINE, (v1, v2), (ri, li), np.array(directions, dtype=float)))

    if skipped:
        logger.info("Skipped %d region boundaries inside a single component", skipped)
    logger.info("Built %s", graph.summary())
    return graph


apply_debug_logging(globals(), logger=logger)
