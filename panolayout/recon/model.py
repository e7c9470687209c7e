"""Core data structures for the layout reconstruction pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Protocol, Sequence, Tuple

import numpy as np

from ..errors import ReconstructionError
from ..geometry import Line3, Plane3


class RegionIndex(NamedTuple):
    view_id: int
    handle: int


class LineIndex(NamedTuple):
    view_id: int
    handle: int


class Camera(Protocol):
    """Projection collaborator mapping pixels to spatial directions and back."""

    def spatial_direction(self, pixel: Sequence[float]) -> np.ndarray:
        ...

    def screen_projection(self, direction: Sequence[float]) -> np.ndarray:
        ...


def _directions(values: Any) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return np.zeros((0, 3))
    return arr.reshape(-1, 3)


@dataclass
class RegionObservation:
    """Spatial directions of a segmented region's centre and outer contour."""

    center_direction: np.ndarray
    contour_directions: np.ndarray

    def __post_init__(self) -> None:
        self.center_direction = np.asarray(self.center_direction, dtype=float).reshape(3)
        self.contour_directions = _directions(self.contour_directions)

    @classmethod
    def from_camera(
        cls, camera: Camera, center: Sequence[float], contour: Sequence[Sequence[float]]
    ) -> "RegionObservation":
        return cls(
            camera.spatial_direction(center),
            [camera.spatial_direction(pixel) for pixel in contour],
        )


@dataclass
class LineObservation:
    """A detected line segment: directions of its endpoints and its vanishing point class."""

    first_direction: np.ndarray
    second_direction: np.ndarray
    vp_class: int

    def __post_init__(self) -> None:
        self.first_direction = np.asarray(self.first_direction, dtype=float).reshape(3)
        self.second_direction = np.asarray(self.second_direction, dtype=float).reshape(3)

    @classmethod
    def from_camera(
        cls, camera: Camera, first: Sequence[float], second: Sequence[float], vp_class: int
    ) -> "LineObservation":
        return cls(camera.spatial_direction(first), camera.spatial_direction(second), vp_class)


@dataclass
class LineRelation:
    """Intersection or incidence of two lines detected in the same view."""

    line1: LineIndex
    line2: LineIndex
    center_direction: np.ndarray
    junction_weight: float

    def __post_init__(self) -> None:
        self.center_direction = np.asarray(self.center_direction, dtype=float).reshape(3)


@dataclass
class RegionBoundary:
    """Shared border of two adjacent regions of one view, sampled as directions."""

    region1: RegionIndex
    region2: RegionIndex
    sampled_directions: np.ndarray

    def __post_init__(self) -> None:
        self.sampled_directions = _directions(self.sampled_directions)


@dataclass
class SceneData:
    """All precomputed observations of a panorama, keyed by ``(view id, handle)``."""

    vanishing_points: np.ndarray
    regions: Dict[RegionIndex, RegionObservation] = field(default_factory=dict)
    lines: Dict[LineIndex, LineObservation] = field(default_factory=dict)
    line_relations: List[LineRelation] = field(default_factory=list)
    region_boundaries: List[RegionBoundary] = field(default_factory=list)
    region_overlappings: Dict[Tuple[RegionIndex, RegionIndex], float] = field(default_factory=dict)
    region_line_connections: Dict[Tuple[RegionIndex, LineIndex], np.ndarray] = field(default_factory=dict)
    inter_view_line_incidences: Dict[Tuple[LineIndex, LineIndex], np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.vanishing_points = np.asarray(self.vanishing_points, dtype=float).reshape(3, 3)
        self.region_line_connections = {
            key: _directions(value) for key, value in self.region_line_connections.items()
        }
        self.inter_view_line_incidences = {
            key: np.asarray(value, dtype=float).reshape(3) for key, value in self.inter_view_line_incidences.items()
        }

    def region_indices(self) -> List[RegionIndex]:
        return sorted(self.regions)

    def line_indices(self) -> List[LineIndex]:
        return sorted(self.lines)

    def validate(self) -> None:
        """Raise :class:`ReconstructionError` when a table refers to an unknown region or line."""

        def check_region(ri: RegionIndex, where: str) -> None:
            if ri not in self.regions:
                raise ReconstructionError(f"{where} refers to unknown region {ri}")

        def check_line(li: LineIndex, where: str) -> None:
            if li not in self.lines:
                raise ReconstructionError(f"{where} refers to unknown line {li}")

        for li, line in self.lines.items():
            if not 0 <= line.vp_class < 3:
                raise ReconstructionError(f"line {li} has vanishing point class {line.vp_class}")
        for rel in self.line_relations:
            check_line(rel.line1, "line relation")
            check_line(rel.line2, "line relation")
            if rel.line1.view_id != rel.line2.view_id:
                raise ReconstructionError(f"line relation {rel.line1}-{rel.line2} spans two views")
        for boundary in self.region_boundaries:
            check_region(boundary.region1, "region boundary")
            check_region(boundary.region2, "region boundary")
        for r1, r2 in self.region_overlappings:
            check_region(r1, "region overlapping")
            check_region(r2, "region overlapping")
        for ri, li in self.region_line_connections:
            check_region(ri, "region-line connection")
            check_line(li, "region-line connection")
        for l1, l2 in self.inter_view_line_incidences:
            check_line(l1, "inter-view incidence")
            check_line(l2, "inter-view incidence")


@dataclass
class ComponentLabels:
    """Connected component ids of regions (by overlap) and lines (by constraints)."""

    region_cc_count: int
    region_cc_ids: Dict[RegionIndex, int]
    line_cc_count: int
    line_cc_ids: Dict[LineIndex, int]

    def regions_in(self, cc_id: int) -> List[RegionIndex]:
        return sorted(ri for ri, cid in self.region_cc_ids.items() if cid == cc_id)

    def lines_in(self, cc_id: int) -> List[LineIndex]:
        return sorted(li for li, cid in self.line_cc_ids.items() if cid == cc_id)

    def region_cc(self, ri: RegionIndex) -> int:
        try:
            return self.region_cc_ids[ri]
        except KeyError:
            raise ReconstructionError(f"region {ri} has no connected component label") from None

    def line_cc(self, li: LineIndex) -> int:
        try:
            return self.line_cc_ids[li]
        except KeyError:
            raise ReconstructionError(f"line {li} has no connected component label") from None


@dataclass
class ReconstructionConfig:
    """Thresholds and weights of the reconstruction stages."""

    min_region_overlap_ratio: float = 0.2
    min_junction_weight: float = 1e-5
    inter_view_junction_weight: float = 5.0
    skewed_plane_root_factor: float = 5.0
    far_plane_factor: float = 5.0
    inlier_distance_divisor: float = 12.0
    inlier_occupation_threshold: float = 0.4
    low_occupation_penalty: float = 1e-4
    plane_root_tolerance: float = 0.05
    depth_factor_tolerance: float = 1e-4
    baseline_depth_vote: float = 0.1
    base_probability: float = 1e-5
    max_choices_per_vertex: int = 1
    use_first_anchor_only: bool = True
    line_completeness_weight: float = 0.9


@dataclass
class ReconstructionOptions:
    trial_num: int = 1
    use_weighted_random_selection: bool = False
    random_seed: Optional[int] = None
    max_workers: Optional[int] = None
    max_rounds: Optional[int] = None
    # called as observer(trial, vertex_id, chosen_value) after every decision
    observer: Optional[Callable[[int, int, Any], None]] = None


@dataclass
class TrialResult:
    trial: int
    score: float
    region_cc_planes: List[Plane3]
    line_cc_depth_factors: List[float]
    rounds: int
    completed: bool


@dataclass
class ReconstructionResult:
    labels: ComponentLabels
    region_cc_planes: List[Plane3]
    line_cc_depth_factors: List[float]
    reconstructed_lines: Dict[LineIndex, Line3]
    reconstructed_planes: Dict[RegionIndex, Plane3]
    score: float
    trials: List[TrialResult] = field(default_factory=list)
