"""Spatial line depth estimation as a sparse linear least-squares problem."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from scipy import sparse
from scipy.sparse.csgraph import minimum_spanning_tree
from scipy.sparse.linalg import lsqr

from ..geometry import (
    Line3,
    closest_points_between_lines,
    depth_ratio_of_point_on_spatial_line,
    normalize,
)
from ..logging_utils import apply_debug_logging
from .config import get_reconstruction_config
from .model import ComponentLabels, LineIndex, ReconstructionConfig, SceneData

logger = logging.getLogger(__name__)

LinearSolve = Callable[[sparse.spmatrix, np.ndarray], np.ndarray]

# added to every spanning tree weight since the graph routines read zeros as missing edges
_MST_WEIGHT_OFFSET = 1e-9


@dataclass
class _Constraint:
    line1: LineIndex
    line2: LineIndex
    center_direction: np.ndarray
    weight: float


def lsqr_solve(a: sparse.spmatrix, b: np.ndarray) -> np.ndarray:
    """Default least-squares backend: ``scipy.sparse.linalg.lsqr``."""

    return lsqr(a, b, atol=1e-12, btol=1e-12)[0]


def _collect_constraints(scene: SceneData, config: ReconstructionConfig) -> List[_Constraint]:
    constraints = []
    for rel in scene.line_relations:
        weight = rel.junction_weight if rel.junction_weight >= config.min_junction_weight else 0.0
        constraints.append(_Constraint(rel.line1, rel.line2, rel.center_direction, weight))
    for (l1, l2), center in scene.inter_view_line_incidences.items():
        constraints.append(_Constraint(l1, l2, center, config.inter_view_junction_weight))
    return constraints


def _first_lines(labels: ComponentLabels) -> Dict[int, LineIndex]:
    first: Dict[int, LineIndex] = {}
    for li in sorted(labels.line_cc_ids):
        first.setdefault(labels.line_cc_ids[li], li)
    return first


def _solve_once(
    scene: SceneData,
    labels: ComponentLabels,
    constraints: List[_Constraint],
    constant_eta: float,
    use_weights: bool,
    solve: LinearSolve,
) -> Dict[LineIndex, Line3]:
    line_indices = scene.line_indices()
    column = {li: i for i, li in enumerate(line_indices)}
    pinned = set(_first_lines(labels).values())
    vps = scene.vanishing_points

    rows: List[int] = []
    cols: List[int] = []
    vals: List[float] = []
    rhs: List[float] = []
    weights: List[float] = []
    for row, cons in enumerate(constraints):
        obs1 = scene.lines[cons.line1]
        obs2 = scene.lines[cons.line2]
        ratio1 = depth_ratio_of_point_on_spatial_line(obs1.first_direction, cons.center_direction, vps[obs1.vp_class])
        ratio2 = depth_ratio_of_point_on_spatial_line(obs2.first_direction, cons.center_direction, vps[obs2.vp_class])
        if ratio1 == 0 or ratio2 == 0:
            logger.warning("Zero depth ratio in constraint between %s and %s", cons.line1, cons.line2)

        if cons.line1 not in pinned and cons.line2 not in pinned:
            rows.extend((row, row))
            cols.extend((column[cons.line1], column[cons.line2]))
            vals.extend((ratio1, -ratio2))
            rhs.append(0.0)
        elif cons.line1 in pinned:
            rows.append(row)
            cols.append(column[cons.line2])
            vals.append(ratio2)
            rhs.append(constant_eta * ratio1)
        else:
            rows.append(row)
            cols.append(column[cons.line1])
            vals.append(ratio1)
            rhs.append(constant_eta * ratio2)
        weights.append(cons.weight)

    n = len(line_indices)
    m = len(constraints)
    if m == 0 or n == 0:
        etas = np.zeros(n)
    else:
        a = sparse.csr_matrix((vals, (rows, cols)), shape=(m, n))
        b = np.asarray(rhs, dtype=float)
        if use_weights:
            w = np.asarray(weights, dtype=float)
            a = sparse.diags(w) @ a
            b = w * b
        etas = np.asarray(solve(a, b), dtype=float).reshape(n)

    lines: Dict[LineIndex, Line3] = {}
    for li in line_indices:
        obs = scene.lines[li]
        eta = constant_eta if li in pinned else float(etas[column[li]])
        first = normalize(obs.first_direction) * eta
        ratio = depth_ratio_of_point_on_spatial_line(first, obs.second_direction, vps[obs.vp_class])
        second = normalize(obs.second_direction) * eta * ratio
        lines[li] = Line3(first, second)
    return lines


def _constraint_distance(lines: Dict[LineIndex, Line3], cons: _Constraint, constant_eta: float) -> float:
    p1, p2 = closest_points_between_lines(lines[cons.line1], lines[cons.line2])
    center = normalize((p1 + p2) / 2.0)
    distance = abs(float(np.dot(p1 - p2, center))) / constant_eta
    return distance


def _spanning_constraints(
    line_indices: List[LineIndex],
    constraints: List[_Constraint],
    lines: Dict[LineIndex, Line3],
    constant_eta: float,
) -> List[_Constraint]:
    """Keep one constraint per minimum spanning tree edge of the line graph."""

    column = {li: i for i, li in enumerate(line_indices)}
    best: Dict[Tuple[int, int], Tuple[float, int]] = {}
    for k, cons in enumerate(constraints):
        i, j = column[cons.line1], column[cons.line2]
        if i == j or cons.weight <= 0:
            continue
        key = (min(i, j), max(i, j))
        distance = _constraint_distance(lines, cons, constant_eta)
        if not np.isfinite(distance):
            distance = np.finfo(float).max / 4
        if key not in best or distance < best[key][0]:
            best[key] = (distance, k)

    if not best:
        return []
    keys = list(best)
    graph = sparse.csr_matrix(
        (
            [best[key][0] + _MST_WEIGHT_OFFSET for key in keys],
            ([key[0] for key in keys], [key[1] for key in keys]),
        ),
        shape=(len(line_indices), len(line_indices)),
    )
    tree = minimum_spanning_tree(graph)
    kept = []
    for i, j in zip(*tree.nonzero()):
        key = (int(min(i, j)), int(max(i, j)))
        kept.append(constraints[best[key][1]])
    logger.info("Kept %d of %d line constraints on the spanning tree", len(kept), len(constraints))
    return kept


def estimate_spatial_line_depths(
    scene: SceneData,
    labels: ComponentLabels,
    constant_eta: float = 1.0,
    twice_estimation: bool = False,
    solve: Optional[LinearSolve] = None,
    config: Optional[ReconstructionConfig] = None,
) -> Dict[LineIndex, Line3]:
    """Reconstruct every line in space from pairwise depth constraints.

    The first line (by ``(view id, handle)``) of each component is pinned at
    depth ``constant_eta``; the other depths come from the weighted least
    squares solution of ``ratio1 * eta1 = ratio2 * eta2`` over all line
    relations and inter-view incidences. With ``twice_estimation`` the
    constraints are reduced to a minimum spanning tree of their residual
    distances and solved again without weights.
    """

    cfg = config or get_reconstruction_config()
    solve = solve or lsqr_solve
    constraints = _collect_constraints(scene, cfg)
    lines = _solve_once(scene, labels, constraints, constant_eta, True, solve)

    if twice_estimation:
        kept = _spanning_constraints(scene.line_indices(), constraints, lines, constant_eta)
        lines = _solve_once(scene, labels, kept, constant_eta, False, solve)

    logger.info("Reconstructed %d spatial lines from %d constraints", len(lines), len(constraints))
    return lines


apply_debug_logging(globals(), logger=logger)
