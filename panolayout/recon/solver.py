"""Stochastic plane and depth assignment over the mixed reconstruction graph."""

from __future__ import annotations

import concurrent.futures
import logging
import math
import os
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..geometry import Line3, Plane3, intersect_ray_with_plane, nearest_point_on_ray_to_line
from ..logging_utils import apply_debug_logging
from .graph import Choice, MixedGraph, SolverContext, build_mixed_graph
from .model import (
    ComponentLabels,
    LineIndex,
    ReconstructionConfig,
    ReconstructionOptions,
    RegionIndex,
    SceneData,
    TrialResult,
)

logger = logging.getLogger(__name__)


def _initial_planes(ctx: SolverContext, graph: MixedGraph) -> List[Plane3]:
    planes = []
    for cc in range(ctx.labels.region_cc_count):
        data = graph.vertices[graph.region_vertex_of_cc[cc]].data
        normal = data.tangent_plane.normal
        planes.append(Plane3(normal * ctx.scale, normal))
    return planes


def score_assignment(
    ctx: SolverContext, region_cc_planes: List[Plane3], line_cc_depth_factors: List[float]
) -> float:
    """Sum of gaps between the two resolutions of every boundary and connection anchor.

    Lower is better; any non-finite contribution makes the score ``inf``.
    """

    labels = ctx.labels
    total = 0.0
    for boundary in ctx.scene.region_boundaries:
        plane1 = region_cc_planes[labels.region_cc(boundary.region1)]
        plane2 = region_cc_planes[labels.region_cc(boundary.region2)]
        for direction in boundary.sampled_directions:
            a1 = intersect_ray_with_plane(direction, plane1)
            a2 = intersect_ray_with_plane(direction, plane2)
            total += float(np.linalg.norm(a1 - a2))
    for (ri, li), directions in ctx.scene.region_line_connections.items():
        plane = region_cc_planes[labels.region_cc(ri)]
        line = ctx.reconstructed_lines[li].scaled(line_cc_depth_factors[labels.line_cc(li)])
        for direction in directions:
            on_line = nearest_point_on_ray_to_line(line, direction)
            on_plane = intersect_ray_with_plane(direction, plane)
            total += float(np.linalg.norm(on_line - on_plane))
    if math.isnan(total) or math.isinf(total):
        return math.inf
    return total


def _select(choices: List[Choice], rng: np.random.Generator, weighted: bool) -> Optional[Choice]:
    probs = np.array([c.probability for c in choices], dtype=float)
    total = float(probs.sum())
    if not choices or not total > 0:
        return None
    if weighted:
        return choices[int(rng.choice(len(choices), p=probs / total))]
    return choices[int(np.argmax(probs))]


def _run_trial(
    ctx: SolverContext,
    graph: MixedGraph,
    initial_planes: List[Plane3],
    trial: int,
    rng: np.random.Generator,
    options: ReconstructionOptions,
) -> TrialResult:
    planes = [plane.copy() for plane in initial_planes]
    factors = [1.0] * ctx.labels.line_cc_count
    max_rounds = options.max_rounds if options.max_rounds is not None else len(graph.vertices)

    rounds = 0
    while rounds < max_rounds and not all(v.determined for v in graph.vertices):
        choices: List[Choice] = []
        # region components first, then line components, each in id order
        for vid, vertex in enumerate(graph.vertices):
            if vertex.determined or not vertex.is_region():
                continue
            vertex.data.build_candidates(ctx, graph, vid)
            choices.extend(vertex.data.register_choices(ctx, graph, vid))
        for vid, vertex in enumerate(graph.vertices):
            if vertex.determined or not vertex.is_line():
                continue
            vertex.data.build_candidates(ctx, graph, vid)
            choices.extend(vertex.data.register_choices(ctx, graph, vid))

        selected = _select(choices, rng, options.use_weighted_random_selection)
        if selected is None:
            logger.warning("Trial %d found no admissible choice after %d rounds", trial, rounds)
            break

        vertex = graph.vertices[selected.vertex_id]
        value = vertex.data.pick_choice(ctx, graph, selected.vertex_id, selected.candidate_id)
        vertex.determined = True
        if vertex.is_region():
            planes[vertex.data.cc_id] = value
        else:
            factors[vertex.data.cc_id] = value
        rounds += 1
        if options.observer is not None:
            options.observer(trial, selected.vertex_id, value)

    completed = all(v.determined for v in graph.vertices)
    if not completed and rounds >= max_rounds:
        logger.warning("Trial %d hit the round cap of %d", trial, max_rounds)
    score = score_assignment(ctx, planes, factors)
    logger.info("Trial %d finished after %d rounds with score %.6g", trial, rounds, score)
    return TrialResult(trial, score, planes, factors, rounds, completed)


def _worker_count(options: ReconstructionOptions, trial_num: int) -> int:
    if options.max_workers is not None:
        return max(1, min(options.max_workers, trial_num))
    return min(max(1, (os.cpu_count() or 1) - 1), trial_num)


def initialize_spatial_region_planes(
    ctx: SolverContext,
    graph: MixedGraph,
    options: Optional[ReconstructionOptions] = None,
) -> Tuple[TrialResult, List[TrialResult]]:
    """Run independent randomized trials and return the best one with all results.

    Every trial works on its own copy of ``graph`` and its own random
    generator spawned from ``options.random_seed``; ``graph`` is left
    untouched.
    """

    options = options or ReconstructionOptions()
    trial_num = max(1, int(options.trial_num))
    initial = _initial_planes(ctx, graph)
    seeds = np.random.SeedSequence(options.random_seed).spawn(trial_num)
    logger.info(
        "Solving %d vertices and %d edges with %d trials (scale=%.6g)",
        len(graph.vertices),
        len(graph.edges),
        trial_num,
        ctx.scale,
    )

    def run(trial: int) -> TrialResult:
        return _run_trial(ctx, graph.copy(), initial, trial, np.random.default_rng(seeds[trial]), options)

    workers = _worker_count(options, trial_num)
    if workers == 1:
        results = [run(trial) for trial in range(trial_num)]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(run, range(trial_num)))

    best = min(results, key=lambda r: (r.score, r.trial))
    logger.info("Best trial %d with score %.6g", best.trial, best.score)
    return best, results


def estimate_spatial_region_planes(
    scene: SceneData,
    labels: ComponentLabels,
    reconstructed_lines: Dict[LineIndex, Line3],
    options: Optional[ReconstructionOptions] = None,
    config: Optional[ReconstructionConfig] = None,
) -> Tuple[Dict[LineIndex, Line3], Dict[RegionIndex, Plane3], TrialResult, List[TrialResult]]:
    """Solve the mixed graph and substitute the winning assignment back into lines and regions."""

    ctx = SolverContext.create(scene, labels, reconstructed_lines, config)
    graph = build_mixed_graph(scene, labels)
    best, results = initialize_spatial_region_planes(ctx, graph, options)

    lines = {
        li: line.scaled(best.line_cc_depth_factors[labels.line_cc(li)])
        for li, line in reconstructed_lines.items()
    }
    planes = {ri: best.region_cc_planes[labels.region_cc(ri)].copy() for ri in scene.region_indices()}
    return lines, planes, best, results


apply_debug_logging(globals(), logger=logger)
