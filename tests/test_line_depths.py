import logging
import math

import numpy as np
import pytest

from panolayout.recon import (
    LineIndex,
    LineObservation,
    LineRelation,
    SceneData,
    compute_connected_components,
    estimate_spatial_line_depths,
)

VERTICAL = LineIndex(0, 0)
HORIZONTAL = LineIndex(0, 1)
OTHER_VIEW = LineIndex(1, 0)


def _corner_lines_scene(**extra):
    # vertical corner edge and a horizontal top edge meeting at (2, 3, 1)
    return SceneData(
        vanishing_points=np.eye(3),
        lines={
            VERTICAL: LineObservation((2, 3, -1), (2, 3, 1), 2),
            HORIZONTAL: LineObservation((-4, 3, 1), (2, 3, 1), 0),
        },
        line_relations=[LineRelation(VERTICAL, HORIZONTAL, (2, 3, 1), 1.0)],
        **extra,
    )


def test_single_line_is_pinned_at_constant_depth():
    scene = SceneData(vanishing_points=np.eye(3), lines={VERTICAL: LineObservation((2, 3, -1), (2, 3, 1), 2)})
    labels = compute_connected_components(scene)

    lines = estimate_spatial_line_depths(scene, labels, constant_eta=math.sqrt(14.0))

    assert np.allclose(lines[VERTICAL].first, [2, 3, -1])
    assert np.allclose(lines[VERTICAL].second, [2, 3, 1])


def test_related_lines_share_their_junction():
    scene = _corner_lines_scene()
    labels = compute_connected_components(scene)

    lines = estimate_spatial_line_depths(scene, labels, constant_eta=math.sqrt(14.0))

    assert np.allclose(lines[HORIZONTAL].first, [-4, 3, 1], atol=1e-6)
    assert np.allclose(lines[HORIZONTAL].second, [2, 3, 1], atol=1e-6)


def test_solution_scales_with_pinned_depth():
    scene = _corner_lines_scene()
    labels = compute_connected_components(scene)

    unit = estimate_spatial_line_depths(scene, labels, constant_eta=1.0)
    double = estimate_spatial_line_depths(scene, labels, constant_eta=2.0)

    assert np.linalg.norm(unit[VERTICAL].first) == pytest.approx(1.0)
    assert np.allclose(double[HORIZONTAL].first, 2.0 * unit[HORIZONTAL].first, atol=1e-6)


def test_custom_solver_is_used():
    scene = _corner_lines_scene()
    labels = compute_connected_components(scene)
    calls = []

    def dense_solve(a, b):
        calls.append(a.shape)
        return np.linalg.lstsq(a.toarray(), b, rcond=None)[0]

    lines = estimate_spatial_line_depths(scene, labels, constant_eta=math.sqrt(14.0), solve=dense_solve)

    assert calls == [(1, 2)]
    assert np.allclose(lines[HORIZONTAL].first, [-4, 3, 1], atol=1e-9)


def test_inter_view_incidence_ties_lines_across_views():
    scene = _corner_lines_scene(
        inter_view_line_incidences={(HORIZONTAL, OTHER_VIEW): (-4, 3, 1)},
    )
    scene.lines[OTHER_VIEW] = LineObservation((-4, 3, 1), (-4, 3, 3), 2)
    labels = compute_connected_components(scene)
    assert labels.line_cc_count == 1

    lines = estimate_spatial_line_depths(scene, labels, constant_eta=math.sqrt(14.0))

    assert np.allclose(lines[OTHER_VIEW].first, [-4, 3, 1], atol=1e-6)
    assert np.allclose(lines[OTHER_VIEW].second, [-4, 3, 3], atol=1e-6)


def test_twice_estimation_keeps_a_spanning_tree(caplog):
    scene = _corner_lines_scene(
        inter_view_line_incidences={(HORIZONTAL, OTHER_VIEW): (-4, 3, 1)},
    )
    scene.lines[OTHER_VIEW] = LineObservation((-4, 3, 1), (-4, 3, 3), 2)
    # a redundant second observation of the same junction
    scene.line_relations.append(LineRelation(VERTICAL, HORIZONTAL, (2, 3, 1), 0.5))
    labels = compute_connected_components(scene)

    with caplog.at_level(logging.INFO):
        lines = estimate_spatial_line_depths(scene, labels, constant_eta=math.sqrt(14.0), twice_estimation=True)

    assert "Kept 2 of 3 line constraints" in caplog.text
    assert np.allclose(lines[HORIZONTAL].first, [-4, 3, 1], atol=1e-6)
    assert np.allclose(lines[OTHER_VIEW].second, [-4, 3, 3], atol=1e-6)
