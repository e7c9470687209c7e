"""Synthetic scenes with a known layout, used by the demo CLI and the tests."""

from __future__ import annotations

import math

import numpy as np

from .model import LineIndex, LineObservation, RegionBoundary, RegionIndex, RegionObservation, SceneData

# depth of the first endpoint of the corner line
CORNER_LINE_DEPTH = math.sqrt(14.0)

WALL_X = RegionIndex(0, 0)
WALL_Y = RegionIndex(0, 1)
CORNER_LINE = LineIndex(0, 0)


def make_corner_scene() -> SceneData:
    """Two walls on the planes ``x = 2`` and ``y = 3`` meeting in a vertical corner line.

    The axis vanishing points are the identity. The corner line runs from
    ``(2, 3, -1)`` to ``(2, 3, 1)`` and is shared by both walls. Pinning its
    depth at :data:`CORNER_LINE_DEPTH` reproduces the true metric layout.
    """

    wall_x_contour = [
        (2, -1, -1), (2, 0, -1), (2, 3, -1), (2, 3, 0),
        (2, 3, 1), (2, 0, 1), (2, -1, 1), (2, -1, 0),
    ]
    wall_y_contour = [
        (-2, 3, -1), (0, 3, -1), (2, 3, -1), (2, 3, 0),
        (2, 3, 1), (0, 3, 1), (-2, 3, 1), (-2, 3, 0),
    ]
    corner_samples = [(2, 3, z) for z in (-1.0, -0.5, 0.0, 0.5, 1.0)]
    connection_samples = np.array([(2, 3, -0.5), (2, 3, 0.5)], dtype=float)

    return SceneData(
        vanishing_points=np.eye(3),
        regions={
            WALL_X: RegionObservation((2, 1, 0), wall_x_contour),
            WALL_Y: RegionObservation((0, 3, 0), wall_y_contour),
        },
        lines={CORNER_LINE: LineObservation((2, 3, -1), (2, 3, 1), 2)},
        region_boundaries=[RegionBoundary(WALL_X, WALL_Y, corner_samples)],
        region_line_connections={
            (WALL_X, CORNER_LINE): connection_samples,
            (WALL_Y, CORNER_LINE): connection_samples.copy(),
        },
    )
