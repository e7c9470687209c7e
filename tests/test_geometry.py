import math

import numpy as np
import pytest

from panolayout.geometry import (
    Line3,
    Plane3,
    bounding_sphere_radius,
    closest_points_between_lines,
    depth_ratio_of_point_on_spatial_line,
    gaussian,
    intersect_ray_with_plane,
    nearest_point_on_ray_to_line,
    propose_xy_directions,
    visual_area_of_directions,
)


def test_plane_root_and_distance():
    plane = Plane3([2.0, 5.0, -1.0], [2.0, 0.0, 0.0])

    assert np.allclose(plane.root(), [2.0, 0.0, 0.0])
    assert plane.distance_to([5.0, 1.0, 1.0]) == pytest.approx(3.0)
    assert np.allclose(Plane3.from_point_normal([0, 0, 1], [0, 0, 4]).normal, [0, 0, 1])


def test_ray_plane_intersection():
    plane = Plane3([2.0, 0.0, 0.0], [1.0, 0.0, 0.0])

    assert np.allclose(intersect_ray_with_plane([1.0, 1.0, 0.0], plane), [2.0, 2.0, 0.0])
    assert not np.all(np.isfinite(intersect_ray_with_plane([0.0, 1.0, 0.0], plane)))


def test_nearest_point_on_ray_to_line():
    line = Line3([2.0, 3.0, -1.0], [2.0, 3.0, 1.0])

    on_ray = nearest_point_on_ray_to_line(line, [2.0, 3.0, 0.5])
    assert np.allclose(on_ray, [2.0, 3.0, 0.5])

    scaled = nearest_point_on_ray_to_line(line.scaled(2.0), [2.0, 3.0, 0.5])
    assert np.allclose(scaled, [4.0, 6.0, 1.0])


def test_closest_points_between_skew_lines():
    l1 = Line3([0.0, 0.0, 0.0], [1.0, 0.0, 0.0])
    l2 = Line3([0.0, 1.0, 2.0], [0.0, 1.0, 3.0])

    p1, p2 = closest_points_between_lines(l1, l2)

    assert np.allclose(p1, [0.0, 0.0, 0.0])
    assert np.allclose(p2, [0.0, 1.0, 0.0])


def test_propose_xy_directions_is_orthonormal():
    z = np.array([1.0, 2.0, 3.0])
    x, y = propose_xy_directions(z)

    assert np.dot(x, y) == pytest.approx(0.0, abs=1e-12)
    assert np.dot(x, z) == pytest.approx(0.0, abs=1e-12)
    assert np.linalg.norm(x) == pytest.approx(1.0)
    assert np.linalg.norm(y) == pytest.approx(1.0)


def test_visual_area_of_square():
    plane = Plane3([0.0, 0.0, 1.0], [0.0, 0.0, 1.0])
    x, y = np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0])
    square = [(0, 0, 1), (1, 0, 1), (1, 1, 1), (0, 1, 1)]

    assert visual_area_of_directions(plane, x, y, square, False) == pytest.approx(1.0)
    assert visual_area_of_directions(plane, x, y, square + [(0.5, 0.5, 1)], True) == pytest.approx(1.0)
    assert visual_area_of_directions(plane, x, y, square[:2], True) == 0.0
    # collinear points span no hull
    assert visual_area_of_directions(plane, x, y, [(0, 0, 1), (1, 0, 1), (2, 0, 1)], True) == 0.0


def test_depth_ratio_follows_the_line():
    vp = [0.0, 0.0, 1.0]

    assert depth_ratio_of_point_on_spatial_line([2, 3, -1], [2, 3, 1], vp) == pytest.approx(1.0)
    ratio = depth_ratio_of_point_on_spatial_line([1, 0, 0], [1, 0, 1], vp)
    assert ratio == pytest.approx(math.sqrt(2.0))
    # the vanishing point direction sign does not matter
    assert depth_ratio_of_point_on_spatial_line([1, 0, 0], [1, 0, 1], [0, 0, -1]) == pytest.approx(ratio)


def test_gaussian_and_bounding_sphere():
    assert gaussian(0.0, 0.5) == 1.0
    assert gaussian(1.0, 1.0) == pytest.approx(math.exp(-0.5))
    assert bounding_sphere_radius([(2, 3, -1), (2, 3, 1)]) == pytest.approx(1.0)
    assert bounding_sphere_radius([]) == 1.0
