"""Small 3D geometry toolkit shared by the reconstruction stages."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np
from scipy.spatial import ConvexHull, QhullError

Vec3 = np.ndarray


def as_vec3(value: Sequence[float]) -> Vec3:
    return np.asarray(value, dtype=float).reshape(3)


def normalize(v: Sequence[float]) -> Vec3:
    arr = as_vec3(v)
    length = np.linalg.norm(arr)
    if length == 0:
        return arr
    return arr / length


def angle_between_directions(a: Sequence[float], b: Sequence[float]) -> float:
    cos = float(np.dot(normalize(a), normalize(b)))
    return math.acos(min(1.0, max(-1.0, cos)))


@dataclass
class Plane3:
    """Plane through ``anchor`` with (not necessarily unit) ``normal``."""

    anchor: Vec3
    normal: Vec3

    def __post_init__(self) -> None:
        self.anchor = as_vec3(self.anchor)
        self.normal = as_vec3(self.normal)

    @classmethod
    def from_point_normal(cls, point: Sequence[float], normal: Sequence[float]) -> "Plane3":
        return cls(as_vec3(point), normalize(normal))

    def root(self) -> Vec3:
        """Point of the plane closest to the origin."""

        n2 = float(np.dot(self.normal, self.normal))
        return self.normal * float(np.dot(self.anchor, self.normal)) / n2

    def distance_to(self, point: Sequence[float]) -> float:
        n = normalize(self.normal)
        return abs(float(np.dot(as_vec3(point) - self.anchor, n)))

    def copy(self) -> "Plane3":
        return Plane3(self.anchor.copy(), self.normal.copy())


@dataclass
class Line3:
    first: Vec3
    second: Vec3

    def __post_init__(self) -> None:
        self.first = as_vec3(self.first)
        self.second = as_vec3(self.second)

    def direction(self) -> Vec3:
        return self.second - self.first

    def scaled(self, factor: float) -> "Line3":
        return Line3(self.first * factor, self.second * factor)


def intersect_ray_with_plane(direction: Sequence[float], plane: Plane3) -> Vec3:
    """Intersection of the line through the origin along ``direction`` with ``plane``.

    A direction parallel to the plane yields a non-finite point.
    """

    d = as_vec3(direction)
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.float64(np.dot(plane.anchor, plane.normal)) / np.float64(np.dot(d, plane.normal))
        return d * t


def nearest_point_on_ray_to_line(line: Line3, direction: Sequence[float]) -> Vec3:
    """Point on the line through the origin along ``direction`` closest to the infinite ``line``.

    Parallel inputs yield a non-finite point.
    """

    d = as_vec3(direction)
    u = line.direction()
    w0 = line.first
    a = float(np.dot(u, u))
    b = float(np.dot(u, d))
    c = float(np.dot(d, d))
    dd = float(np.dot(u, w0))
    e = float(np.dot(d, w0))
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.float64(a * e - b * dd) / np.float64(a * c - b * b)
        return d * t


def closest_points_between_lines(line1: Line3, line2: Line3) -> Tuple[Vec3, Vec3]:
    """Mutually nearest points of two infinite lines; non-finite when they are parallel."""

    u = line1.direction()
    v = line2.direction()
    w0 = line1.first - line2.first
    a = float(np.dot(u, u))
    b = float(np.dot(u, v))
    c = float(np.dot(v, v))
    dd = float(np.dot(u, w0))
    e = float(np.dot(v, w0))
    with np.errstate(divide="ignore", invalid="ignore"):
        denom = np.float64(a * c - b * b)
        s = np.float64(b * e - c * dd) / denom
        t = np.float64(a * e - b * dd) / denom
        return line1.first + u * s, line2.first + v * t


def propose_xy_directions(z: Sequence[float]) -> Tuple[Vec3, Vec3]:
    """Two unit vectors spanning the plane orthogonal to ``z``."""

    zn = normalize(z)
    axis = np.eye(3)[int(np.argmin(np.abs(zn)))]
    y = normalize(np.cross(zn, axis))
    x = normalize(np.cross(y, zn))
    return x, y


def visual_area_of_directions(
    plane: Plane3,
    x: Vec3,
    y: Vec3,
    directions: Iterable[Sequence[float]],
    convexify: bool,
) -> float:
    """Area covered on ``plane`` by the rays along ``directions``.

    The rays are intersected with the plane and expressed in the ``x``/``y``
    frame; with ``convexify`` the area of their convex hull is returned,
    otherwise the polygon they trace in order. Fewer than three usable
    directions cover no area.
    """

    points = []
    for direction in directions:
        p = intersect_ray_with_plane(direction, plane)
        if np.all(np.isfinite(p)):
            points.append((float(np.dot(p, x)), float(np.dot(p, y))))
    if len(points) <= 2:
        return 0.0
    pts = np.asarray(points, dtype=float)
    if convexify:
        try:
            # in 2D the hull "volume" is its area
            return float(ConvexHull(pts).volume)
        except QhullError:
            return 0.0
    xs, ys = pts[:, 0], pts[:, 1]
    return float(abs(np.dot(xs, np.roll(ys, -1)) - np.dot(ys, np.roll(xs, -1))) / 2.0)


def gaussian(x: float, sigma: float) -> float:
    return math.exp(-(x * x) / (2.0 * sigma * sigma))


def depth_ratio_of_point_on_spatial_line(first_dir: Sequence[float], p_dir: Sequence[float], vp: Sequence[float]) -> float:
    """Depth of the point seen along ``p_dir`` relative to the line start seen along ``first_dir``.

    Both points lie on a spatial line parallel to ``vp``; the ratio follows
    from the sine rule in the triangle (origin, first point, point).
    """

    first = normalize(first_dir)
    p = normalize(p_dir)
    v = normalize(vp)
    if float(np.dot(p - first, v)) < 0:
        v = -v
    angle_first = angle_between_directions(-first, v)
    angle_p = angle_between_directions(-p, -v)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(math.sin(angle_first)) / np.float64(math.sin(angle_p)))


def bounding_sphere_radius(points: Iterable[Sequence[float]]) -> float:
    """Radius of the sphere circumscribing the axis-aligned box of ``points``.

    Empty or degenerate input falls back to ``1.0``.
    """

    pts = np.asarray([as_vec3(p) for p in points], dtype=float)
    if pts.size == 0:
        return 1.0
    pts = pts[np.all(np.isfinite(pts), axis=1)]
    if pts.size == 0:
        return 1.0
    radius = float(np.linalg.norm(pts.max(axis=0) - pts.min(axis=0)) / 2.0)
    return radius if radius > 0 else 1.0
