"""Volumetric filters and the path length a ray travels inside them."""

from __future__ import annotations

import math
from abc import abstractmethod

from .geometry import Intersectable, Point, Ray, distance, rotate_ray

_FIRST_ITERATION_VALUE = -1.0
_GAUSS_EPS = 0.0001
_GAUSS_MAX_ITERATIONS = 10_000


def _divide(num: float, den: float) -> float:
    """Floating point division that yields inf or nan instead of raising."""
    if den != 0:
        return num / den
    if num == 0 or math.isnan(num):
        return math.nan
    return math.copysign(math.inf, num) * math.copysign(1.0, den)


def _sqrt(value: float) -> float:
    return math.sqrt(value) if value >= 0 else math.nan


def _exp(value: float) -> float:
    try:
        return math.exp(value)
    except OverflowError:
        return math.inf


def _param_at_x(ray: Ray, x: float) -> float:
    return _divide(x - ray.start.x, ray.end.x - ray.start.x)


def _point_at(ray: Ray, t: float) -> Point:
    return Point(
        ray.start.x + t * (ray.end.x - ray.start.x),
        ray.start.y + t * (ray.end.y - ray.start.y),
        ray.start.z + t * (ray.end.z - ray.start.z),
    )


def _point_at_x(ray: Ray, x: float) -> Point:
    t = _param_at_x(ray, x)
    return Point(
        x,
        ray.start.y + t * (ray.end.y - ray.start.y),
        ray.start.z + t * (ray.end.z - ray.start.z),
    )


def _crosses_x(ray: Ray) -> bool:
    return ray.start.x != ray.end.x


class Filter(Intersectable):
    """A filter made of one material, optionally named and tilted about the x axis."""

    def __init__(self, material: str, filter_id: str | None, rotation: float) -> None:
        self.material = material
        self.id = filter_id
        self.rotation = rotation

    @abstractmethod
    def intersection_distance(self, ray: Ray) -> float:
        """Distance the ray travels inside the filter."""

    @abstractmethod
    def does_intersect(self, ray: Ray) -> bool:
        """Return True if the ray goes through the filter."""


class SlabFilter(Filter):
    """A flat plate between ``distance`` and ``distance + thickness`` along x."""

    def __init__(self, material: str, filter_id: str | None, distance: float,
                 thickness: float, rotation: float) -> None:
        super().__init__(material, filter_id, rotation)
        self.distance = distance
        self.thickness = thickness

    def intersection_distance(self, ray: Ray) -> float:
        entry = _point_at_x(ray, self.distance)
        exit_ = _point_at_x(ray, self.distance + self.thickness)
        return distance(entry, exit_)

    def does_intersect(self, ray: Ray) -> bool:
        return _crosses_x(ray)


class DistFilter(Filter):
    """A disc of ``radius`` centred at ``distance`` on the x axis."""

    def __init__(self, material: str, filter_id: str | None, distance: float,
                 radius: float, rotation: float) -> None:
        super().__init__(material, filter_id, rotation)
        self.distance = distance
        self.radius = radius

    def _quadratic(self, ray: Ray) -> tuple[float, float, float]:
        k = _divide(ray.end.z - ray.start.z, ray.end.x - ray.start.x)
        a = k * k + 1
        b = -2 * self.distance
        c = self.distance * self.distance - self.radius * self.radius
        return a, b, b * b - 4 * a * c

    def intersection_distance(self, ray: Ray) -> float:
        transformed = rotate_ray(ray, self.rotation)
        a, b, disc = self._quadratic(transformed)
        if disc < 0:
            return 0.0
        root = _sqrt(disc)
        x_1 = _divide(-b - root, 2 * a)
        x_2 = _divide(-b + root, 2 * a)
        return distance(_point_at_x(transformed, x_1), _point_at_x(transformed, x_2))

    def does_intersect(self, ray: Ray) -> bool:
        _, _, disc = self._quadratic(rotate_ray(ray, self.rotation))
        return disc >= 0


class BowtieCylindricalFilter(Filter):
    """A slab whose front face is cut by a cylinder of ``radius``."""

    def __init__(self, material: str, filter_id: str | None, distance: float,
                 thickness: float, radius: float, rotation: float) -> None:
        super().__init__(material, filter_id, rotation)
        self.distance = distance
        self.thickness = thickness
        self.radius = radius

    def intersection_distance(self, ray: Ray) -> float:
        transformed = rotate_ray(ray, self.rotation)
        r = self.radius
        x_1 = self.distance
        x_2 = self.distance + self.thickness
        p_1 = _point_at_x(transformed, x_1)
        p_2 = _point_at_x(transformed, x_2)

        if x_1 * x_1 + p_1.z * p_1.z <= r * r:
            start = transformed.start
            alpha = transformed.end.x - start.x
            beta = transformed.end.y - start.y
            a = alpha * alpha + beta * beta
            b = 2 * start.x * alpha + 2 * start.z * beta
            c = start.x * start.x + start.z * start.z - r * r
            disc = b * b - 4 * a * c
            t_b = _divide(-b + _sqrt(disc), 2 * a)
            return distance(_point_at(transformed, t_b), p_2)

        return distance(p_1, p_2)

    def does_intersect(self, ray: Ray) -> bool:
        return _crosses_x(ray)


class BowtieGaussFilter(Filter):
    """A slab whose back face carries a Gaussian groove of ``depth`` and width ``sigma``."""

    def __init__(self, material: str, filter_id: str | None, distance: float,
                 thickness: float, sigma: float, depth: float, rotation: float) -> None:
        super().__init__(material, filter_id, rotation)
        self.distance = distance
        self.thickness = thickness
        self.sigma = sigma
        self.depth = depth

    def _function(self, x: float, k: float) -> float:
        q = _divide(k * x, self.sigma)
        return -x + self.distance + self.thickness - self.depth * _exp(-q * q)

    def _derivative(self, x: float, k: float) -> float:
        q = _divide(k * x, self.sigma)
        den = _exp(q * q) * self.sigma * self.sigma
        return -1 - _divide(2 * self.depth * k * k * x, den)

    def _solve(self, k: float) -> float:
        prev = _FIRST_ITERATION_VALUE
        for _ in range(_GAUSS_MAX_ITERATIONS):
            if prev == _FIRST_ITERATION_VALUE:
                prev = self.distance + self.thickness / 2
            new = prev - _divide(self._function(prev, k), self._derivative(prev, k))
            if abs(new - prev) < _GAUSS_EPS:
                return new
            prev = new
        raise ArithmeticError("Gaussian filter surface equation did not converge")

    def intersection_distance(self, ray: Ray) -> float:
        transformed = rotate_ray(ray, self.rotation)
        p_1 = _point_at_x(transformed, self.distance)
        k = _divide(transformed.end.y - transformed.start.y,
                    transformed.end.x - transformed.start.x)
        p_2 = _point_at_x(transformed, self._solve(k))
        return distance(p_1, p_2)

    def does_intersect(self, ray: Ray) -> bool:
        return _crosses_x(ray)


class BowtieParabolicFilter(Filter):
    """A plate with a parabolic cut, between ``min_thickness`` and ``max_thickness``."""

    def __init__(self, material: str, filter_id: str | None, distance: float,
                 min_thickness: float, max_thickness: float, radius: float,
                 rotation: float) -> None:
        super().__init__(material, filter_id, rotation)
        self.distance = distance
        self.min_thickness = min_thickness
        self.max_thickness = max_thickness
        self.radius = radius

    def intersection_distance(self, ray: Ray) -> float:
        transformed = rotate_ray(ray, self.rotation)
        start = transformed.start
        alpha = self.radius
        x_f = self.distance
        d_min = self.min_thickness
        d_max = self.max_thickness

        a = transformed.end.x - start.x
        c = transformed.end.z - start.z

        a_0 = alpha * c * c
        if a_0 == 0:
            return d_min

        b_0 = 2 * alpha * c * start.z - a
        c_0 = x_f + d_min + alpha * start.z * start.z - start.x
        disc = b_0 * b_0 - 4 * a_0 * c_0

        # Up to four crossings along the ray: front face (p_1), parabola (p_2, p_3),
        # back face (p_4).
        x_4 = self.distance + self.max_thickness
        p_1 = _point_at_x(transformed, self.distance)
        p_4 = _point_at_x(transformed, x_4)

        if disc > 0:
            root = math.sqrt(disc)
            p_2 = _point_at(transformed, (-b_0 - root) / (2 * a_0))
            p_3 = _point_at(transformed, (-b_0 + root) / (2 * a_0))
            if x_f <= x_4 <= min(x_f + d_max, x_f + d_min + alpha * p_4.z * p_4.z):
                return distance(p_1, p_2) + distance(p_3, p_4)
            return distance(p_1, p_2)
        return distance(p_1, p_4)

    def does_intersect(self, ray: Ray) -> bool:
        return _crosses_x(ray)