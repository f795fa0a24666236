"""Collimators that fully block rays beyond a shifted edge."""

from __future__ import annotations

import math

from .geometry import Intersectable, Point, Ray


def _divide(num: float, den: float) -> float:
    if den != 0:
        return num / den
    if num == 0 or math.isnan(num):
        return math.nan
    return math.copysign(math.inf, num) * math.copysign(1.0, den)


class Collimator(Intersectable):
    """A blade at ``distance`` along the x axis with its edge at ``shift``/2."""

    def __init__(self, distance: float, shift: float) -> None:
        self.distance = distance
        self.shift = shift

    def _crossing(self, ray: Ray) -> Point:
        t = _divide(self.distance - ray.start.x, ray.end.x - ray.start.x)
        return Point(
            self.distance,
            ray.start.y + t * (ray.end.y - ray.start.y),
            ray.start.z + t * (ray.end.z - ray.start.z),
        )

    def does_intersect(self, ray: Ray) -> bool:
        """Return True if the ray is blocked by the collimator."""
        raise NotImplementedError


class VerticalLeftCollimator(Collimator):
    """Blocks rays whose z at the blade is at or above ``shift``/2."""

    def does_intersect(self, ray: Ray) -> bool:
        return self._crossing(ray).z >= self.shift / 2.0


class VerticalRightCollimator(Collimator):
    """Blocks rays whose z at the blade is at or below -``shift``/2."""

    def does_intersect(self, ray: Ray) -> bool:
        return self._crossing(ray).z <= -self.shift / 2.0


class VerticalSymmetricalCollimator(Collimator):
    """Blocks rays whose z at the blade lies outside (-``shift``/2, ``shift``/2)."""

    def does_intersect(self, ray: Ray) -> bool:
        z = self._crossing(ray).z
        return z >= self.shift / 2.0 or z <= -self.shift / 2.0


class HorizontalTopCollimator(Collimator):
    """Blocks rays whose y at the blade is at or above ``shift``/2."""

    def does_intersect(self, ray: Ray) -> bool:
        return self._crossing(ray).y >= self.shift / 2.0


class HorizontalBottomCollimator(Collimator):
    """Blocks rays whose y at the blade is at or below -``shift``/2."""

    def does_intersect(self, ray: Ray) -> bool:
        return self._crossing(ray).y <= -self.shift / 2.0


class HorizontalSymmetricalCollimator(Collimator):
    """Blocks rays whose y at the blade lies outside (-``shift``/2, ``shift``/2)."""

    def does_intersect(self, ray: Ray) -> bool:
        y = self._crossing(ray).y
        return y >= self.shift / 2.0 or y <= -self.shift / 2.0