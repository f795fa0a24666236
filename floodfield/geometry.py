"""Points, rays, plane sizes and rotations about the x axis."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T", int, float)


@dataclass(frozen=True)
class Point:
    """A point in 3D space."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Ray:
    """A ray going from ``start`` through ``end``."""

    start: Point
    end: Point

    @classmethod
    def from_origin(cls, end: Point) -> Ray:
        """Build a ray that starts at the origin and passes through ``end``."""
        return cls(Point(0.0, 0.0, 0.0), end)


@dataclass(frozen=True)
class Plane(Generic[T]):
    """Width and height of a two-dimensional extent."""

    width: T
    height: T


class Intersectable(ABC):
    """A volumetric object that a ray may pass through."""

    @abstractmethod
    def does_intersect(self, ray: Ray) -> bool:
        """Return True if ``ray`` goes through the object."""


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def rotate_point(point: Point, deg: float) -> Point:
    """Rotate ``point`` about the x axis by ``deg`` degrees."""
    rad = deg * math.pi / 180.0
    cos_a = math.cos(rad)
    sin_a = math.sin(rad)
    return Point(
        point.x,
        point.y * cos_a - point.z * sin_a,
        point.y * sin_a + point.z * cos_a,
    )


def rotate_ray(ray: Ray, deg: float) -> Ray:
    """Rotate both ends of ``ray`` about the x axis by ``deg`` degrees."""
    return Ray(rotate_point(ray.start, deg), rotate_point(ray.end, deg))