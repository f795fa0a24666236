import pytest

from floodfield.collimators import (
    Collimator,
    HorizontalBottomCollimator,
    HorizontalSymmetricalCollimator,
    HorizontalTopCollimator,
    VerticalLeftCollimator,
    VerticalRightCollimator,
    VerticalSymmetricalCollimator,
)
from floodfield.geometry import Point, Ray


def _ray_z(z):
    return Ray.from_origin(Point(1.0, 0.0, z))


def _ray_y(y):
    return Ray.from_origin(Point(1.0, y, 0.0))


@pytest.mark.parametrize(
    "cls,ray_of,blocked,free",
    [
        (VerticalLeftCollimator, _ray_z, [2.0, 1.0], [0.0, -2.0]),
        (VerticalRightCollimator, _ray_z, [-2.0, -1.0], [0.0, 2.0]),
        (VerticalSymmetricalCollimator, _ray_z, [2.0, -2.0, 1.0], [0.0, 0.5, -0.5]),
        (HorizontalTopCollimator, _ray_y, [2.0, 1.0], [0.0, -2.0]),
        (HorizontalBottomCollimator, _ray_y, [-2.0, -1.0], [0.0, 2.0]),
        (HorizontalSymmetricalCollimator, _ray_y, [2.0, -2.0, -1.0], [0.0, 0.5, -0.5]),
    ],
)
def test_blocking(cls, ray_of, blocked, free):
    collimator = cls(0.5, 1.0)
    for value in blocked:
        assert collimator.does_intersect(ray_of(value)) is True
    for value in free:
        assert collimator.does_intersect(ray_of(value)) is False


def test_vertical_ignores_y_and_horizontal_ignores_z():
    ray = Ray.from_origin(Point(1.0, 5.0, 0.0))
    assert VerticalSymmetricalCollimator(0.5, 1.0).does_intersect(ray) is False
    ray = Ray.from_origin(Point(1.0, 0.0, 5.0))
    assert HorizontalSymmetricalCollimator(0.5, 1.0).does_intersect(ray) is False


def test_parallel_ray_not_blocked():
    ray = Ray(Point(0.0, 0.0, 0.0), Point(0.0, 0.0, 0.0))
    assert VerticalSymmetricalCollimator(0.5, 1.0).does_intersect(ray) is False
    assert HorizontalSymmetricalCollimator(0.5, 1.0).does_intersect(ray) is False


def test_base_keeps_parameters():
    collimator = VerticalLeftCollimator(3.0, 4.0)
    assert (collimator.distance, collimator.shift) == (3.0, 4.0)


def test_base_does_not_decide():
    with pytest.raises(NotImplementedError):
        Collimator(1.0, 1.0).does_intersect(_ray_z(0.0))