import math

import pytest

from trackmetrics.geo import EARTH_RADIUS_METERS, haversine_distance, to_radians


def test_to_radians():
    assert to_radians(180) == pytest.approx(math.pi)
    assert to_radians(-90) == pytest.approx(-math.pi / 2)
    assert to_radians(0) == 0


def test_same_point_is_zero():
    assert haversine_distance(37.5665, 126.9780, 37.5665, 126.9780) == 0


def test_one_degree_of_latitude():
    expected = EARTH_RADIUS_METERS * math.pi / 180
    assert haversine_distance(0, 0, 1, 0) == pytest.approx(expected)


def test_distance_is_symmetric():
    a = haversine_distance(37.5665, 126.9780, 37.5675, 126.9790)
    b = haversine_distance(37.5675, 126.9790, 37.5665, 126.9780)
    assert a == pytest.approx(b)


def test_antipodal_points():
    assert haversine_distance(0, 0, 0, 180) == pytest.approx(math.pi * EARTH_RADIUS_METERS)


def test_short_running_segment():
    """~0.001 degree steps in Seoul are roughly 140 meters."""
    distance = haversine_distance(37.5665, 126.9780, 37.5675, 126.9790)
    assert 100 < distance < 200
