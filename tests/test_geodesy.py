import math

import pytest

from crewtrack.analyze.geodesy import EARTH_RADIUS_KM, bearing_degrees, distance_km
from crewtrack.formats.gpx import TrackPoint


def test_one_degree_along_equator():
    d = distance_km(TrackPoint(0.0, 0.0), TrackPoint(0.0, 1.0))
    assert d == pytest.approx(EARTH_RADIUS_KM * math.pi / 180, rel=1e-12)


def test_distance_is_symmetric_and_zero_for_same_point():
    a = TrackPoint(30.25, -95.5)
    b = TrackPoint(30.3, -95.45)
    assert distance_km(a, b) == pytest.approx(distance_km(b, a))
    assert distance_km(a, a) == 0.0


@pytest.mark.parametrize(
    "b, expected",
    [
        (TrackPoint(1.0, 0.0), 0.0),
        (TrackPoint(0.0, 1.0), 90.0),
        (TrackPoint(-1.0, 0.0), 180.0),
        (TrackPoint(0.0, -1.0), 270.0),
    ],
)
def test_cardinal_bearings(b, expected):
    assert bearing_degrees(TrackPoint(0.0, 0.0), b) == pytest.approx(expected)


def test_bearing_is_in_range_and_zero_for_same_point():
    a = TrackPoint(30.0, -95.0)
    assert bearing_degrees(a, a) == 0.0
    b = bearing_degrees(a, TrackPoint(29.99, -95.01))
    assert 180.0 < b < 270.0
