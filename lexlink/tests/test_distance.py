import math

import pytest

from lexlink.common.exceptions import InvalidCoordinateError
from lexlink.core.geo.distance import EARTH_RADIUS_M, distance_meters, validate_coordinate

BUCHAREST = (44.4268, 26.1025)
CLUJ = (46.7712, 23.6236)


def test_distance_to_self_is_zero():
    assert distance_meters(*BUCHAREST, *BUCHAREST) == 0


def test_distance_is_symmetric():
    forward = distance_meters(*BUCHAREST, *CLUJ)
    backward = distance_meters(*CLUJ, *BUCHAREST)
    assert forward == pytest.approx(backward)


def test_bucharest_to_cluj_is_about_324_km():
    distance = distance_meters(*BUCHAREST, *CLUJ)
    assert distance == pytest.approx(324_000, rel=0.01)


def test_one_degree_of_latitude():
    distance = distance_meters(0.0, 0.0, 1.0, 0.0)
    assert distance == pytest.approx(EARTH_RADIUS_M * math.pi / 180)
    # Geodesic reference for one degree at the equator is 110.574 km
    assert distance == pytest.approx(110_574, rel=0.01)


def test_antipodal_points():
    distance = distance_meters(0.0, 0.0, 0.0, 180.0)
    assert distance == pytest.approx(math.pi * EARTH_RADIUS_M)


@pytest.mark.parametrize(
    "lat,lng",
    [
        (90.5, 0.0),
        (-91.0, 10.0),
        (10.0, 180.1),
        (10.0, -200.0),
        (float("nan"), 0.0),
        (0.0, float("inf")),
    ],
)
def test_invalid_coordinates_are_rejected(lat, lng):
    with pytest.raises(InvalidCoordinateError):
        validate_coordinate(lat, lng)
    with pytest.raises(InvalidCoordinateError):
        distance_meters(lat, lng, *BUCHAREST)


def test_boundary_coordinates_are_valid():
    validate_coordinate(90.0, 180.0)
    validate_coordinate(-90.0, -180.0)


def test_invalid_coordinate_error_is_a_422():
    with pytest.raises(InvalidCoordinateError) as exc_info:
        validate_coordinate(100.0, 0.0)
    assert exc_info.value.status_code == 422
    assert exc_info.value.code == "invalid_coordinate"
