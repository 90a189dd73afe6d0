import math

from lexlink.common.exceptions import InvalidCoordinateError

EARTH_RADIUS_M = 6_371_000


def validate_coordinate(lat: float, lng: float) -> None:
    if lat is None or lng is None:
        raise InvalidCoordinateError(lat, lng)
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinateError(lat, lng)
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidCoordinateError(lat, lng)
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        raise InvalidCoordinateError(lat, lng)


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS-84 points, in meters (Haversine)."""
    validate_coordinate(lat1, lng1)
    validate_coordinate(lat2, lng2)

    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c
