"""Centralized geographic distance and bearing calculations.

Everything here models the Earth as a sphere of mean radius 6371 km. The
resulting error (under 0.5%) is accepted for speed; there is no ellipsoid
variant.
"""

from math import atan2, cos, degrees, radians, sin, sqrt

from navigation.models import Coordinate

EARTH_RADIUS_M = 6_371_000  # Earth radius in meters


def haversine_distance_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points in meters.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance between the two points in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_M * c


def great_circle_distance_m(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in meters between two coordinates."""
    return haversine_distance_m(a.lat, a.lon, b.lat, b.lon)


def bearing_degrees(a: Coordinate, b: Coordinate) -> float:
    """Initial bearing from ``a`` to ``b`` in degrees, normalized to [0, 360).

    Identical points have no defined bearing; the formula yields 0.0 for them.
    """
    lat1, lat2 = radians(a.lat), radians(b.lat)
    dlon = radians(b.lon - a.lon)

    y = sin(dlon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)

    bearing = (degrees(atan2(y, x)) + 360.0) % 360.0
    # (-tiny + 360) % 360 can round to exactly 360.0
    return 0.0 if bearing >= 360.0 else bearing
