"""Tests for distance and bearing helpers."""

import pytest

from geo.distance import (
    EARTH_RADIUS_M,
    bearing_degrees,
    great_circle_distance_m,
    haversine_distance_m,
)
from navigation.models import Coordinate

HANOI = Coordinate(lon=105.8342, lat=21.0278)
HCMC = Coordinate(lon=106.6297, lat=10.8231)


@pytest.mark.unit
class TestGreatCircleDistance:
    def test_same_point_is_zero(self) -> None:
        assert great_circle_distance_m(HANOI, HANOI) == pytest.approx(0.0, abs=0.001)

    def test_hanoi_to_ho_chi_minh_city(self) -> None:
        """Straight-line distance is about 1140 km."""
        distance_km = great_circle_distance_m(HANOI, HCMC) / 1000
        assert 1130 <= distance_km <= 1150

    def test_symmetry(self) -> None:
        assert great_circle_distance_m(HANOI, HCMC) == pytest.approx(
            great_circle_distance_m(HCMC, HANOI), rel=1e-9
        )

    def test_one_thousandth_degree_on_equator(self) -> None:
        a = Coordinate(lon=0.0, lat=0.0)
        b = Coordinate(lon=0.001, lat=0.0)
        assert great_circle_distance_m(a, b) == pytest.approx(111.195, abs=0.01)

    def test_matches_lat_lon_form(self) -> None:
        assert great_circle_distance_m(HANOI, HCMC) == haversine_distance_m(
            HANOI.lat, HANOI.lon, HCMC.lat, HCMC.lon
        )

    def test_antipodal_points(self) -> None:
        distance = haversine_distance_m(0.0, 0.0, 0.0, 180.0)
        assert distance == pytest.approx(3.141592653589793 * EARTH_RADIUS_M, rel=1e-9)


@pytest.mark.unit
class TestBearing:
    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            (Coordinate(lon=0.0, lat=1.0), 0.0),
            (Coordinate(lon=1.0, lat=0.0), 90.0),
            (Coordinate(lon=0.0, lat=-1.0), 180.0),
            (Coordinate(lon=-1.0, lat=0.0), 270.0),
        ],
    )
    def test_cardinal_directions(self, target: Coordinate, expected: float) -> None:
        origin = Coordinate(lon=0.0, lat=0.0)
        assert bearing_degrees(origin, target) == pytest.approx(expected, abs=1e-9)

    def test_always_in_range(self) -> None:
        for target in (HCMC, HANOI, Coordinate(lon=-179.9, lat=-89.0)):
            bearing = bearing_degrees(HANOI, target)
            assert 0.0 <= bearing < 360.0
