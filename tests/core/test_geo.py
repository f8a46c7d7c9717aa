"""Unit tests for geographic calculations.

Pure function tests - no mocks needed, fast execution.
"""

import math

import pytest

from safezone.core.geo import (
    EARTH_RADIUS_M,
    Coordinate,
    calculate_distance,
    is_within_radius,
)


SF = Coordinate(37.7749, -122.4194)
LA = Coordinate(34.0522, -118.2437)


class TestCalculateDistance:
    """Tests for calculate_distance() Haversine implementation."""

    def test_same_point_returns_zero(self):
        """Distance from point to itself should be zero."""
        assert calculate_distance(SF, SF) == 0.0

    def test_known_distance_sf_to_la(self):
        """SF to LA should be approximately 559 km."""
        assert calculate_distance(SF, LA) == pytest.approx(559_000, rel=0.02)

    def test_known_distance_nyc_to_london(self):
        """NYC to London should be approximately 5570 km."""
        nyc = Coordinate(40.7128, -74.0060)
        london = Coordinate(51.5074, -0.1278)

        assert calculate_distance(nyc, london) == pytest.approx(5_570_000, rel=0.02)

    def test_symmetric(self):
        """Distance should be the same in both directions."""
        assert calculate_distance(SF, LA) == pytest.approx(calculate_distance(LA, SF))

    def test_one_degree_of_latitude(self):
        """One degree along a meridian is R * pi / 180 meters."""
        d = calculate_distance(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0))
        assert d == pytest.approx(EARTH_RADIUS_M * math.pi / 180)

    def test_antipodal_points(self):
        """Opposite points are half the circumference apart."""
        d = calculate_distance(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0))
        assert d == pytest.approx(EARTH_RADIUS_M * math.pi)

    def test_never_negative(self):
        """Distance is never negative."""
        points = [SF, LA, Coordinate(-33.9, 151.2), Coordinate(89.9, 0.0)]
        for a in points:
            for b in points:
                assert calculate_distance(a, b) >= 0


class TestIsWithinRadius:
    """Tests for is_within_radius() function."""

    def test_point_within_radius(self):
        """Oakland is within 20 km of SF."""
        oakland = Coordinate(37.8044, -122.2712)
        assert is_within_radius(SF, oakland, 20_000) is True

    def test_point_outside_radius(self):
        """LA is not within 100 km of SF."""
        assert is_within_radius(SF, LA, 100_000) is False

    def test_same_point_zero_radius(self):
        """Radius check is inclusive."""
        assert is_within_radius(SF, SF, 0) is True


class TestCoordinate:
    """Tests for Coordinate value type."""

    def test_equal_by_value(self):
        assert Coordinate(1.0, 2.0) == Coordinate(1.0, 2.0)

    def test_is_immutable(self):
        with pytest.raises(AttributeError):
            SF.latitude = 0.0

    def test_as_dict(self):
        assert Coordinate(1.5, -2.5).as_dict() == {"lat": 1.5, "lng": -2.5}
