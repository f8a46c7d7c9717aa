"""Geographic calculations - Pure functions.

This module provides the distance oracle used by hazard classification
and event proximity checks. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass


# Earth's radius in meters
EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class Coordinate:
    """Immutable geographic point.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
    """
    latitude: float
    longitude: float

    def as_dict(self) -> dict[str, float]:
        """Return the {lat, lng} mapping used by the event store."""
        return {"lat": self.latitude, "lng": self.longitude}


def calculate_distance(a: Coordinate, b: Coordinate) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in meters (never negative)
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push h marginally outside [0, 1]
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def is_within_radius(a: Coordinate, b: Coordinate, radius_m: float) -> bool:
    """Check if two points are within radius_m of each other (inclusive).

    Pure function.
    """
    return calculate_distance(a, b) <= radius_m
