"""
Geographic utility functions.

This is the SINGLE SOURCE OF TRUTH for geographic calculations.
DO NOT duplicate these functions elsewhere.

Distances are in meters, durations in milliseconds, matching the units
stored on a Route.
"""
import math
from typing import Protocol, Sequence

# Earth radius in meters
EARTH_RADIUS_M = 6_371_000.0


class Coordinate(Protocol):
    latitude: float
    longitude: float


class TimedCoordinate(Coordinate, Protocol):
    timestamp: int


def haversine(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate great-circle distance between two points.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_between(a: Coordinate, b: Coordinate) -> float:
    """Distance in meters between two objects with latitude/longitude."""
    return haversine(a.latitude, a.longitude, b.latitude, b.longitude)


def total_distance(points: Sequence[Coordinate]) -> float:
    """
    Calculate total distance for a route.

    Args:
        points: Ordered samples (anything with latitude/longitude)

    Returns:
        Sum of consecutive haversine distances in meters, 0 for < 2 points
    """
    total = 0.0

    for i in range(1, len(points)):
        total += distance_between(points[i - 1], points[i])

    return total


def duration(points: Sequence[TimedCoordinate]) -> int:
    """
    Calculate route duration in milliseconds.

    Last timestamp minus first timestamp. Samples are not checked for
    ordering: if the last sample is older than the first (clock skew,
    out-of-order delivery) the result would be negative and 0 is returned
    instead.
    """
    if len(points) < 2:
        return 0
    elapsed = points[-1].timestamp - points[0].timestamp
    return max(int(elapsed), 0)
