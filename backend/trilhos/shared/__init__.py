"""
Shared utilities (NOT business logic).

Usage:
    from trilhos.shared import haversine, total_distance
    from trilhos.shared.formatters import format_distance
"""
from .geo import (
    haversine,
    distance_between,
    total_distance,
    duration,
    EARTH_RADIUS_M,
)
from .formatters import (
    format_distance,
    format_duration,
    format_speed,
)
from .constants import (
    RouteStatus,
    AutoSaveDefaults,
    GeolocationDefaults,
    PENDING_ROUTE_KEY,
    ROUTE_NAME_MAX_LENGTH,
)

__all__ = [
    # Geo
    "haversine",
    "distance_between",
    "total_distance",
    "duration",
    "EARTH_RADIUS_M",
    # Formatters
    "format_distance",
    "format_duration",
    "format_speed",
    # Constants
    "RouteStatus",
    "AutoSaveDefaults",
    "GeolocationDefaults",
    "PENDING_ROUTE_KEY",
    "ROUTE_NAME_MAX_LENGTH",
]
