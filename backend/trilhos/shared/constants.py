"""
Application-wide constants.

Defaults here mirror the values in ``trilhos.config.Settings`` and are
used where no settings object is passed in (tests, library use).
"""

from enum import Enum


class RouteStatus(str, Enum):
    """Lifecycle status of a stored route."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class AutoSaveDefaults:
    """Auto-save configuration."""

    # Seconds between interval saves
    INTERVAL_SECONDS = 30.0

    # New points that trigger an immediate save
    POINT_THRESHOLD = 10


class GeolocationDefaults:
    """Geolocation configuration."""

    HIGH_ACCURACY = True

    # Timeout for the initial one-shot fix
    INITIAL_TIMEOUT_SECONDS = 10.0

    # Timeout for each watch update
    WATCH_TIMEOUT_SECONDS = 5.0

    # Maximum age of a cached position
    MAXIMUM_AGE_SECONDS = 1.5


# Name of the single pending-route slot in the local cache
PENDING_ROUTE_KEY = "trilhos_pending_route"

# Maximum route name length (routes.name column)
ROUTE_NAME_MAX_LENGTH = 255

# Address fields tried in order when naming a route
GEOCODE_ADDRESS_FIELDS = (
    "road",
    "neighbourhood",
    "suburb",
    "city_district",
    "city",
    "town",
    "village",
)
