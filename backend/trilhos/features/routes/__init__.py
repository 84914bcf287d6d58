"""
Stored routes.

Usage:
    from trilhos.features.routes import Route, RouteService, RouteRepository
    from trilhos.features.routes import LocationSample, PendingRoute

Components:
- Route: SQLAlchemy model for tracked routes
- RouteRepository: owner-scoped CRUD and history queries
- RouteService: create/update/finalize/delete with metric recomputation
- ReverseGeocoder: Nominatim lookups for route names
- LocationSample, PendingRoute, RouteCreate, RouteUpdate, RouteRead: schemas
"""

from .models import Route
from .repository import RouteRepository
from .geocoding import ReverseGeocoder, build_route_name, generate_route_name
from .service import (
    RouteService,
    RouteError,
    RouteNotFoundError,
    dump_points,
    load_points,
    route_to_gpx,
)
from .schemas import (
    LocationSample,
    PendingRoute,
    RouteCreate,
    RouteCreated,
    RouteUpdate,
    RouteRead,
    RouteSummary,
)

__all__ = [
    # Model
    "Route",
    # Data access
    "RouteRepository",
    "RouteService",
    "RouteError",
    "RouteNotFoundError",
    "dump_points",
    "load_points",
    "route_to_gpx",
    # Naming
    "ReverseGeocoder",
    "build_route_name",
    "generate_route_name",
    # Schemas
    "LocationSample",
    "PendingRoute",
    "RouteCreate",
    "RouteCreated",
    "RouteUpdate",
    "RouteRead",
    "RouteSummary",
]
