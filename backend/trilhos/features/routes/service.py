"""
Route service.

Server-side route operations: insert, partial update, finalize, abandon,
delete and the read queries behind the history and activity pages.
Metrics are recomputed here from the point sequence whenever points are
written, so stored values never drift from the samples.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import gpxpy
import gpxpy.gpx
from sqlalchemy.ext.asyncio import AsyncSession

from trilhos.shared.geo import total_distance, duration
from .geocoding import ReverseGeocoder, generate_route_name
from .models import Route
from .repository import RouteRepository
from .schemas import LocationSample, RouteCreate, RouteUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class RouteError(Exception):
    """Base route error."""
    pass


class RouteNotFoundError(RouteError):
    """Route does not exist or is not owned by the caller."""

    def __init__(self, route_id: int):
        self.route_id = route_id
        super().__init__(f"Route {route_id} not found")


# =============================================================================
# Helpers
# =============================================================================

def dump_points(points: list[LocationSample]) -> list[dict]:
    """Serialize samples for the JSON column."""
    return [p.model_dump(by_alias=True) for p in points]


def load_points(raw: list[dict] | None) -> list[LocationSample]:
    """Deserialize samples from the JSON column."""
    return [LocationSample.model_validate(p) for p in raw or []]


def point_metrics(points: list[LocationSample]) -> dict:
    """Derived columns for a point sequence."""
    return {
        "total_distance": total_distance(points),
        "duration": duration(points),
    }


# =============================================================================
# Service
# =============================================================================

class RouteService:
    """
    Route persistence operations.

    Usage:
        service = RouteService(db, geocoder=ReverseGeocoder())
        route = await service.create_route(RouteCreate(points=[start]), user_id)
    """

    def __init__(self, db: AsyncSession, geocoder: Optional[ReverseGeocoder] = None):
        self.db = db
        self.repo = RouteRepository(db)
        self.geocoder = geocoder

    async def create_route(self, data: RouteCreate, user_id: Optional[str] = None) -> Route:
        """
        Insert a new route.

        A missing name is generated from the first point.
        """
        name = data.name
        if not name:
            start = data.points[0]
            name = await generate_route_name(self.geocoder, start.latitude, start.longitude)

        values = dict(
            user_id=user_id,
            name=name,
            points=dump_points(data.points),
            status=data.status.value,
            **point_metrics(data.points),
        )
        if data.started_at is not None:
            values["created_at"] = datetime.fromtimestamp(data.started_at / 1000, tz=timezone.utc)

        route = await self.repo.create(**values)
        await self.db.commit()
        logger.info(f"Created route {route.id} ({len(data.points)} points, user={user_id})")
        return route

    async def update_route(
        self,
        route_id: int,
        data: RouteUpdate,
        owner_id: Optional[str] = None
    ) -> Route:
        """
        Apply a partial update.

        Raises:
            RouteNotFoundError: No route matched the id (and owner)
        """
        values = {}
        if data.name is not None:
            values["name"] = data.name
        if data.status is not None:
            values["status"] = data.status.value
        if data.points is not None:
            values["points"] = dump_points(data.points)
            values.update(point_metrics(data.points))

        updated = await self.repo.update_route(route_id, owner_id, **values)
        if not updated:
            await self.db.rollback()
            raise RouteNotFoundError(route_id)
        await self.db.commit()

        route = await self.repo.get_by_id(route_id)
        await self.db.refresh(route)
        logger.debug(f"Updated route {route_id}: {sorted(values)}")
        return route

    async def delete_route(self, route_id: int, owner_id: Optional[str] = None) -> None:
        """
        Delete a route.

        Raises:
            RouteNotFoundError: No route matched the id (and owner)
        """
        deleted = await self.repo.delete_route(route_id, owner_id)
        if not deleted:
            await self.db.rollback()
            raise RouteNotFoundError(route_id)
        await self.db.commit()
        logger.info(f"Deleted route {route_id}")

    async def get_route(self, route_id: int) -> Route | None:
        return await self.repo.get_by_id(route_id)

    async def get_active_route(self, user_id: str) -> Route | None:
        return await self.repo.get_active_for_user(user_id)

    async def get_history(self, user_id: str) -> list[Route]:
        return await self.repo.get_completed_for_user(user_id)

    async def get_activity(self) -> list[Route]:
        return await self.repo.get_all_completed()


def route_to_gpx(route: Route) -> str:
    """Export a stored route as a GPX 1.1 document."""
    gpx = gpxpy.gpx.GPX()
    track = gpxpy.gpx.GPXTrack(name=route.name)
    gpx.tracks.append(track)
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)

    for point in load_points(route.points):
        segment.points.append(
            gpxpy.gpx.GPXTrackPoint(
                latitude=point.latitude,
                longitude=point.longitude,
                elevation=point.altitude,
                time=datetime.fromtimestamp(point.timestamp / 1000, tz=timezone.utc),
            )
        )

    return gpx.to_xml()
