"""
Route Routes

Endpoints for creating, updating and browsing tracked routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from trilhos.api.deps import get_current_user_id, require_user_id, get_geocoder
from trilhos.db.session import get_async_db
from trilhos.features.routes import (
    ReverseGeocoder,
    RouteService,
    RouteNotFoundError,
    RouteCreate,
    RouteCreated,
    RouteUpdate,
    RouteRead,
    RouteSummary,
    route_to_gpx,
)

router = APIRouter()


def _service(
    db: AsyncSession = Depends(get_async_db),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
) -> RouteService:
    return RouteService(db, geocoder=geocoder)


@router.post("", response_model=RouteCreated, status_code=201)
async def create_route(
    data: RouteCreate,
    service: RouteService = Depends(_service),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    """
    Create a route when tracking starts.

    The name is generated from the first point when omitted.
    """
    route = await service.create_route(data, user_id)
    return RouteCreated(id=route.id, name=route.name)


@router.get("/active", response_model=RouteRead)
async def get_active_route(
    service: RouteService = Depends(_service),
    user_id: str = Depends(require_user_id),
):
    """Most recent active route of the current user."""
    route = await service.get_active_route(user_id)
    if not route:
        raise HTTPException(status_code=404, detail="No active route")
    return RouteRead.model_validate(route)


@router.get("/history", response_model=list[RouteSummary])
async def get_history(
    service: RouteService = Depends(_service),
    user_id: str = Depends(require_user_id),
):
    """Completed routes of the current user, newest first."""
    routes = await service.get_history(user_id)
    return [RouteSummary.model_validate(r) for r in routes]


@router.get("/activity", response_model=list[RouteSummary])
async def get_activity(service: RouteService = Depends(_service)):
    """Completed routes of all users, newest first."""
    routes = await service.get_activity()
    return [RouteSummary.model_validate(r) for r in routes]


@router.get("/{route_id}", response_model=RouteRead)
async def get_route(route_id: int, service: RouteService = Depends(_service)):
    """Get a route by ID."""
    route = await service.get_route(route_id)
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")
    return RouteRead.model_validate(route)


@router.get("/{route_id}/gpx")
async def export_route_gpx(route_id: int, service: RouteService = Depends(_service)):
    """Download a route as GPX."""
    route = await service.get_route(route_id)
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")
    return Response(
        content=route_to_gpx(route),
        media_type="application/gpx+xml",
        headers={"Content-Disposition": f'attachment; filename="route-{route_id}.gpx"'},
    )


@router.patch("/{route_id}", response_model=RouteRead)
async def update_route(
    route_id: int,
    data: RouteUpdate,
    service: RouteService = Depends(_service),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    """
    Update name, points and/or status.

    Scoped to the owner when the caller is authenticated.
    """
    try:
        route = await service.update_route(route_id, data, owner_id=user_id)
    except RouteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return RouteRead.model_validate(route)


@router.delete("/{route_id}", status_code=204)
async def delete_route(
    route_id: int,
    service: RouteService = Depends(_service),
    user_id: Optional[str] = Depends(get_current_user_id),
):
    """Delete a route (owner-scoped when authenticated)."""
    try:
        await service.delete_route(route_id, owner_id=user_id)
    except RouteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
