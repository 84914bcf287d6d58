"""
Remote route stores.

``RouteStore`` is what the reconciler talks to. Two implementations:
- DatabaseRouteStore: in-process, through RouteService and a session factory
- ApiRouteStore: over HTTP against the /api/v1/routes endpoints

Every failure (unreachable backend, database error, missing route) is
raised as RouteStoreError. Mutations are scoped to ``owner_id`` when one
is given and unscoped otherwise.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from trilhos.config import settings
from trilhos.features.routes import (
    ReverseGeocoder,
    RouteService,
    RouteNotFoundError,
    RouteCreate,
    RouteCreated,
    RouteUpdate,
    RouteRead,
    RouteSummary,
)

logger = logging.getLogger(__name__)


class RouteStoreError(Exception):
    """Remote store operation failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class RouteStore(ABC):
    """Remote route persistence used by the tracking client."""

    @abstractmethod
    async def insert(self, data: RouteCreate, owner_id: Optional[str] = None) -> RouteCreated:
        """Insert a route and return its id and final name."""

    @abstractmethod
    async def update(
        self,
        route_id: int,
        data: RouteUpdate,
        owner_id: Optional[str] = None
    ) -> None:
        """Apply a partial update."""

    @abstractmethod
    async def delete(self, route_id: int, owner_id: Optional[str] = None) -> None:
        """Delete a route."""

    @abstractmethod
    async def find_active_for_user(self, user_id: str) -> Optional[RouteRead]:
        """Newest active route of a user."""

    @abstractmethod
    async def find_by_id(self, route_id: int) -> Optional[RouteRead]:
        """Route by id."""

    @abstractmethod
    async def find_completed_for_user(self, user_id: str) -> list[RouteSummary]:
        """Completed routes of a user, newest first."""

    @abstractmethod
    async def find_all_completed(self) -> list[RouteSummary]:
        """Completed routes of everyone, newest first."""

    async def close(self) -> None:
        """Release resources."""


# =============================================================================
# Database-backed store
# =============================================================================

class DatabaseRouteStore(RouteStore):
    """
    Store that writes straight to the database.

    Opens a fresh session per operation from ``session_factory``
    (an ``async_sessionmaker``).
    """

    def __init__(self, session_factory, geocoder: Optional[ReverseGeocoder] = None):
        self._session_factory = session_factory
        self._geocoder = geocoder

    async def insert(self, data, owner_id=None) -> RouteCreated:
        try:
            async with self._session_factory() as db:
                route = await RouteService(db, self._geocoder).create_route(data, owner_id)
                return RouteCreated(id=route.id, name=route.name)
        except SQLAlchemyError as e:
            raise RouteStoreError(f"Insert failed: {e}") from e

    async def update(self, route_id, data, owner_id=None) -> None:
        try:
            async with self._session_factory() as db:
                await RouteService(db).update_route(route_id, data, owner_id)
        except RouteNotFoundError as e:
            raise RouteStoreError(str(e), status=404) from e
        except SQLAlchemyError as e:
            raise RouteStoreError(f"Update of route {route_id} failed: {e}") from e

    async def delete(self, route_id, owner_id=None) -> None:
        try:
            async with self._session_factory() as db:
                await RouteService(db).delete_route(route_id, owner_id)
        except RouteNotFoundError as e:
            raise RouteStoreError(str(e), status=404) from e
        except SQLAlchemyError as e:
            raise RouteStoreError(f"Delete of route {route_id} failed: {e}") from e

    async def find_active_for_user(self, user_id) -> Optional[RouteRead]:
        try:
            async with self._session_factory() as db:
                route = await RouteService(db).get_active_route(user_id)
                return RouteRead.model_validate(route) if route else None
        except SQLAlchemyError as e:
            raise RouteStoreError(f"Active route lookup failed: {e}") from e

    async def find_by_id(self, route_id) -> Optional[RouteRead]:
        try:
            async with self._session_factory() as db:
                route = await RouteService(db).get_route(route_id)
                return RouteRead.model_validate(route) if route else None
        except SQLAlchemyError as e:
            raise RouteStoreError(f"Route lookup failed: {e}") from e

    async def find_completed_for_user(self, user_id) -> list[RouteSummary]:
        try:
            async with self._session_factory() as db:
                routes = await RouteService(db).get_history(user_id)
                return [RouteSummary.model_validate(r) for r in routes]
        except SQLAlchemyError as e:
            raise RouteStoreError(f"History lookup failed: {e}") from e

    async def find_all_completed(self) -> list[RouteSummary]:
        try:
            async with self._session_factory() as db:
                routes = await RouteService(db).get_activity()
                return [RouteSummary.model_validate(r) for r in routes]
        except SQLAlchemyError as e:
            raise RouteStoreError(f"Activity lookup failed: {e}") from e


# =============================================================================
# HTTP-backed store
# =============================================================================

class ApiRouteStore(RouteStore):
    """
    Store that talks to the Trilhos API.

    Usage:
        store = ApiRouteStore("http://localhost:8000/api/v1")
        created = await store.insert(RouteCreate(points=[start]), owner_id="u1")
        await store.close()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @staticmethod
    def _headers(owner_id: Optional[str]) -> dict[str, str]:
        return {"X-User-Id": owner_id} if owner_id else {}

    async def _request(
        self,
        method: str,
        path: str,
        owner_id: Optional[str] = None,
        json: Any = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/routes{path}"
        try:
            response = await self._get_client().request(
                method, url, json=json, headers=self._headers(owner_id)
            )
        except httpx.HTTPError as e:
            raise RouteStoreError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except (ValueError, AttributeError):
                detail = response.text
            raise RouteStoreError(
                f"{method} {url} returned {response.status_code}: {detail}",
                status=response.status_code,
            )
        return response

    async def _get_optional(self, path: str, owner_id: Optional[str] = None) -> Optional[dict]:
        """GET that maps 404 to None."""
        try:
            response = await self._request("GET", path, owner_id)
        except RouteStoreError as e:
            if e.status == 404:
                return None
            raise
        return response.json()

    async def insert(self, data, owner_id=None) -> RouteCreated:
        response = await self._request(
            "POST", "", owner_id,
            json=data.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return RouteCreated.model_validate(response.json())

    async def update(self, route_id, data, owner_id=None) -> None:
        await self._request(
            "PATCH", f"/{route_id}", owner_id,
            json=data.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    async def delete(self, route_id, owner_id=None) -> None:
        await self._request("DELETE", f"/{route_id}", owner_id)

    async def find_active_for_user(self, user_id) -> Optional[RouteRead]:
        data = await self._get_optional("/active", owner_id=user_id)
        return RouteRead.model_validate(data) if data else None

    async def find_by_id(self, route_id) -> Optional[RouteRead]:
        data = await self._get_optional(f"/{route_id}")
        return RouteRead.model_validate(data) if data else None

    async def find_completed_for_user(self, user_id) -> list[RouteSummary]:
        response = await self._request("GET", "/history", owner_id=user_id)
        return [RouteSummary.model_validate(r) for r in response.json()]

    async def find_all_completed(self) -> list[RouteSummary]:
        response = await self._request("GET", "/activity")
        return [RouteSummary.model_validate(r) for r in response.json()]

    async def close(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
