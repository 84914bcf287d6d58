"""
Route repository.

Data access layer for the routes table. Mutations take an optional
``owner_id``: when given, only a route owned by that user matches.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trilhos.shared.constants import RouteStatus
from trilhos.shared.repository import BaseRepository
from .models import Route


class RouteRepository(BaseRepository[Route]):
    """Repository for Route operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Route)

    @staticmethod
    def _scope(route_id: int, owner_id: Optional[str]) -> dict:
        filters = {"id": route_id}
        if owner_id is not None:
            filters["user_id"] = owner_id
        return filters

    async def update_route(
        self,
        route_id: int,
        owner_id: Optional[str] = None,
        **values
    ) -> int:
        """
        Update a route, scoped to its owner when ``owner_id`` is given.

        Args:
            route_id: Route ID
            owner_id: Current user ID, or None for an unscoped update
            **values: Column values to set

        Returns:
            Number of rows updated (0 or 1)
        """
        values.setdefault("updated_at", datetime.now(timezone.utc))
        return await self.update_where(self._scope(route_id, owner_id), **values)

    async def delete_route(self, route_id: int, owner_id: Optional[str] = None) -> int:
        """
        Delete a route, scoped to its owner when ``owner_id`` is given.

        Returns:
            Number of rows deleted (0 or 1)
        """
        return await self.delete_where(**self._scope(route_id, owner_id))

    async def get_active_for_user(self, user_id: str) -> Route | None:
        """
        Get the most recent active route of a user.

        Args:
            user_id: Owner ID

        Returns:
            Newest active route, None if the user has none
        """
        result = await self.db.execute(
            select(Route)
            .where(Route.user_id == user_id)
            .where(Route.status == RouteStatus.ACTIVE.value)
            .order_by(Route.created_at.desc(), Route.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_completed_for_user(self, user_id: str) -> list[Route]:
        """Completed routes of a user, newest first."""
        result = await self.db.execute(
            select(Route)
            .where(Route.user_id == user_id)
            .where(Route.status == RouteStatus.COMPLETED.value)
            .order_by(Route.created_at.desc(), Route.id.desc())
        )
        return list(result.scalars().all())

    async def get_all_completed(self) -> list[Route]:
        """Completed routes of all users (activity feed), newest first."""
        result = await self.db.execute(
            select(Route)
            .where(Route.status == RouteStatus.COMPLETED.value)
            .order_by(Route.created_at.desc(), Route.id.desc())
        )
        return list(result.scalars().all())
