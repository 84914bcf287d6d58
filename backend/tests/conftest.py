"""
Shared fixtures.

- samples: LocationSample factories
- session_factory: in-memory SQLite database with the routes table
- FakeRouteStore: in-memory RouteStore with switchable failures
- ManualSource: position source driven by the test
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from trilhos.features.routes.models import Route  # noqa: F401
from trilhos.features.routes.schemas import (
    LocationSample,
    RouteCreated,
    RouteRead,
    RouteSummary,
)
from trilhos.features.tracking.geolocation import PositionSource
from trilhos.features.tracking.stores import RouteStore, RouteStoreError
from trilhos.models.base import Base
from trilhos.shared.constants import RouteStatus
from trilhos.shared.geo import total_distance, duration


# =============================================================================
# Samples
# =============================================================================

START_MS = 1_700_000_000_000


def make_sample(
    lat: float = 38.7223,
    lon: float = -9.1393,
    offset_s: float = 0,
    **kwargs
) -> LocationSample:
    """Sample ``offset_s`` seconds after START_MS."""
    return LocationSample(
        latitude=lat,
        longitude=lon,
        accuracy=kwargs.pop("accuracy", 5.0),
        timestamp=START_MS + int(offset_s * 1000),
        **kwargs
    )


def make_track(count: int, step_deg: float = 0.001, step_s: float = 5) -> list[LocationSample]:
    """Straight northbound track, one sample every ``step_s`` seconds."""
    return [
        make_sample(lat=38.7223 + i * step_deg, offset_s=i * step_s)
        for i in range(count)
    ]


@pytest.fixture
def sample() -> LocationSample:
    return make_sample()


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
async def session_factory():
    """Async session factory over a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# Fake remote store
# =============================================================================

class FakeRouteStore(RouteStore):
    """
    In-memory RouteStore.

    ``failing`` holds operation names that raise RouteStoreError
    ("insert", "update", "delete", "find"); ``fail_all()`` breaks every one.
    ``update_gate`` and ``insert_gate`` (asyncio.Event) hold those calls
    until set; a gated update checks ``failing`` only once released.
    """

    def __init__(self):
        self.routes: dict[int, RouteRead] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []
        self.update_gate: Optional[asyncio.Event] = None
        self.insert_gate: Optional[asyncio.Event] = None
        self.updates_in_flight = 0
        self.max_updates_in_flight = 0
        self._next_id = 1

    def fail_all(self):
        self.failing = {"insert", "update", "delete", "find"}

    def recover(self):
        self.failing = set()

    def _check(self, op: str):
        self.calls.append(op)
        if op in self.failing:
            raise RouteStoreError(f"{op} unavailable")

    def _owned(self, route_id: int, owner_id: Optional[str]) -> RouteRead:
        route = self.routes.get(route_id)
        if route is None or (owner_id is not None and route.user_id != owner_id):
            raise RouteStoreError(f"Route {route_id} not found", status=404)
        return route

    async def insert(self, data, owner_id=None) -> RouteCreated:
        self._check("insert")
        if self.insert_gate is not None:
            await self.insert_gate.wait()
        now = datetime.now(timezone.utc)
        route = RouteRead(
            id=self._next_id,
            user_id=owner_id,
            name=data.name or "Route",
            points=list(data.points),
            total_distance=total_distance(data.points),
            duration=duration(data.points),
            status=data.status,
            created_at=now,
            updated_at=now,
        )
        self.routes[route.id] = route
        self._next_id += 1
        return RouteCreated(id=route.id, name=route.name)

    async def update(self, route_id, data, owner_id=None) -> None:
        self.updates_in_flight += 1
        self.max_updates_in_flight = max(self.max_updates_in_flight, self.updates_in_flight)
        try:
            if self.update_gate is not None:
                await self.update_gate.wait()
            self._check("update")
            route = self._owned(route_id, owner_id)
            changes = data.model_dump(exclude_none=True)
            if data.points is not None:
                changes["points"] = list(data.points)
                changes["total_distance"] = total_distance(data.points)
                changes["duration"] = duration(data.points)
            self.routes[route_id] = route.model_copy(update=changes)
        finally:
            self.updates_in_flight -= 1

    async def delete(self, route_id, owner_id=None) -> None:
        self._check("delete")
        self._owned(route_id, owner_id)
        del self.routes[route_id]

    async def find_active_for_user(self, user_id):
        self._check("find")
        active = [
            r for r in self.routes.values()
            if r.user_id == user_id and r.status == RouteStatus.ACTIVE
        ]
        return active[-1] if active else None

    async def find_by_id(self, route_id):
        self._check("find")
        return self.routes.get(route_id)

    async def find_completed_for_user(self, user_id):
        self._check("find")
        return [
            RouteSummary.model_validate(r.model_dump())
            for r in reversed(list(self.routes.values()))
            if r.user_id == user_id and r.status == RouteStatus.COMPLETED
        ]

    async def find_all_completed(self):
        self._check("find")
        return [
            RouteSummary.model_validate(r.model_dump())
            for r in reversed(list(self.routes.values()))
            if r.status == RouteStatus.COMPLETED
        ]


@pytest.fixture
def store() -> FakeRouteStore:
    return FakeRouteStore()


# =============================================================================
# Fake position source
# =============================================================================

class ManualSource(PositionSource):
    """
    Position source driven by the test.

    ``emit()`` and ``fail()`` call every registered watch.
    """

    def __init__(self, first=None, error=None, hang=False):
        self.first = first or make_sample()
        self.error = error
        self.hang = hang
        self.requested_options = None
        self.watches = {}
        self.cleared = []
        self._next_id = 1

    async def get_current_position(self, options):
        self.requested_options = options
        if self.hang:
            await asyncio.Event().wait()
        if self.error:
            raise self.error
        return self.first

    def watch_position(self, on_position, on_error, options):
        watch_id = self._next_id
        self._next_id += 1
        self.watches[watch_id] = (on_position, on_error, options)
        return watch_id

    def clear_watch(self, watch_id):
        self.cleared.append(watch_id)
        self.watches.pop(watch_id, None)

    def emit(self, sample):
        for on_position, _, _ in list(self.watches.values()):
            on_position(sample)

    def fail(self, error):
        for _, on_error, _ in list(self.watches.values()):
            on_error(error)
