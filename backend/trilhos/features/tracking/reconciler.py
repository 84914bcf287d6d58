"""
Route persistence reconciler.

Owns the in-memory route being tracked and decides where it is persisted:
the remote RouteStore first, the local PendingRouteCache as fallback.

States:
    IDLE    no route being tracked (a route to resume may be loaded)
    ACTIVE  tracking; samples are appended
    SAVING  complete/discard in flight

Public operations never raise. Remote failures are logged and reported
as False (or degrade to the local cache where the operation allows it).
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from trilhos.features.routes.geocoding import (
    ReverseGeocoder,
    build_route_name,
    generate_route_name,
)
from trilhos.features.routes.schemas import (
    LocationSample,
    PendingRoute,
    RouteCreate,
    RouteRead,
    RouteUpdate,
)
from trilhos.shared.constants import RouteStatus, ROUTE_NAME_MAX_LENGTH
from trilhos.shared.formatters import format_distance, format_duration
from trilhos.shared.geo import total_distance, duration
from .cache import PendingRouteCache
from .stores import RouteStore, RouteStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReconcilerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    SAVING = "saving"


class SampleOrderPolicy(str, Enum):
    """What add_point does with a sample older than the last one."""

    PASS_THROUGH = "pass_through"
    REJECT = "reject"


def _anonymous() -> Optional[str]:
    return None


class RouteReconciler:
    """
    Authoritative in-memory route plus remote/local persistence.

    Usage:
        reconciler = RouteReconciler(store, cache, current_user_id=lambda: "u1")
        await reconciler.reconcile()
        await reconciler.create_new_route(first_sample)
        reconciler.add_point(sample)
        await reconciler.save_route()
        await reconciler.complete_route("Morning walk")
    """

    def __init__(
        self,
        store: RouteStore,
        cache: PendingRouteCache,
        current_user_id: Callable[[], Optional[str]] = _anonymous,
        geocoder: Optional[ReverseGeocoder] = None,
        geocode_timeout: float = 5.0,
        clear_cache_on_failed_completion: bool = True,
        sample_order_policy: SampleOrderPolicy = SampleOrderPolicy.PASS_THROUGH,
    ):
        self.store = store
        self.cache = cache
        self.current_user_id = current_user_id
        self.geocoder = geocoder
        self.geocode_timeout = geocode_timeout
        self.clear_cache_on_failed_completion = clear_cache_on_failed_completion
        self.sample_order_policy = SampleOrderPolicy(sample_order_policy)

        self.state = ReconcilerState.IDLE
        self.route_id: Optional[int] = None
        self.route_name: str = ""
        self.started_at: Optional[int] = None
        self.has_route_to_resume = False
        self.is_saving = False

        self._points: list[LocationSample] = []
        self._save_in_flight = False
        self._save_idle = asyncio.Event()
        self._save_idle.set()
        # Bumped whenever the tracked route is replaced or dropped
        self._generation = 0
        self._reconciled = False

    # =========================================================================
    # Exposed state
    # =========================================================================

    @property
    def points(self) -> list[LocationSample]:
        """Snapshot of the current point sequence."""
        return list(self._points)

    @property
    def has_route(self) -> bool:
        return bool(self._points) and self.state is not ReconcilerState.IDLE

    # =========================================================================
    # Reconciliation
    # =========================================================================

    async def reconcile(self) -> None:
        """
        Recover an interrupted route. Runs once per reconciler.

        1. An active remote route of the current user is adopted.
        2. Otherwise a cached PendingRoute flagged needs-sync is pushed to
           the remote store; it stays cached if that fails.
        Either way the route is offered for resume, not resumed.
        """
        if self._reconciled:
            return
        self._reconciled = True

        user_id = self.current_user_id()
        pending = self.cache.load()

        if user_id:
            ok, route = await self._remote(
                "find active route",
                self.store.find_active_for_user(user_id),
            )
            if ok and route is not None:
                self._adopt_remote(route)
                if pending and pending.needs_sync and pending.route_id == route.id:
                    await self._merge_cached_points(pending)
                return

        if pending is None or not pending.needs_sync:
            return

        self._adopt_pending(pending)
        if await self._sync_pending(pending):
            logger.info(f"Synced pending route as route {self.route_id}")
        else:
            logger.warning("Pending route could not be synced, keeping it cached")

    def _adopt_remote(self, route: RouteRead) -> None:
        self.route_id = route.id
        self.route_name = route.name
        self._points = list(route.points)
        self.started_at = (
            route.points[0].timestamp if route.points
            else int(route.created_at.timestamp() * 1000)
        )
        self.has_route_to_resume = True
        self.state = ReconcilerState.IDLE
        logger.info(f"Found active route {route.id} ({len(route.points)} points) to resume")

    def _adopt_pending(self, pending: PendingRoute) -> None:
        self.route_id = pending.route_id
        self.route_name = pending.name
        self._points = list(pending.points)
        self.started_at = pending.started_at
        self.has_route_to_resume = True
        self.state = ReconcilerState.IDLE

    async def _merge_cached_points(self, pending: PendingRoute) -> None:
        """Cached copy of the adopted route has points the remote never got."""
        if len(pending.points) <= len(self._points):
            self.cache.clear()
            return
        self._points = list(pending.points)
        ok, _ = await self._remote(
            f"push cached points to route {self.route_id}",
            self.store.update(self.route_id, RouteUpdate(points=self.points), self.current_user_id()),
        )
        if ok:
            self.cache.clear()

    async def _sync_pending(self, pending: PendingRoute) -> bool:
        """Push a cached route to the remote store. Adopts the id on success."""
        owner_id = self.current_user_id()

        if pending.route_id is not None:
            try:
                await self.store.update(pending.route_id, RouteUpdate(points=pending.points), owner_id)
            except RouteStoreError as e:
                if e.status != 404:
                    logger.error(f"Failed to sync pending route {pending.route_id}: {e}")
                    return False
                # Remote copy is gone, store the cached one as a new route
                logger.warning(f"Pending route {pending.route_id} missing remotely, re-inserting")
                self.route_id = None
            except Exception as e:
                logger.error(f"Failed to sync pending route {pending.route_id}: {e}")
                return False
            else:
                self.cache.clear()
                return True

        if not pending.points:
            return False
        ok, created = await self._remote(
            "insert pending route",
            self.store.insert(
                RouteCreate(name=pending.name, points=pending.points, started_at=pending.started_at),
                owner_id,
            ),
        )
        if not ok:
            return False
        self.route_id = created.id
        self.route_name = created.name
        self.cache.clear()
        return True

    # =========================================================================
    # Operations
    # =========================================================================

    async def create_new_route(self, start: LocationSample) -> bool:
        """
        Start a new route at ``start``.

        Tries a remote insert; on failure the route lives in the local
        cache until a later save or reconciliation syncs it. Never fails.
        """
        self._generation += 1
        self._points = [start]
        self.route_id = None
        self.started_at = start.timestamp
        self.has_route_to_resume = False
        self.state = ReconcilerState.ACTIVE
        self.route_name = await self._generate_name(start)

        ok, created = await self._remote(
            "create route",
            self.store.insert(
                RouteCreate(name=self.route_name, points=[start], started_at=start.timestamp),
                self.current_user_id(),
            ),
        )
        if ok:
            self.route_id = created.id
            self.route_name = created.name
            logger.info(f"Created route {created.id}: {created.name}")
        else:
            self._mirror_to_cache(self.points)
            logger.warning("Remote store unavailable, route kept in local cache")
        return True

    def add_point(self, sample: LocationSample) -> bool:
        """
        Append a sample to the in-memory route.

        Returns:
            False if no route is being tracked or the sample was rejected
        """
        if self.state is ReconcilerState.IDLE:
            logger.debug("Ignoring sample, no route being tracked")
            return False

        if (
            self.sample_order_policy is SampleOrderPolicy.REJECT
            and self._points
            and sample.timestamp < self._points[-1].timestamp
        ):
            logger.warning(
                f"Rejected out-of-order sample ({sample.timestamp} < {self._points[-1].timestamp})"
            )
            return False

        self._points.append(sample)
        return True

    async def save_route(self) -> bool:
        """
        Persist the current points (auto-save).

        A call made while another save is in flight does nothing. On
        remote failure the full point sequence is mirrored to the cache,
        unless the route was discarded or replaced while the save ran.
        """
        if self._save_in_flight:
            logger.debug("Save already in flight, skipping")
            return False
        if self.state is not ReconcilerState.ACTIVE or not self._points:
            return False

        self._save_in_flight = True
        self._save_idle.clear()
        generation = self._generation
        try:
            points = self.points
            logger.debug(
                f"Saving route {self.route_id}: {len(points)} points, "
                f"{format_distance(total_distance(points))}, {format_duration(duration(points))}"
            )

            if self.route_id is None:
                ok = await self._sync_local_route(points, generation)
            else:
                ok, _ = await self._remote(
                    f"save route {self.route_id}",
                    self.store.update(self.route_id, RouteUpdate(points=points), self.current_user_id()),
                )

            if generation != self._generation:
                logger.debug("Route changed while saving, dropping save result")
                return False
            if not ok:
                self._mirror_to_cache(points)
            return ok
        finally:
            self._save_in_flight = False
            self._save_idle.set()

    async def complete_route(self, name: str) -> bool:
        """
        Finalize the route with a user-confirmed name.

        Waits for an auto-save that is still running, so a route that only
        exists locally is inserted exactly once before it is finalized.
        The local cache is cleared on success, and also on failure unless
        ``clear_cache_on_failed_completion`` is False (then it keeps the
        latest points for a later retry).
        """
        name = (name or "").strip()
        if not name or len(name) > ROUTE_NAME_MAX_LENGTH:
            logger.warning("Route name must be 1-255 characters")
            return False
        if self.is_saving or not self._points or self.state is ReconcilerState.IDLE:
            return False

        previous_state = self.state
        self.state = ReconcilerState.SAVING
        self.is_saving = True
        await self._save_idle.wait()
        points = self.points
        success = False

        try:
            if self.route_id is None:
                await self._sync_local_route(points, self._generation)

            if self.route_id is not None:
                success, _ = await self._remote(
                    f"complete route {self.route_id}",
                    self.store.update(
                        self.route_id,
                        RouteUpdate(name=name, points=points, status=RouteStatus.COMPLETED),
                        self.current_user_id(),
                    ),
                )
        finally:
            if success or self.clear_cache_on_failed_completion:
                self.cache.clear()
            else:
                self._mirror_to_cache(points)
            self.is_saving = False

        if success:
            logger.info(
                f"Completed route {self.route_id} '{name}': "
                f"{format_distance(total_distance(points))} in {format_duration(duration(points))}"
            )
            self.route_name = name
            self.reset()
        else:
            self.state = previous_state
        return success

    async def discard_route(self) -> bool:
        """
        Abandon the route.

        The cache and in-memory state are cleared whatever the remote
        outcome. A save still running finishes against the dropped route
        and leaves the cache alone. Returns False only if the remote
        update failed.
        """
        self._generation += 1
        self.state = ReconcilerState.SAVING
        self.is_saving = True
        ok = True
        try:
            if self.route_id is not None:
                ok, _ = await self._remote(
                    f"abandon route {self.route_id}",
                    self.store.update(
                        self.route_id,
                        RouteUpdate(status=RouteStatus.ABANDONED),
                        self.current_user_id(),
                    ),
                )
        finally:
            self.cache.clear()
            self._points = []
            self.route_id = None
            self.route_name = ""
            self.started_at = None
            self.has_route_to_resume = False
            self.is_saving = False
            self.state = ReconcilerState.IDLE
        return ok

    def resume_route(self) -> None:
        """
        Accept the route offered by reconciliation.

        Does not start the sampler; the caller starts it so new samples
        append to the resumed sequence.
        """
        self.has_route_to_resume = False
        if self._points:
            self.state = ReconcilerState.ACTIVE

    def reset(self) -> None:
        """Forget the route identity but keep the points for display."""
        self._generation += 1
        self.route_id = None
        self.route_name = ""
        self.started_at = None
        self.has_route_to_resume = False
        self.state = ReconcilerState.IDLE

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _remote(self, action: str, call: Awaitable[T]) -> tuple[bool, Optional[T]]:
        """Await a store call, converting any failure into (False, None)."""
        try:
            return True, await call
        except RouteStoreError as e:
            logger.error(f"Failed to {action}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error trying to {action}: {e}")
        return False, None

    async def _generate_name(self, start: LocationSample) -> str:
        """Geocoded name, bounded by ``geocode_timeout``."""
        try:
            return await asyncio.wait_for(
                generate_route_name(self.geocoder, start.latitude, start.longitude),
                timeout=self.geocode_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Reverse geocoding timed out, using timestamp name")
        except Exception as e:
            logger.warning(f"Reverse geocoding failed, using timestamp name: {e}")
        return build_route_name(None, datetime.now())

    async def _sync_local_route(self, points: list[LocationSample], generation: int) -> bool:
        """
        Insert a local-only route remotely and adopt its id.

        If the route was dropped while the insert ran, the new remote copy
        is marked abandoned instead of adopted.
        """
        owner_id = self.current_user_id()
        ok, created = await self._remote(
            "sync local route",
            self.store.insert(
                RouteCreate(name=self.route_name, points=points, started_at=self.started_at),
                owner_id,
            ),
        )
        if not ok:
            return False
        if generation != self._generation:
            logger.info(f"Route dropped during sync, abandoning remote copy {created.id}")
            await self._remote(
                f"abandon route {created.id}",
                self.store.update(created.id, RouteUpdate(status=RouteStatus.ABANDONED), owner_id),
            )
            return False
        self.route_id = created.id
        self.cache.clear()
        logger.info(f"Local route synced as route {created.id}")
        return True

    def _mirror_to_cache(self, points: list[LocationSample]) -> None:
        self.cache.save(PendingRoute(
            route_id=self.route_id,
            points=points,
            name=self.route_name or build_route_name(None),
            started_at=self.started_at if self.started_at is not None else points[0].timestamp,
            needs_sync=True,
        ))
