"""
Tracking session.

Facade wiring the sampler, the reconciler and auto-save together the way
a tracking screen uses them: start, stop, save with a name, discard,
resume an interrupted route.
"""

import logging
from typing import Callable, Optional

from trilhos.config import Settings, settings as default_settings
from trilhos.features.routes.geocoding import ReverseGeocoder
from trilhos.features.routes.schemas import LocationSample
from .autosave import AutoSaveScheduler
from .cache import PendingRouteCache
from .geolocation import GeolocationSampler, PositionOptions, PositionSource
from .reconciler import ReconcilerState, RouteReconciler, SampleOrderPolicy
from .stats import RouteStats, compute_route_stats
from .stores import RouteStore

logger = logging.getLogger(__name__)


class TrackingSession:
    """
    One tracking screen's worth of state.

    Usage:
        session = TrackingSession.from_settings(source, store, current_user_id=lambda: "u1")
        await session.open()
        if session.has_route_to_resume:
            session.resume_route()
        await session.start_tracking()
        ...
        session.stop_tracking()
        await session.save_route("Evening loop")
    """

    def __init__(
        self,
        reconciler: RouteReconciler,
        source: Optional[PositionSource],
        position_options: Optional[PositionOptions] = None,
        initial_timeout: float = 10.0,
        auto_save_interval: float = 30.0,
        auto_save_threshold: int = 10,
    ):
        self.reconciler = reconciler
        self.sampler = GeolocationSampler(
            source,
            on_position=self._on_position,
            on_error=self._on_sampler_error,
            options=position_options,
            initial_timeout=initial_timeout,
        )
        self.autosave = AutoSaveScheduler(
            reconciler.save_route,
            interval_seconds=auto_save_interval,
            change_threshold=auto_save_threshold,
        )
        self.show_save_dialog = False

    @classmethod
    def from_settings(
        cls,
        source: Optional[PositionSource],
        store: RouteStore,
        current_user_id: Callable[[], Optional[str]] = lambda: None,
        geocoder: Optional[ReverseGeocoder] = None,
        cache: Optional[PendingRouteCache] = None,
        config: Settings = default_settings,
    ) -> "TrackingSession":
        """Build a session from application settings."""
        reconciler = RouteReconciler(
            store,
            cache if cache is not None else PendingRouteCache(config.cache_dir),
            current_user_id=current_user_id,
            geocoder=geocoder,
            geocode_timeout=config.geocoder_timeout_seconds,
            clear_cache_on_failed_completion=config.clear_cache_on_failed_completion,
            sample_order_policy=SampleOrderPolicy(config.sample_order_policy),
        )
        options = PositionOptions(
            enable_high_accuracy=config.geolocation_high_accuracy,
            timeout=config.geolocation_watch_timeout_seconds,
            maximum_age=config.geolocation_maximum_age_seconds,
        )
        return cls(
            reconciler,
            source,
            position_options=options,
            initial_timeout=config.geolocation_initial_timeout_seconds,
            auto_save_interval=config.auto_save_interval_seconds,
            auto_save_threshold=config.auto_save_point_threshold,
        )

    # === State ===

    @property
    def is_tracking(self) -> bool:
        return self.sampler.is_tracking

    @property
    def current_position(self) -> Optional[LocationSample]:
        return self.sampler.position

    @property
    def error(self) -> Optional[str]:
        return self.sampler.error

    @property
    def route(self) -> list[LocationSample]:
        return self.reconciler.points

    @property
    def route_name(self) -> str:
        return self.reconciler.route_name

    @property
    def has_route_to_resume(self) -> bool:
        return self.reconciler.has_route_to_resume

    @property
    def is_saving(self) -> bool:
        return self.reconciler.is_saving

    @property
    def stats(self) -> RouteStats:
        return compute_route_stats(self.reconciler.points)

    # === Actions ===

    async def open(self) -> None:
        """Recover an interrupted route, if any."""
        await self.reconciler.reconcile()

    async def start_tracking(self) -> bool:
        """
        Start the sampler and begin (or continue) a route.

        Returns:
            False if no position fix could be obtained
        """
        resuming = self.reconciler.state is ReconcilerState.ACTIVE
        start = await self.sampler.start()
        if start is None:
            return False

        if not resuming:
            await self.reconciler.create_new_route(start)

        if self.sampler.is_tracking:
            self.autosave.start()
        return True

    def stop_tracking(self) -> None:
        """Stop sampling and offer to save the route."""
        self.sampler.stop()
        self.autosave.stop()
        if self.reconciler.points:
            self.show_save_dialog = True

    async def save_route(self, name: str) -> bool:
        """Complete the route under ``name``."""
        success = await self.reconciler.complete_route(name)
        if success:
            self.show_save_dialog = False
        return success

    async def discard_route(self) -> bool:
        """Abandon the route."""
        self.show_save_dialog = False
        self.sampler.stop()
        self.autosave.stop()
        return await self.reconciler.discard_route()

    def resume_route(self) -> None:
        """Continue the recovered route; call start_tracking() next."""
        self.reconciler.resume_route()

    def close_save_dialog(self) -> None:
        self.show_save_dialog = False

    async def close(self) -> None:
        """Stop everything and wait for running saves."""
        self.sampler.stop()
        self.autosave.stop()
        await self.autosave.drain()

    # === Callbacks ===

    def _on_position(self, sample: LocationSample) -> None:
        if self.reconciler.add_point(sample):
            self.autosave.record_change()

    def _on_sampler_error(self, message: str) -> None:
        self.autosave.stop()
