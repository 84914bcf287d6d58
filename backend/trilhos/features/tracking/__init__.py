"""
Live route tracking.

Usage:
    from trilhos.features.tracking import TrackingSession, ApiRouteStore, GPXReplaySource

Components:
- GeolocationSampler / PositionSource / GPXReplaySource: sample stream
- PendingRouteCache: single-slot local fallback
- RouteStore / DatabaseRouteStore / ApiRouteStore: remote persistence
- RouteReconciler: in-memory route and remote/local reconciliation
- AutoSaveScheduler: interval and threshold saves
- RouteStats / compute_route_stats: derived metrics
- TrackingSession: facade over all of the above
"""

from .autosave import AutoSaveScheduler
from .cache import PendingRouteCache
from .geolocation import (
    GeolocationError,
    GeolocationSampler,
    GPXReplaySource,
    PositionOptions,
    PositionSource,
    samples_from_gpx,
)
from .reconciler import ReconcilerState, RouteReconciler, SampleOrderPolicy
from .session import TrackingSession
from .stats import RouteStats, compute_route_stats
from .stores import ApiRouteStore, DatabaseRouteStore, RouteStore, RouteStoreError

__all__ = [
    # Sampling
    "GeolocationError",
    "GeolocationSampler",
    "GPXReplaySource",
    "PositionOptions",
    "PositionSource",
    "samples_from_gpx",
    # Persistence
    "PendingRouteCache",
    "RouteStore",
    "RouteStoreError",
    "DatabaseRouteStore",
    "ApiRouteStore",
    "RouteReconciler",
    "ReconcilerState",
    "SampleOrderPolicy",
    # Scheduling and stats
    "AutoSaveScheduler",
    "RouteStats",
    "compute_route_stats",
    # Facade
    "TrackingSession",
]
