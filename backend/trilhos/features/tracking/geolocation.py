"""
Geolocation sampler.

Turns a position source (a device GPS, a replayed GPX track, ...) into a
stream of LocationSample while tracking is active.

Flow:
1. start(): one-shot fix bounded by the initial timeout
2. on success the continuous watch is registered and every update is
   delivered to the ``on_position`` callback
3. any watch error stops tracking and sets ``error``; there is no retry
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timezone
from pathlib import Path
from typing import Callable, Optional

import gpxpy

from trilhos.features.routes.schemas import LocationSample
from trilhos.shared.constants import GeolocationDefaults

logger = logging.getLogger(__name__)

PositionCallback = Callable[[LocationSample], None]
ErrorCallback = Callable[["GeolocationError"], None]


# =============================================================================
# Errors and options
# =============================================================================

class GeolocationError(Exception):
    """Position request failed. Codes follow the W3C Geolocation API."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class PositionOptions:
    """Options for a fix request or a watch."""

    enable_high_accuracy: bool = GeolocationDefaults.HIGH_ACCURACY
    timeout: float = GeolocationDefaults.WATCH_TIMEOUT_SECONDS  # seconds
    maximum_age: float = GeolocationDefaults.MAXIMUM_AGE_SECONDS  # seconds


# =============================================================================
# Position sources
# =============================================================================

class PositionSource(ABC):
    """
    Continuous position capability.

    Watch callbacks are invoked on the running event loop, one at a time.
    """

    supported: bool = True

    @abstractmethod
    async def get_current_position(self, options: PositionOptions) -> LocationSample:
        """
        One-shot fix.

        Raises:
            GeolocationError: Permission denied, unavailable or timed out
        """

    @abstractmethod
    def watch_position(
        self,
        on_position: PositionCallback,
        on_error: ErrorCallback,
        options: PositionOptions,
    ) -> int:
        """Register a watch and return its id."""

    @abstractmethod
    def clear_watch(self, watch_id: int) -> None:
        """Cancel a watch. Unknown ids are ignored."""


class GPXReplaySource(PositionSource):
    """
    Replays a recorded GPX track as live positions.

    The first track point answers the one-shot fix; the watch then emits
    the remaining points, sleeping the recorded gap divided by ``speedup``.
    A gap longer than the watch timeout is reported as a TIMEOUT error.
    """

    def __init__(self, samples: list[LocationSample], speedup: float = 1.0):
        if not samples:
            raise ValueError("GPX track has no points")
        self.samples = samples
        self.speedup = speedup
        self._tasks: dict[int, asyncio.Task] = {}
        self._next_id = 1

    @classmethod
    def from_file(cls, path: Path, speedup: float = 1.0) -> "GPXReplaySource":
        with open(path, encoding="utf-8") as f:
            gpx = gpxpy.parse(f)
        return cls(samples_from_gpx(gpx), speedup=speedup)

    async def get_current_position(self, options: PositionOptions) -> LocationSample:
        return self.samples[0]

    def watch_position(self, on_position, on_error, options) -> int:
        watch_id = self._next_id
        self._next_id += 1
        task = asyncio.create_task(self._replay(on_position, on_error, options))
        self._tasks[watch_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(watch_id, None))
        return watch_id

    def clear_watch(self, watch_id: int) -> None:
        task = self._tasks.pop(watch_id, None)
        if task:
            task.cancel()

    @property
    def active(self) -> bool:
        """True while any watch is still replaying."""
        return bool(self._tasks)

    async def _replay(self, on_position, on_error, options: PositionOptions):
        previous = self.samples[0]
        for sample in self.samples[1:]:
            gap = max(sample.timestamp - previous.timestamp, 0) / 1000 / self.speedup
            if gap > options.timeout:
                await asyncio.sleep(options.timeout)
                on_error(GeolocationError(GeolocationError.TIMEOUT, "Timeout expired"))
                return
            await asyncio.sleep(gap)
            on_position(sample)
            previous = sample
        logger.info(f"GPX replay finished ({len(self.samples)} points)")


def samples_from_gpx(gpx: "gpxpy.gpx.GPX") -> list[LocationSample]:
    """Track points of a parsed GPX document as samples."""
    samples = []
    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                if point.time is None:
                    continue
                moment = point.time
                if moment.tzinfo is None:
                    moment = moment.replace(tzinfo=timezone.utc)
                samples.append(LocationSample(
                    latitude=point.latitude,
                    longitude=point.longitude,
                    altitude=point.elevation,
                    accuracy=point.horizontal_dilution or 0.0,
                    speed=point.speed,
                    timestamp=int(moment.timestamp() * 1000),
                ))
    return samples


# =============================================================================
# Sampler
# =============================================================================

class GeolocationSampler:
    """
    Start/stop lifecycle over a PositionSource.

    Exposes ``position`` (last sample), ``is_tracking`` and ``error``.

    Usage:
        sampler = GeolocationSampler(source, on_position=reconciler.add_point)
        first = await sampler.start()
        ...
        sampler.stop()
    """

    def __init__(
        self,
        source: Optional[PositionSource],
        on_position: Optional[PositionCallback] = None,
        on_error: Optional[Callable[[str], None]] = None,
        options: Optional[PositionOptions] = None,
        initial_timeout: float = GeolocationDefaults.INITIAL_TIMEOUT_SECONDS,
    ):
        self.source = source
        self.on_position = on_position
        self.on_error = on_error
        self.options = options or PositionOptions()
        self.initial_timeout = initial_timeout

        self.position: Optional[LocationSample] = None
        self.error: Optional[str] = None
        self.is_tracking = False
        self._watch_id: Optional[int] = None

    async def start(self) -> Optional[LocationSample]:
        """
        Get an initial fix and begin watching.

        Returns:
            The first sample, or None if tracking could not start
            (``error`` then holds the reason)
        """
        if self.source is None or not self.source.supported:
            self._fail("Geolocation is not supported on this device")
            return None

        self.error = None
        initial_options = PositionOptions(
            enable_high_accuracy=self.options.enable_high_accuracy,
            timeout=self.initial_timeout,
            maximum_age=0.0,
        )

        try:
            start_sample = await asyncio.wait_for(
                self.source.get_current_position(initial_options),
                timeout=self.initial_timeout,
            )
        except GeolocationError as e:
            self._fail(f"Error getting position: {e.message}")
            return None
        except asyncio.TimeoutError:
            self._fail("Error getting position: Timeout expired")
            return None

        self.position = start_sample
        self.is_tracking = True
        if self.on_position:
            self.on_position(start_sample)

        self._watch_id = self.source.watch_position(
            self._handle_position,
            self._handle_error,
            self.options,
        )
        logger.info("Geolocation tracking started")
        return start_sample

    def stop(self) -> None:
        """Cancel the watch. Safe to call when not tracking or from a callback."""
        watch_id, self._watch_id = self._watch_id, None
        if watch_id is not None and self.source is not None:
            self.source.clear_watch(watch_id)
            logger.info("Geolocation tracking stopped")
        self.is_tracking = False

    def _handle_position(self, sample: LocationSample) -> None:
        if not self.is_tracking:
            return
        self.position = sample
        if self.on_position:
            self.on_position(sample)

    def _handle_error(self, error: GeolocationError) -> None:
        if not self.is_tracking:
            return
        self.stop()
        self._fail(f"Error: {error.message}")

    def _fail(self, message: str) -> None:
        self.error = message
        self.is_tracking = False
        logger.warning(message)
        if self.on_error:
            self.on_error(message)
