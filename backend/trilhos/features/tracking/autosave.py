"""
Auto-save scheduler.

Persists the in-progress route without blocking the sampler:
- every ``interval_seconds`` if anything changed since the last save
- immediately once ``change_threshold`` changes have accumulated

Triggers that come due while a save is in flight are dropped, not queued.
The change counter only goes down after a save that reports success.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from trilhos.shared.constants import AutoSaveDefaults

logger = logging.getLogger(__name__)


class AutoSaveScheduler:
    """
    Interval and threshold driven saves.

    Usage:
        scheduler = AutoSaveScheduler(reconciler.save_route)
        scheduler.start()
        scheduler.record_change()  # on every new sample
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        save: Callable[[], Awaitable[bool]],
        interval_seconds: float = AutoSaveDefaults.INTERVAL_SECONDS,
        change_threshold: int = AutoSaveDefaults.POINT_THRESHOLD,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self._save = save
        self.interval_seconds = interval_seconds
        self.change_threshold = change_threshold
        self.on_error = on_error

        self.enabled = False
        self.is_saving = False
        self.changes_since_last_save = 0
        self.last_save_time: Optional[float] = None  # epoch seconds of last success

        self._task: Optional[asyncio.Task] = None
        # Keep strong references to running saves to prevent GC
        self._save_tasks: set[asyncio.Task] = set()

    def start(self) -> None:
        """Enable saving and start the interval loop."""
        if self.enabled:
            return
        self.enabled = True
        if self.last_save_time is None:
            self.last_save_time = time.time()
        self._task = asyncio.create_task(self._run_loop())
        logger.debug("Auto-save enabled")

    def stop(self) -> None:
        """
        Disable saving and cancel the interval loop.

        A save already in flight runs to completion.
        """
        self.enabled = False
        if self._task:
            self._task.cancel()
            self._task = None
        logger.debug("Auto-save disabled")

    def record_change(self, count: int = 1) -> None:
        """Count new changes and save right away once the threshold is hit."""
        self.changes_since_last_save += count
        if self.enabled and self.changes_since_last_save >= self.change_threshold:
            self._trigger()

    async def save_now(self) -> bool:
        """
        Save immediately.

        Returns:
            True if the save reported success, False if it failed, raised
            or was skipped because another save was in flight
        """
        if self.is_saving:
            logger.debug("Auto-save skipped, save in flight")
            return False

        self.is_saving = True
        captured = self.changes_since_last_save
        try:
            success = await self._save()
        except Exception as e:
            logger.error(f"Auto-save failed: {e}")
            if self.on_error:
                self.on_error(e)
            return False
        finally:
            self.is_saving = False

        if not success:
            logger.debug("Auto-save reported failure, will retry")
            return False

        self.last_save_time = time.time()
        # Changes recorded while the save was running still need saving
        self.changes_since_last_save = max(self.changes_since_last_save - captured, 0)
        if self.enabled and self.changes_since_last_save >= self.change_threshold:
            self._trigger()
        return True

    def _trigger(self) -> None:
        if self.is_saving:
            return
        task = asyncio.create_task(self.save_now())
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)

    async def _run_loop(self) -> None:
        """Interval loop. Saves run as their own tasks so stop() never cancels one."""
        while self.enabled:
            await asyncio.sleep(self.interval_seconds)
            if self.changes_since_last_save > 0:
                self._trigger()

    async def drain(self) -> None:
        """Wait for saves that are still running."""
        if self._save_tasks:
            await asyncio.gather(*list(self._save_tasks), return_exceptions=True)
