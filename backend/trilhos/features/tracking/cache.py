"""
Local durable cache for a route the remote store has not confirmed.

Single slot: one PendingRoute stored as JSON under a fixed key. Without a
cache directory every operation is a no-op and ``load()`` returns None.
Storage failures are logged and swallowed; callers never see them.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from trilhos.features.routes.schemas import LocationSample, PendingRoute
from trilhos.shared.constants import PENDING_ROUTE_KEY

logger = logging.getLogger(__name__)


class PendingRouteCache:
    """
    File-backed pending route slot.

    Usage:
        cache = PendingRouteCache(Path("~/.trilhos").expanduser())
        cache.save(PendingRoute(name="Route", started_at=0, points=[...]))
        pending = cache.load()
    """

    def __init__(self, directory: Optional[Path], key: str = PENDING_ROUTE_KEY):
        self.directory = Path(directory) if directory is not None else None
        self.key = key

    @property
    def enabled(self) -> bool:
        return self.directory is not None

    @property
    def path(self) -> Optional[Path]:
        if self.directory is None:
            return None
        return self.directory / f"{self.key}.json"

    def save(self, pending: PendingRoute) -> None:
        """Overwrite the slot."""
        if not self.enabled:
            return
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(pending.model_dump_json(by_alias=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save pending route: {e}")

    def load(self) -> Optional[PendingRoute]:
        """Read the slot, None if empty, disabled or unreadable."""
        if not self.enabled:
            return None
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Failed to read pending route: {e}")
            return None

        try:
            return PendingRoute.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error(f"Failed to parse pending route: {e}")
            return None

    def clear(self) -> None:
        """Empty the slot."""
        if not self.enabled:
            return
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to clear pending route: {e}")

    def update_points(self, points: list[LocationSample]) -> None:
        """Replace the points of an existing pending route and flag it for sync."""
        pending = self.load()
        if pending is None:
            return
        self.save(pending.model_copy(update={"points": list(points), "needs_sync": True}))

    def has_pending_sync(self) -> bool:
        pending = self.load()
        return pending is not None and pending.needs_sync
