"""
Route model.

Stores tracked routes: ordered GPS samples plus derived metrics.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Float, Integer, JSON

from trilhos.models.base import Base
from trilhos.shared.constants import RouteStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Route(Base):
    """
    Tracked route.

    total_distance (m) and duration (ms) are denormalized from ``points``
    and rewritten whenever the points change.
    """

    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owner (nullable: anonymous routes)
    user_id = Column(String(36), index=True, nullable=True)

    name = Column(String(255), nullable=False)
    points = Column(JSON, nullable=False, default=list)  # list of LocationSample dicts

    # Derived metrics
    total_distance = Column(Float, nullable=False, default=0.0)
    duration = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=RouteStatus.ACTIVE.value, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Route {self.id} ({self.name}, {self.status})>"
