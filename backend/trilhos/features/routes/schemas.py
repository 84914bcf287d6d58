"""
Route schemas.

Pydantic models for location samples and route records. Field names are
snake_case in Python and camelCase on the wire and in stored JSON.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from trilhos.shared.constants import RouteStatus, ROUTE_NAME_MAX_LENGTH


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class LocationSample(CamelModel):
    """One GPS fix. Immutable once created."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    altitude: Optional[float] = None  # meters
    accuracy: float = 0.0  # meters
    altitude_accuracy: Optional[float] = None  # meters
    heading: Optional[float] = None  # degrees 0-360
    speed: Optional[float] = None  # m/s
    timestamp: int  # ms since epoch


class PendingRoute(CamelModel):
    """Route held in the local cache until the remote store confirms it."""

    route_id: Optional[int] = None
    points: list[LocationSample] = Field(default_factory=list)
    name: str
    started_at: int  # ms since epoch
    needs_sync: bool = True


class RouteCreate(CamelModel):
    """Insert request for a new route."""

    name: Optional[str] = Field(default=None, max_length=ROUTE_NAME_MAX_LENGTH)
    points: list[LocationSample] = Field(min_length=1)
    status: RouteStatus = RouteStatus.ACTIVE
    started_at: Optional[int] = None  # ms since epoch, becomes created_at

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None


class RouteUpdate(CamelModel):
    """Partial update. Only fields that are set are written."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=ROUTE_NAME_MAX_LENGTH)
    points: Optional[list[LocationSample]] = None
    status: Optional[RouteStatus] = None


class RouteCreated(CamelModel):
    """Response for route insert."""

    id: int
    name: str


class RouteRead(CamelModel):
    """Stored route."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    user_id: Optional[str] = None
    name: str
    points: list[LocationSample]
    total_distance: float
    duration: int
    status: RouteStatus
    created_at: datetime
    updated_at: datetime


class RouteSummary(CamelModel):
    """Route list item without the point sequence."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    user_id: Optional[str] = None
    name: str
    total_distance: float
    duration: int
    status: RouteStatus
    created_at: datetime
