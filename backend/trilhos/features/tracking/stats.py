"""
Route statistics.

Recomputed from the full point sequence on every call, never maintained
incrementally.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from trilhos.features.routes.schemas import LocationSample
from trilhos.shared.formatters import format_distance, format_duration, format_speed
from trilhos.shared.geo import total_distance, duration


@dataclass(frozen=True)
class RouteStats:
    """Display-ready aggregates of a point sequence."""

    total_distance: float  # meters
    duration: int  # milliseconds
    point_count: int
    average_speed: float  # m/s
    start_time: Optional[int]  # ms since epoch
    end_time: Optional[int]  # ms since epoch, needs >= 2 points

    def formatted(self) -> dict[str, str]:
        return {
            "distance": format_distance(self.total_distance),
            "duration": format_duration(self.duration),
            "average_speed": format_speed(self.average_speed),
            "points": str(self.point_count),
        }


def compute_route_stats(points: Sequence[LocationSample]) -> RouteStats:
    """Aggregate distance, duration, speed and time bounds."""
    distance_m = total_distance(points)
    duration_ms = duration(points)

    duration_s = duration_ms / 1000
    average_speed = distance_m / duration_s if duration_s > 0 else 0.0

    return RouteStats(
        total_distance=distance_m,
        duration=duration_ms,
        point_count=len(points),
        average_speed=average_speed,
        start_time=points[0].timestamp if len(points) > 0 else None,
        end_time=points[-1].timestamp if len(points) > 1 else None,
    )
