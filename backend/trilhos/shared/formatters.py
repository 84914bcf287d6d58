"""
Formatting utilities for display.

Used by the API, the CLI and the tracking session.
"""


def format_distance(meters: float) -> str:
    """
    Format distance.

    Args:
        meters: Distance in meters

    Returns:
        Formatted string (e.g., '500m' or '1.50km')
    """
    if meters < 1000:
        return f"{meters:.0f}m"
    return f"{meters / 1000:.2f}km"


def format_duration(milliseconds: int) -> str:
    """
    Format duration as 'M:SS' or 'H:MM:SS'.

    Args:
        milliseconds: Duration in milliseconds

    Returns:
        Formatted string (e.g., '1:05' or '1:01:05')
    """
    total_seconds = int(milliseconds // 1000)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_speed(meters_per_second: float) -> str:
    """Format speed as 'X.X km/h'."""
    return f"{meters_per_second * 3.6:.1f} km/h"
