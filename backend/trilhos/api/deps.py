"""
Shared API dependencies.

Authentication is handled upstream; the resolved user arrives as an
opaque ``X-User-Id`` header. No header means an anonymous caller.
"""

from typing import Optional

from fastapi import Header, HTTPException

from trilhos.features.routes import ReverseGeocoder

_geocoder: Optional[ReverseGeocoder] = None


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None)
) -> Optional[str]:
    """Current user identifier, None for anonymous requests."""
    if x_user_id is None:
        return None
    x_user_id = x_user_id.strip()
    return x_user_id or None


async def require_user_id(
    x_user_id: Optional[str] = Header(default=None)
) -> str:
    """Current user identifier, 401 for anonymous requests."""
    user_id = await get_current_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


def get_geocoder() -> ReverseGeocoder:
    """Process-wide reverse geocoder."""
    global _geocoder
    if _geocoder is None:
        _geocoder = ReverseGeocoder()
    return _geocoder


async def close_geocoder() -> None:
    global _geocoder
    if _geocoder is not None:
        await _geocoder.close()
        _geocoder = None
