"""
Reverse geocoding for route names.

Uses OpenStreetMap Nominatim. Lookups are best effort: every failure
(network error, non-2xx status, malformed body) yields None and the
caller falls back to a timestamp-based name.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx

from trilhos.config import settings
from trilhos.shared.constants import GEOCODE_ADDRESS_FIELDS, ROUTE_NAME_MAX_LENGTH

logger = logging.getLogger(__name__)


class ReverseGeocoder:
    """
    Nominatim reverse geocoding client.

    Usage:
        geocoder = ReverseGeocoder()
        place = await geocoder.reverse_geocode(38.72, -9.14)
        await geocoder.close()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url or settings.geocoder_url
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def reverse_geocode(self, lat: float, lon: float) -> Optional[str]:
        """
        Look up a place name for a coordinate.

        Returns:
            The most specific address field available, None on any failure
        """
        params = {"format": "json", "lat": lat, "lon": lon, "zoom": 16}
        try:
            response = await self._get_client().get(
                self.base_url,
                params=params,
                headers={"User-Agent": self.user_agent},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Reverse geocoding request failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Reverse geocoding returned {response.status_code}")
            return None

        try:
            address = response.json().get("address") or {}
        except (ValueError, AttributeError) as e:
            logger.warning(f"Reverse geocoding returned malformed body: {e}")
            return None

        for field in GEOCODE_ADDRESS_FIELDS:
            value = address.get(field)
            if value:
                return str(value)
        return None

    async def close(self):
        """Close the HTTP client if this geocoder created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def format_name_timestamp(moment: datetime) -> str:
    """Timestamp part of a generated name, e.g. 'Oct 18, 04:30 PM'."""
    return f"{moment:%b} {moment.day}, {moment:%I:%M %p}"


def build_route_name(place: Optional[str], moment: Optional[datetime] = None) -> str:
    """
    Build a route name from an optional place name.

    Returns:
        '{place} - {stamp}' or 'Route - {stamp}'
    """
    stamp = format_name_timestamp(moment or datetime.now())
    prefix = place or "Route"
    name = f"{prefix} - {stamp}"
    if len(name) > ROUTE_NAME_MAX_LENGTH:
        # Keep the timestamp, trim the place
        keep = ROUTE_NAME_MAX_LENGTH - len(stamp) - 3
        name = f"{prefix[:keep]} - {stamp}"
    return name


async def generate_route_name(
    geocoder: Optional[ReverseGeocoder],
    lat: float,
    lon: float,
    moment: Optional[datetime] = None,
) -> str:
    """Name a route after its start coordinate, falling back to a timestamp."""
    place = None
    if geocoder is not None:
        place = await geocoder.reverse_geocode(lat, lon)
    return build_route_name(place, moment)
