"""
Tests for reverse geocoding and route naming.

HTTP is served by httpx.MockTransport; no network access.
"""

from datetime import datetime

import httpx
import pytest

from trilhos.features.routes.geocoding import (
    ReverseGeocoder,
    build_route_name,
    format_name_timestamp,
    generate_route_name,
)

MOMENT = datetime(2026, 10, 18, 16, 30)


def geocoder_for(handler) -> ReverseGeocoder:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ReverseGeocoder(base_url="https://geo.test/reverse", client=client)


class TestReverseGeocoder:

    async def test_road_preferred(self):
        def handler(request):
            return httpx.Response(200, json={"address": {"road": "Rua Augusta", "city": "Lisboa"}})

        assert await geocoder_for(handler).reverse_geocode(38.71, -9.13) == "Rua Augusta"

    async def test_falls_through_address_fields(self):
        def handler(request):
            return httpx.Response(200, json={"address": {"town": "Sintra"}})

        assert await geocoder_for(handler).reverse_geocode(38.8, -9.4) == "Sintra"

    async def test_request_parameters(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["agent"] = request.headers["User-Agent"]
            return httpx.Response(200, json={"address": {}})

        geocoder = geocoder_for(handler)
        geocoder.user_agent = "Test Agent"
        await geocoder.reverse_geocode(38.5, -9.5)

        assert seen["params"]["format"] == "json"
        assert seen["params"]["lat"] == "38.5"
        assert seen["params"]["lon"] == "-9.5"
        assert seen["params"]["zoom"] == "16"
        assert seen["agent"] == "Test Agent"

    async def test_no_address_returns_none(self):
        def handler(request):
            return httpx.Response(200, json={"error": "Unable to geocode"})

        assert await geocoder_for(handler).reverse_geocode(0, 0) is None

    async def test_http_error_status_returns_none(self):
        def handler(request):
            return httpx.Response(503)

        assert await geocoder_for(handler).reverse_geocode(0, 0) is None

    async def test_network_error_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        assert await geocoder_for(handler).reverse_geocode(0, 0) is None

    async def test_malformed_body_returns_none(self):
        def handler(request):
            return httpx.Response(200, text="<html>not json</html>")

        assert await geocoder_for(handler).reverse_geocode(0, 0) is None


class TestRouteNames:

    def test_timestamp_format(self):
        assert format_name_timestamp(MOMENT) == "Oct 18, 04:30 PM"

    def test_with_place(self):
        assert build_route_name("Rua Augusta", MOMENT) == "Rua Augusta - Oct 18, 04:30 PM"

    def test_without_place(self):
        assert build_route_name(None, MOMENT) == "Route - Oct 18, 04:30 PM"

    def test_long_place_is_trimmed(self):
        name = build_route_name("x" * 400, MOMENT)
        assert len(name) == 255
        assert name.endswith(" - Oct 18, 04:30 PM")

    async def test_generate_without_geocoder(self):
        assert await generate_route_name(None, 0, 0, MOMENT) == "Route - Oct 18, 04:30 PM"

    async def test_generate_with_failed_lookup(self):
        def handler(request):
            return httpx.Response(500)

        name = await generate_route_name(geocoder_for(handler), 0, 0, MOMENT)
        assert name == "Route - Oct 18, 04:30 PM"
