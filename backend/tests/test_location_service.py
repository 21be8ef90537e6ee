"""
SpotMap Backend: Location Provider Tests
=========================================

What:  HttpLocationProvider failure mapping, caching and directions links.
How:   httpx.MockTransport answers the lookup; no network is used.
"""

import time
from unittest.mock import patch

import httpx
import pytest

from spotmap.config import settings
from spotmap.exceptions import LocationPermissionError, LocationUnavailableError
from spotmap.schemas.spot import Location
from spotmap.services.location_service import HttpLocationProvider, get_directions_url


def provider_for(handler, max_age=10.0):
    return HttpLocationProvider(
        lookup_url="http://geo.test/json/{client}",
        timeout=1.0,
        max_age=max_age,
        transport=httpx.MockTransport(handler),
    )


class TestCurrentLocation:

    @pytest.mark.asyncio
    async def test_successful_fix(self):
        requests = []

        def handler(request):
            requests.append(str(request.url))
            return httpx.Response(200, json={"status": "success", "lat": 48.85, "lon": 2.35})

        location = await provider_for(handler).get_current_location("8.8.8.8")

        assert location.lat == pytest.approx(48.85)
        assert location.lng == pytest.approx(2.35)
        assert requests == ["http://geo.test/json/8.8.8.8"]

    @pytest.mark.asyncio
    async def test_recent_fix_is_reused(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"lat": 1.0, "lng": 2.0})

        provider = provider_for(handler)
        await provider.get_current_location("1.2.3.4")
        await provider.get_current_location("1.2.3.4")
        await provider.get_current_location("5.6.7.8")

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_stale_fixes_are_dropped(self):
        def handler(request):
            return httpx.Response(200, json={"lat": 1.0, "lng": 2.0})

        provider = provider_for(handler, max_age=10)
        provider._fixes["1.1.1.1"] = (time.monotonic() - 100, Location(lat=0, lng=0))
        provider._fixes["2.2.2.2"] = (time.monotonic(), Location(lat=3, lng=4))

        await provider.get_current_location("5.6.7.8")

        assert set(provider._fixes) == {"2.2.2.2", "5.6.7.8"}

    @pytest.mark.asyncio
    async def test_zero_max_age_always_asks(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"lat": 1.0, "lng": 2.0})

        provider = provider_for(handler, max_age=0)
        await provider.get_current_location()
        await provider.get_current_location()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_denied(self):
        provider = provider_for(lambda request: httpx.Response(403))
        with pytest.raises(LocationPermissionError):
            await provider.get_current_location("8.8.8.8")

    @pytest.mark.asyncio
    async def test_disabled(self):
        provider = provider_for(lambda request: httpx.Response(200, json={"lat": 1, "lon": 2}))
        with patch.object(settings, "location_lookup_enabled", False):
            with pytest.raises(LocationPermissionError):
                await provider.get_current_location()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(LocationUnavailableError) as exc_info:
            await provider_for(handler).get_current_location()
        assert exc_info.value.context["reason"] == "timeout"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LocationUnavailableError) as exc_info:
            await provider_for(handler).get_current_location()
        assert exc_info.value.context["reason"] == "network"

    @pytest.mark.asyncio
    async def test_upstream_failure_status(self):
        provider = provider_for(lambda request: httpx.Response(500))
        with pytest.raises(LocationUnavailableError):
            await provider.get_current_location()

    @pytest.mark.asyncio
    async def test_lookup_reports_failure(self):
        provider = provider_for(
            lambda request: httpx.Response(200, json={"status": "fail", "message": "private range"})
        )
        with pytest.raises(LocationUnavailableError) as exc_info:
            await provider.get_current_location()
        assert exc_info.value.context["reason"] == "no_fix"

    @pytest.mark.asyncio
    async def test_malformed_answer(self):
        provider = provider_for(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(LocationUnavailableError):
            await provider.get_current_location()


class TestDirectionsUrl:

    def test_format(self):
        assert get_directions_url(37.7749, -122.4194) == (
            "https://www.google.com/maps/dir/?api=1&destination=37.7749,-122.4194"
        )
