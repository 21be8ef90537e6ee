"""
SpotMap Backend: HTTP Location Provider
========================================

What:  Locates a client by asking an HTTP geolocation endpoint once, and
       formats directions links.
Why:   Map and create pages start from where the caller is.
How:   httpx.AsyncClient GET against location_lookup_url (formatted with the
       client key), bounded by location_timeout_seconds (15s). A fix younger
       than location_max_age_seconds (10s) is reused instead of asking again.
Who:   ViewService (map + create views) and GET /api/location/current.

Failure mapping (single attempt, nothing retried):
    lookups disabled            → LocationPermissionError
    HTTP 401 / 403              → LocationPermissionError
    timeout, network error      → LocationUnavailableError
    other HTTP error status     → LocationUnavailableError
    answer without coordinates  → LocationUnavailableError

Expected answer (ip-api.com style, "lng" also accepted):
    {"status": "success", "lat": 37.77, "lon": -122.41}
"""

import logging
import time
from typing import Dict, Optional, Tuple

import httpx

from spotmap.config import settings
from spotmap.exceptions import LocationPermissionError, LocationUnavailableError
from spotmap.schemas.spot import Location
from spotmap.services.location_base import LocationProvider

logger = logging.getLogger(__name__)

LOCAL_CLIENT = "self"


def get_directions_url(lat: float, lng: float) -> str:
    """Directions link to the given coordinate. Pure formatting, no network."""
    return f"{settings.directions_base_url}?api=1&destination={lat},{lng}"


class HttpLocationProvider(LocationProvider):
    """
    Single-shot IP geolocation.

    State:
        _fixes: client key → (monotonic time of fix, Location). Only used to
        honor the max-age tolerance; entries older than max_age are dropped
        whenever a new fix is stored, so the map only holds recent callers.
    """

    def __init__(
        self,
        lookup_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_age: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.lookup_url = lookup_url or settings.location_lookup_url
        self.timeout = timeout if timeout is not None else settings.location_timeout_seconds
        self.max_age = max_age if max_age is not None else settings.location_max_age_seconds
        # Tests inject httpx.MockTransport here.
        self._transport = transport
        self._fixes: Dict[str, Tuple[float, Location]] = {}

    def is_enabled(self) -> bool:
        return settings.location_lookup_enabled

    def _cached_fix(self, key: str) -> Optional[Location]:
        entry = self._fixes.get(key)
        if entry is None:
            return None
        taken_at, location = entry
        if time.monotonic() - taken_at <= self.max_age:
            return location
        return None

    def _prune_fixes(self, now: float) -> None:
        stale = [key for key, (taken_at, _) in self._fixes.items() if now - taken_at > self.max_age]
        for key in stale:
            del self._fixes[key]
        if stale:
            logger.debug("Dropped %d stale location fixes", len(stale))

    async def get_current_location(self, client_key: Optional[str] = None) -> Location:
        """
        Locate the client once.

        Returns:
            Location of the client (possibly a fix up to max_age seconds old).

        Raises:
            LocationPermissionError, LocationUnavailableError (see module docs)
        """
        if not self.is_enabled():
            raise LocationPermissionError(
                message="Location lookup is disabled.",
                context={"reason": "disabled"},
            )

        key = client_key or LOCAL_CLIENT
        cached = self._cached_fix(key)
        if cached is not None:
            logger.debug("Reusing location fix for %s", key)
            return cached

        # Private and loopback callers are located as the server itself.
        client_segment = "" if key == LOCAL_CLIENT else key
        url = self.lookup_url.format(client=client_segment)
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.TimeoutException:
            logger.warning("Location lookup timed out after %.0fs", self.timeout)
            raise LocationUnavailableError(
                message="Locating you took too long.",
                context={"reason": "timeout", "timeout_seconds": self.timeout},
            )
        except httpx.HTTPError as e:
            logger.warning("Location lookup failed: %s", str(e))
            raise LocationUnavailableError(context={"reason": "network", "error": str(e)})

        duration_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code in (401, 403):
            raise LocationPermissionError(
                context={"reason": "denied", "status": response.status_code},
            )
        if response.status_code >= 400:
            raise LocationUnavailableError(
                context={"reason": "upstream_status", "status": response.status_code},
            )

        location = self._parse_fix(response)
        now = time.monotonic()
        self._prune_fixes(now)
        self._fixes[key] = (now, location)
        logger.info(
            "Location fix for %s in %.0fms: %.4f, %.4f",
            key,
            duration_ms,
            location.lat,
            location.lng,
        )
        return location

    def _parse_fix(self, response: httpx.Response) -> Location:
        try:
            body = response.json()
        except ValueError:
            raise LocationUnavailableError(context={"reason": "malformed"})

        if not isinstance(body, dict) or body.get("status", "success") != "success":
            raise LocationUnavailableError(
                context={"reason": "no_fix", "message": str(body.get("message", "")) if isinstance(body, dict) else ""},
            )

        lat = body.get("lat")
        lng = body.get("lng", body.get("lon"))
        if lat is None or lng is None:
            raise LocationUnavailableError(context={"reason": "malformed"})
        try:
            return Location(lat=float(lat), lng=float(lng))
        except (TypeError, ValueError):
            raise LocationUnavailableError(context={"reason": "malformed"})


location_provider = HttpLocationProvider()
