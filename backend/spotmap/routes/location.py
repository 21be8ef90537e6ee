"""
SpotMap Backend: Location Route Handlers
=========================================

What:  GET /api/location/current (one location attempt for the caller) and
       GET /api/location/directions (directions link formatting).
Why:   Some clients want the location answer without a whole page.
Who:   Clients that need the raw location answer; the map and create pages
       get theirs through routes/views.py.
"""

import ipaddress
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request

from spotmap.schemas.common import DirectionsResponse, ErrorResponse
from spotmap.schemas.spot import Location
from spotmap.services.location_service import get_directions_url, location_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/location", tags=["Location"])


def client_key(request: Request) -> Optional[str]:
    """
    The public IP of the caller, or None for loopback/private/unknown
    addresses (those are located as the server itself).
    """
    host = request.client.host if request.client else None
    if not host:
        return None
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return None
    if address.is_private or address.is_loopback:
        return None
    return host


@router.get(
    "/current",
    response_model=Location,
    responses={
        403: {"description": "Location lookup denied or disabled", "model": ErrorResponse},
        503: {"description": "No location fix available", "model": ErrorResponse},
    },
    summary="Locate the caller once",
)
async def current_location(request: Request) -> Location:
    return await location_provider.get_current_location(client_key(request))


@router.get(
    "/directions",
    response_model=DirectionsResponse,
    summary="Directions link to a coordinate",
)
async def directions(
    lat: float = Query(..., description="Destination latitude"),
    lng: float = Query(..., description="Destination longitude"),
) -> DirectionsResponse:
    return DirectionsResponse(url=get_directions_url(lat, lng))
