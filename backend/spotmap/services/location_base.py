"""
SpotMap Backend: Abstract Location Provider Interface
======================================================

What:  The contract every source of "where is the caller right now" follows.
Why:   The views only care about a Location or a typed failure, not about
       where it came from.
How:   Concrete providers inherit from LocationProvider and implement
       get_current_location(). HttpLocationProvider is the default.
Who:   Called by ViewService (map and create views) and the location route.

Contract:
    - One attempt per call; no retry loop, no continuous tracking
    - A fix is produced within the provider's timeout or the call fails
    - Denied access raises LocationPermissionError
    - Any other failure raises LocationUnavailableError
"""

from abc import ABC, abstractmethod
from typing import Optional

from spotmap.schemas.spot import Location


class LocationProvider(ABC):
    """Abstract single-shot location source."""

    @abstractmethod
    async def get_current_location(self, client_key: Optional[str] = None) -> Location:
        """
        Produce the caller's current coordinate.

        Args:
            client_key: Identifies the device asking (the client IP for the
                        HTTP provider). Cached fixes are kept per key.

        Returns:
            Location with lat and lng.

        Raises:
            LocationPermissionError: The provider may not locate this caller.
            LocationUnavailableError: No fix could be produced in time.
        """
        ...

    @abstractmethod
    def is_enabled(self) -> bool:
        """False when lookups are switched off; reported by the health check."""
        ...
