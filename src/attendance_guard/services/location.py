"""Bounded location acquisition."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from attendance_guard.domain.geofence import Coordinate

_logger = logging.getLogger(__name__)

DEFAULT_LOCATION_TIMEOUT_SECONDS = 10.0


class LocationProvider(Protocol):
    """Source of the caller's current position."""

    async def current_location(self) -> Coordinate:
        """Return the observed coordinate or raise if it cannot be obtained."""


@dataclass(frozen=True)
class StaticLocationProvider(LocationProvider):
    """Provider for a coordinate the client already submitted."""

    coordinate: Coordinate | None

    async def current_location(self) -> Coordinate:
        """Return the submitted coordinate."""
        if self.coordinate is None:
            raise LookupError("Client did not submit a location")
        return self.coordinate


@dataclass
class LocationService:
    """Acquires a location without blocking past the configured timeout."""

    timeout_seconds: float = DEFAULT_LOCATION_TIMEOUT_SECONDS

    async def acquire(self, provider: LocationProvider) -> Coordinate | None:
        """Return the current location, or None on failure or timeout."""
        try:
            return await asyncio.wait_for(
                provider.current_location(), timeout=self.timeout_seconds
            )
        except TimeoutError:
            _logger.warning(
                "Location acquisition timed out after %ss", self.timeout_seconds
            )
        except Exception:
            _logger.warning("Location acquisition failed", exc_info=True)
        return None
