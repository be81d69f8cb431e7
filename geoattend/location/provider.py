"""Platform location service abstraction.

A LocationProvider wraps whatever the device offers (browser Geolocation via
a bridge, a mobile SDK, gpsd, a test double). It exposes a continuous watch as
an async iterator; closing the iterator must clear the platform watch.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Optional

from geoattend.core.errors import (
    LocationError,
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
)
from geoattend.core.utils import now_utc


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float
    accuracy_meters: float
    timestamp: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")
        if self.accuracy_meters < 0:
            raise ValueError("Accuracy cannot be negative")


@dataclass(frozen=True)
class WatchOptions:
    high_accuracy: bool = True
    timeout_ms: Optional[int] = None
    maximum_age_ms: int = 5000  # oldest cached reading the platform may hand back


class PositionError(Exception):
    """Error reported by the platform, using the W3C Geolocation codes."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"position error {code}")
        self.code = code

    def to_location_error(self) -> LocationError:
        if self.code == self.PERMISSION_DENIED:
            return LocationPermissionDenied()
        if self.code == self.TIMEOUT:
            return LocationTimeout()
        return LocationUnavailable()


class LocationProvider(ABC):
    """Source of position samples."""

    supported: bool = True
    secure_context: bool = True

    @abstractmethod
    def watch(self, options: WatchOptions) -> AsyncIterator[Coordinate]:
        """Start a continuous watch.

        Yields samples as they arrive and raises PositionError on platform
        failure. The returned iterator must support ``aclose()``, which stops
        the watch.
        """
