"""Device location acquisition."""
from geoattend.location.provider import Coordinate, LocationProvider, PositionError, WatchOptions
from geoattend.location.acquisition import AcquisitionMachine, AcquisitionState, GeoLocator

__all__ = [
    "Coordinate",
    "LocationProvider",
    "PositionError",
    "WatchOptions",
    "AcquisitionMachine",
    "AcquisitionState",
    "GeoLocator",
]
