"""Geofenced QR attendance for in-person trainings."""

__version__ = "1.0.0"
