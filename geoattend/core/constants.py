"""Application constants.

This module contains magic strings and numbers used throughout the application.
Centralizing these values makes them easier to maintain and modify.
"""
from enum import Enum


# Geodesy
# Mean Earth radius used by the Haversine formula (meters)
EARTH_RADIUS_METERS = 6_371_000

# Default geofence radius when a training is created without one (meters)
DEFAULT_GEOFENCE_RADIUS = 100

# Check-in Token Configuration
# 24 random bytes = 192 bits of entropy, 32 URL-safe characters
CHECKIN_TOKEN_BYTES = 24
MAX_TOKEN_LENGTH = 100

# Upper bounds on numeric QR payload fields
# 9999-12-31T23:59:59Z, the last instant datetime can represent
MAX_EPOCH_SECONDS = 253_402_300_799
# Largest value a 32-bit INTEGER primary key column holds
MAX_ROW_ID = 2**31 - 1

# Interval rotation period for time-scoped QR payloads (seconds)
DEFAULT_ROTATION_INTERVAL_SECONDS = 30
# Extra validity on interval tokens: covers the successor's issue latency and
# the time between a scan and its submission
DEFAULT_TOKEN_EXPIRY_GRACE_SECONDS = 5

# Attendance status written on admission
STATUS_PRESENT = "present"

# JWT Token Configuration
# Token expiration time in minutes (8 hours)
ACCESS_TOKEN_EXPIRE_MINUTES = 480


class TokenRotationPolicy(str, Enum):
    """How often a training's check-in token is replaced."""

    DAILY = "daily"
    INTERVAL = "interval"


class GeofenceEnforcement(str, Enum):
    """How the validator treats the distance between a fix and the venue."""

    STRICT = "strict"  # reject scans outside the radius
    ADVISORY = "advisory"  # admit, but record distance for audit
    DISABLED = "disabled"  # no distance computed
