"""Error taxonomy for the check-in protocol.

Every rejection carries a stable string code so clients can tell the user
exactly what to do next (move closer, wait for tomorrow's code, ask the admin).
"""
from enum import Enum
from typing import Any, Dict, Optional


class RejectionCode(str, Enum):
    INVALID_FORMAT = "invalid_format"
    INCOMPLETE_PAYLOAD = "incomplete_payload"
    WRONG_DAY = "wrong_day"
    TOKEN_EXPIRED = "token_expired"
    TRAINING_NOT_FOUND = "training_not_found"
    TOKEN_STALE = "token_stale"
    NOT_ENROLLED = "not_enrolled"
    ALREADY_MARKED = "already_marked"
    OUT_OF_RANGE = "out_of_range"
    DUPLICATE_ENTRY = "duplicate_entry"
    LOCATION_UNAVAILABLE = "location_unavailable"
    LOCATION_PERMISSION_DENIED = "location_permission_denied"
    LOCATION_TIMEOUT = "location_timeout"
    LOCATION_UNSUPPORTED = "location_unsupported"
    LOCATION_INSECURE_CONTEXT = "location_insecure_context"
    STORE_ERROR = "store_error"


class ErrorCategory(str, Enum):
    INPUT = "input"
    TEMPORAL = "temporal"
    AUTHORIZATION = "authorization"
    STATE = "state"
    GEOFENCE = "geofence"
    LOCATION = "location"
    STORE = "store"


CATEGORY_BY_CODE: Dict[RejectionCode, ErrorCategory] = {
    RejectionCode.INVALID_FORMAT: ErrorCategory.INPUT,
    RejectionCode.INCOMPLETE_PAYLOAD: ErrorCategory.INPUT,
    RejectionCode.WRONG_DAY: ErrorCategory.TEMPORAL,
    RejectionCode.TOKEN_EXPIRED: ErrorCategory.TEMPORAL,
    RejectionCode.TOKEN_STALE: ErrorCategory.TEMPORAL,
    RejectionCode.TRAINING_NOT_FOUND: ErrorCategory.INPUT,
    RejectionCode.NOT_ENROLLED: ErrorCategory.AUTHORIZATION,
    RejectionCode.ALREADY_MARKED: ErrorCategory.STATE,
    RejectionCode.DUPLICATE_ENTRY: ErrorCategory.STATE,
    RejectionCode.OUT_OF_RANGE: ErrorCategory.GEOFENCE,
    RejectionCode.LOCATION_UNAVAILABLE: ErrorCategory.LOCATION,
    RejectionCode.LOCATION_PERMISSION_DENIED: ErrorCategory.LOCATION,
    RejectionCode.LOCATION_TIMEOUT: ErrorCategory.LOCATION,
    RejectionCode.LOCATION_UNSUPPORTED: ErrorCategory.LOCATION,
    RejectionCode.LOCATION_INSECURE_CONTEXT: ErrorCategory.LOCATION,
    RejectionCode.STORE_ERROR: ErrorCategory.STORE,
}

# Only enrollment problems need an administrator; everything else can be
# fixed by the trainee (rescan, relocate, retry, grant permission).
NOT_RECOVERABLE_BY_TRAINEE = {ErrorCategory.AUTHORIZATION}


def category_of(code: RejectionCode) -> ErrorCategory:
    return CATEGORY_BY_CODE[code]


def is_recoverable(code: RejectionCode) -> bool:
    """Whether the trainee can resolve the rejection without admin action."""
    return category_of(code) not in NOT_RECOVERABLE_BY_TRAINEE


class CheckinRejected(Exception):
    """A scan attempt failed one of the validator checks."""

    def __init__(self, code: RejectionCode, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = RejectionCode(code)
        self.message = message
        self.details = details or {}

    @property
    def category(self) -> ErrorCategory:
        return category_of(self.code)

    @property
    def recoverable(self) -> bool:
        return is_recoverable(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "category": self.category.value,
            "recoverable": self.recoverable,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"CheckinRejected({self.code.value!r}, {self.message!r})"


class StoreError(Exception):
    """The record store failed (connection lost, constraint misconfigured, ...).

    Always retryable from the caller's point of view.
    """

    code = RejectionCode.STORE_ERROR


class DuplicateEntryError(StoreError):
    """Insert violated the (trainee, training, date) uniqueness constraint."""

    code = RejectionCode.DUPLICATE_ENTRY


class TrainingNotFoundError(LookupError):
    pass


class TraineeNotFoundError(LookupError):
    pass


class EnrollmentExistsError(ValueError):
    """The trainee already has an enrollment row for this training."""


# Location acquisition failures


class LocationError(Exception):
    code = RejectionCode.LOCATION_UNAVAILABLE
    default_message = "Unable to get location."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class LocationPermissionDenied(LocationError):
    code = RejectionCode.LOCATION_PERMISSION_DENIED
    default_message = "Location permission denied. Please allow location access and try again."


class LocationUnavailable(LocationError):
    code = RejectionCode.LOCATION_UNAVAILABLE
    default_message = "Location unavailable. Enable GPS/location services and try again."


class LocationTimeout(LocationError):
    code = RejectionCode.LOCATION_TIMEOUT
    default_message = "Could not get a location in time. Move to an open area and try again."


class LocationUnsupported(LocationError):
    code = RejectionCode.LOCATION_UNSUPPORTED
    default_message = "Geolocation is not supported on this device."


class InsecureContext(LocationError):
    code = RejectionCode.LOCATION_INSECURE_CONTEXT
    default_message = "Location access requires a secure (HTTPS) connection."
