"""Check-in validation.

A scan is admitted only if it passes every check below, evaluated in order
and stopping at the first failure:

    1. parse                 invalid_format
    2. required fields       incomplete_payload
    3. temporal validity     wrong_day / token_expired
    4. training lookup       training_not_found
    5. token match           token_stale
    6. enrollment            not_enrolled
    7. duplicate suppression already_marked
    8. geofence              out_of_range (strict enforcement only)
    9. admission             AttendanceRecord written (duplicate_entry if the store says so)
"""
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.constants import STATUS_PRESENT, GeofenceEnforcement
from geoattend.core.errors import CheckinRejected, DuplicateEntryError, RejectionCode
from geoattend.core.geo import distance_meters, within_radius
from geoattend.core.logging_config import get_logger
from geoattend.core.utils import local_date, now_utc, resolve_timezone, to_timezone, to_utc
from geoattend.db.models import Attendance, Training
from geoattend.location import Coordinate
from geoattend.services import store
from geoattend.services.ledger import record
from geoattend.services.payload import QRPayload, parse_payload

logger = get_logger(__name__)


class ScanState(str, Enum):
    IDLE = "idle"
    AWAITING_LOCATION = "awaiting_location"
    SCANNING = "scanning"
    VALIDATING = "validating"
    ADMITTED = "admitted"
    REJECTED = "rejected"


@dataclass
class CheckinResult:
    attendance: Attendance
    training: Training
    distance_meters: Optional[float]
    is_within_geofence: Optional[bool]


def _token_matches(presented: str, current: Optional[str]) -> bool:
    """Constant-time comparison against the training's live token."""
    if not current:
        return False
    return secrets.compare_digest(presented.encode("utf-8"), current.encode("utf-8"))


def _check_temporal(payload: QRPayload, training: Optional[Training], now: datetime) -> None:
    tz = resolve_timezone(training.timezone if training else None)

    if payload.date is not None:
        today = local_date(tz, now)
        if payload.date != today:
            raise CheckinRejected(
                RejectionCode.WRONG_DAY,
                f"This QR code is for {payload.date.isoformat()}. "
                f"Today is {today.isoformat()}; please scan today's QR code.",
                {"qr_date": payload.date.isoformat(), "today": today.isoformat()},
            )

    expires_at = payload.expires_at_datetime
    if expires_at is not None and now > expires_at:
        raise CheckinRejected(
            RejectionCode.TOKEN_EXPIRED,
            "This QR code has expired. Please scan the code currently on display.",
            {"expired_at": expires_at.isoformat()},
        )


def _check_geofence(
    training: Training,
    fix: Optional[Coordinate],
    enforcement: GeofenceEnforcement,
) -> Dict[str, Any]:
    """Return the location columns for the attendance row."""
    if enforcement == GeofenceEnforcement.DISABLED:
        return {}

    if fix is None:
        if enforcement == GeofenceEnforcement.STRICT:
            raise CheckinRejected(
                RejectionCode.LOCATION_UNAVAILABLE,
                "Your location is required to mark attendance. Enable location services and try again.",
            )
        return {}

    # Coordinates always come from the training record, never from the payload.
    # Distance is judged to the whole meter; GPS fixes are never finer than that.
    distance = round(distance_meters(fix.latitude, fix.longitude, training.latitude, training.longitude))
    inside = within_radius(distance, training.geofence_radius)

    if enforcement == GeofenceEnforcement.STRICT and not inside:
        raise CheckinRejected(
            RejectionCode.OUT_OF_RANGE,
            f"You are {distance}m away from the training location. "
            f"You must be within {training.geofence_radius}m to mark attendance.",
            {"distance_meters": distance, "geofence_radius": training.geofence_radius},
        )

    return {
        "latitude": fix.latitude,
        "longitude": fix.longitude,
        "accuracy_meters": fix.accuracy_meters,
        "distance_meters": float(distance),
        "is_within_geofence": inside,
    }


def validate_checkin(
    db: Session,
    trainee_id: int,
    raw_payload: Union[str, bytes, Dict[str, Any]],
    fix: Optional[Coordinate] = None,
    enforcement: Optional[GeofenceEnforcement] = None,
    now: Optional[datetime] = None,
) -> CheckinResult:
    """
    Validate a scanned QR payload for a trainee and record attendance.

    Args:
        db: Database session
        trainee_id: Trainee presenting the scan
        raw_payload: QR text as scanned (or an already-decoded dict)
        fix: Device location, if the client acquired one
        enforcement: Geofence policy (defaults to GEOFENCE_ENFORCEMENT)
        now: Reference instant (defaults to the current time)

    Returns:
        CheckinResult with the persisted attendance row

    Raises:
        CheckinRejected: the first failed check, with its code and details
        StoreError: the record store failed; retryable
    """
    enforcement = GeofenceEnforcement(enforcement or settings.GEOFENCE_ENFORCEMENT)
    now = to_utc(now) if now else now_utc()

    try:
        payload = parse_payload(raw_payload)

        # "Today" is the venue's day; the training is looked up here only for
        # its timezone, a missing training is reported by the next check.
        training = store.get_training_by_id(db, payload.training_id)
        _check_temporal(payload, training, now)

        if training is None:
            raise CheckinRejected(
                RejectionCode.TRAINING_NOT_FOUND,
                "Training information not found. Please contact admin.",
                {"training_id": payload.training_id},
            )

        if not _token_matches(payload.token, training.qr_token):
            raise CheckinRejected(
                RejectionCode.TOKEN_STALE,
                "This QR code is no longer valid. Please scan the latest QR code.",
            )

        # An interval token outlives its display only until its own expiry,
        # whatever shape the presented payload claims
        if training.qr_expires_at is not None and now > to_utc(training.qr_expires_at):
            raise CheckinRejected(
                RejectionCode.TOKEN_EXPIRED,
                "This QR code has expired. Please scan the code currently on display.",
                {"expired_at": to_utc(training.qr_expires_at).isoformat()},
            )

        if store.get_active_enrollment(db, trainee_id, training.id) is None:
            raise CheckinRejected(
                RejectionCode.NOT_ENROLLED,
                "You are not enrolled in this training. Please contact admin.",
                {"training_id": training.id},
            )

        tz = resolve_timezone(training.timezone)
        today = local_date(tz, now)
        existing = store.get_attendance(db, trainee_id, training.id, today)
        if existing is not None:
            prior = to_timezone(existing.check_in_time, tz)
            raise CheckinRejected(
                RejectionCode.ALREADY_MARKED,
                f"Attendance already marked today at {prior.strftime('%I:%M %p')}.",
                {"check_in_time": prior.isoformat()},
            )

        location = _check_geofence(training, fix, enforcement)

        entry = Attendance(
            trainee_id=trainee_id,
            training_id=training.id,
            date=today,
            check_in_time=now,
            qr_token=payload.token,
            status=STATUS_PRESENT,
            **location,
        )
        try:
            attendance = record(db, entry)
        except DuplicateEntryError:
            # Lost the race to a concurrent scan between steps 7 and 9
            raise CheckinRejected(
                RejectionCode.DUPLICATE_ENTRY,
                "Attendance was already recorded for today.",
            )
    except CheckinRejected as rejection:
        logger.info("checkin_rejected", trainee_id=trainee_id, code=rejection.code.value,
                    details=rejection.details)
        raise

    logger.info(
        "checkin_admitted",
        trainee_id=trainee_id,
        training_id=training.id,
        date=today.isoformat(),
        distance_meters=location.get("distance_meters"),
        enforcement=enforcement.value,
    )
    return CheckinResult(
        attendance=attendance,
        training=training,
        distance_meters=location.get("distance_meters"),
        is_within_geofence=location.get("is_within_geofence"),
    )
