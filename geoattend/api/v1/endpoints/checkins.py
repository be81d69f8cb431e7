"""Trainee check-in endpoints."""
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from geoattend.api.deps import get_db, verify_trainee_token
from geoattend.core.rate_limit import limiter, RATE_LIMITS
from geoattend.core.utils import resolve_timezone, to_timezone
from geoattend.schemas import AttendanceEntry, CheckinRequest, CheckinResponse, EnrolledTraining, ErrorResponse
from geoattend.services.checkin import validate_checkin
from geoattend.services.enrollment import active_trainings_for_trainee
from geoattend.services.ledger import history_for_trainee

router = APIRouter()


@router.post(
    "",
    response_model=CheckinResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
@limiter.limit(RATE_LIMITS["check_in"])
async def checkin_endpoint(
    request: Request,
    checkin_request: CheckinRequest,
    trainee_id: int = Depends(verify_trainee_token),
    db: Session = Depends(get_db)
):
    """
    Validate a scanned QR code and mark the trainee present.

    Args:
        checkin_request: raw QR text plus the device location fix, if any

    Example:
        Request:
            POST /api/v1/checkins
            Authorization: Bearer eyJhbGc...
            {
                "qr_data": "{\\"training_id\\":12,\\"date\\":\\"2025-11-03\\",\\"token\\":\\"Zk3...\\"}",
                "location": {"latitude": 22.5727, "longitude": 88.3641, "accuracy_meters": 18}
            }

        Response (200):
            {
                "success": true,
                "attendance_id": 311,
                "training_id": 12,
                "training_name": "Fire Safety Level 1",
                "date": "2025-11-03",
                "check_in_time": "2025-11-03T09:42:10.511000+05:30",
                "distance_meters": 24.0,
                "is_within_geofence": true
            }

        Response (400):
            {
                "success": false,
                "error": {
                    "code": "out_of_range",
                    "message": "You are 412m away from the training location. You must be within 150m to mark attendance.",
                    "details": {"distance_meters": 412, "geofence_radius": 150}
                }
            }

    Rejections are returned with a stable error code; see the error taxonomy
    in geoattend.core.errors.
    """
    fix = checkin_request.location.to_coordinate() if checkin_request.location else None
    result = validate_checkin(db, trainee_id, checkin_request.qr_data, fix)

    tz = resolve_timezone(result.training.timezone)
    return CheckinResponse(
        attendance_id=result.attendance.id,
        training_id=result.training.id,
        training_name=result.training.name,
        date=result.attendance.date.isoformat(),
        check_in_time=to_timezone(result.attendance.check_in_time, tz).isoformat(),
        distance_meters=result.distance_meters,
        is_within_geofence=result.is_within_geofence,
    )


@router.get("/me", response_model=List[AttendanceEntry])
@limiter.limit(RATE_LIMITS["history"])
async def my_history_endpoint(
    request: Request,
    trainee_id: int = Depends(verify_trainee_token),
    db: Session = Depends(get_db)
):
    """The calling trainee's attendance history, most recent first."""
    return history_for_trainee(db, trainee_id)


@router.get("/trainings", response_model=List[EnrolledTraining])
@limiter.limit(RATE_LIMITS["history"])
async def my_trainings_endpoint(
    request: Request,
    trainee_id: int = Depends(verify_trainee_token),
    db: Session = Depends(get_db)
):
    """Trainings the calling trainee may check in to, with today's status for each."""
    return active_trainings_for_trainee(db, trainee_id)
