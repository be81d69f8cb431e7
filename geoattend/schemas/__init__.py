"""Pydantic schemas for request/response validation."""
from geoattend.schemas.auth import AdminLoginRequest, TraineeClaims
from geoattend.schemas.training import (
    TrainingCreate,
    TrainingResponse,
    TrainingDetail,
    TrainingSummary,
    EnrolledTraining,
    QRCodeResponse,
)
from geoattend.schemas.enrollment import (
    TraineeCreate,
    TraineeResponse,
    TraineeDetail,
    EnrollmentCreate,
    EnrollmentResponse,
)
from geoattend.schemas.checkin import LocationFix, CheckinRequest, CheckinResponse, AttendanceEntry
from geoattend.schemas.common import SuccessResponse, ErrorResponse, ErrorDetail

__all__ = [
    "AdminLoginRequest",
    "TraineeClaims",
    "TrainingCreate",
    "TrainingResponse",
    "TrainingDetail",
    "TrainingSummary",
    "EnrolledTraining",
    "QRCodeResponse",
    "TraineeCreate",
    "TraineeResponse",
    "TraineeDetail",
    "EnrollmentCreate",
    "EnrollmentResponse",
    "LocationFix",
    "CheckinRequest",
    "CheckinResponse",
    "AttendanceEntry",
    "SuccessResponse",
    "ErrorResponse",
    "ErrorDetail",
]
