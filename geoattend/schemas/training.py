"""Training schemas."""
from datetime import date
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from geoattend.core.sanitization import sanitize_name, validate_timezone_name


class TrainingCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    location_name: str = Field(..., min_length=1, max_length=200)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    geofence_radius: Optional[int] = Field(None, gt=0, le=50000)
    start_date: date
    end_date: date
    timezone: Optional[str] = None

    @field_validator('name', 'location_name')
    @classmethod
    def sanitize_names(cls, v: str) -> str:
        return sanitize_name(v)

    @field_validator('timezone')
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            return validate_timezone_name(v)
        return v

    @model_validator(mode='after')
    def check_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class TrainingResponse(BaseModel):
    training_id: int


class TrainingDetail(BaseModel):
    id: int
    name: str
    location_name: str
    latitude: float
    longitude: float
    geofence_radius: int
    start_date: str
    end_date: str
    timezone: str
    qr_generated_at: Optional[str] = None
    qr_expires_at: Optional[str] = None


class QRCodeResponse(BaseModel):
    payload: Dict[str, Any]
    qr_text: str
    policy: str
    issued_at: str
    expires_at: Optional[str] = None


class TrainingSummary(TrainingDetail):
    enrolled_count: int


class EnrolledTraining(BaseModel):
    """A training as the enrolled trainee sees it."""
    training_id: int
    name: str
    location_name: str
    latitude: float
    longitude: float
    geofence_radius: int
    start_date: str
    end_date: str
    timezone: str
    in_session: bool
    checked_in_today: bool
