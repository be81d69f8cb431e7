"""Trainee and enrollment schemas."""
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from geoattend.core.sanitization import MAX_CONTACT_LENGTH, sanitize_name, sanitize_text


class TraineeCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=MAX_CONTACT_LENGTH)
    posting_location: Optional[str] = Field(None, max_length=MAX_CONTACT_LENGTH)

    @field_validator('name')
    @classmethod
    def sanitize_name_field(cls, v: str) -> str:
        return sanitize_name(v)

    @field_validator('email', 'phone', 'posting_location')
    @classmethod
    def sanitize_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return sanitize_text(v, max_length=200) or None


class TraineeResponse(BaseModel):
    trainee_id: int


class TraineeDetail(BaseModel):
    id: int
    user_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    posting_location: Optional[str] = None
    training_ids: List[int]  # active enrollments


class EnrollmentCreate(BaseModel):
    trainee_id: int = Field(..., gt=0)
    training_id: int = Field(..., gt=0)


class EnrollmentResponse(BaseModel):
    enrollment_id: int
    trainee_id: int
    training_id: int
    is_active: bool
