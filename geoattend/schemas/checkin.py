"""Check-in schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from geoattend.location import Coordinate


class LocationFix(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy_meters: float = Field(..., ge=0)
    timestamp: Optional[datetime] = None

    def to_coordinate(self) -> Coordinate:
        if self.timestamp is None:
            return Coordinate(self.latitude, self.longitude, self.accuracy_meters)
        return Coordinate(self.latitude, self.longitude, self.accuracy_meters, self.timestamp)


class CheckinRequest(BaseModel):
    qr_data: str = Field(..., min_length=1, max_length=2000)  # Raw scanned QR text
    location: Optional[LocationFix] = None


class CheckinResponse(BaseModel):
    success: bool = True
    attendance_id: int
    training_id: int
    training_name: str
    date: str
    check_in_time: str
    distance_meters: Optional[float] = None
    is_within_geofence: Optional[bool] = None


class AttendanceEntry(BaseModel):
    id: int
    trainee_id: int
    trainee_name: str
    posting_location: Optional[str] = None
    training_id: int
    training_name: str
    date: str
    check_in_time: str
    distance_meters: Optional[float] = None
    is_within_geofence: Optional[bool] = None
    status: str
