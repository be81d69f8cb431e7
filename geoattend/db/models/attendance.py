"""Attendance record model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from geoattend.db.base import Base


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trainee_id = Column(Integer, ForeignKey("trainees.id", ondelete="CASCADE"), nullable=False)
    training_id = Column(Integer, ForeignKey("trainings.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)  # Venue-local calendar date
    check_in_time = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Fix used for the check-in; all NULL when geofencing is disabled
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    accuracy_meters = Column(Float, nullable=True)
    distance_meters = Column(Float, nullable=True)
    is_within_geofence = Column(Boolean, nullable=True)

    qr_token = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="present")

    # Relationships
    trainee = relationship("Trainee", back_populates="attendance")
    training = relationship("Training", back_populates="attendance")

    __table_args__ = (
        Index("idx_attendance_training_date", "training_id", "date"),
        UniqueConstraint("trainee_id", "training_id", "date", name="uq_attendance_trainee_training_date"),
    )
