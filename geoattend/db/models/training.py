"""Training model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from geoattend.db.base import Base


class Training(Base):
    __tablename__ = "trainings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    location_name = Column(String(200), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    geofence_radius = Column(Integer, nullable=False, default=100)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    timezone = Column(String(64), nullable=True)  # IANA name; NULL uses DEFAULT_TIMEZONE

    # Written only by the token issuer
    qr_token = Column(String(100), nullable=True)
    qr_generated_at = Column(DateTime(timezone=True), nullable=True)
    qr_generated_date = Column(Date, nullable=True)
    qr_expires_at = Column(DateTime(timezone=True), nullable=True)  # NULL for daily tokens

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    enrollments = relationship("Enrollment", back_populates="training")
    attendance = relationship("Attendance", back_populates="training")

    __table_args__ = (
        CheckConstraint("geofence_radius > 0", name="ck_trainings_radius_positive"),
        CheckConstraint("end_date >= start_date", name="ck_trainings_date_range"),
    )
