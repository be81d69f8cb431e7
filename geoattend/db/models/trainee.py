"""Trainee model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from geoattend.db.base import Base


class Trainee(Base):
    __tablename__ = "trainees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), unique=True, nullable=False, index=True)  # Identity provider account id
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=True)
    phone = Column(String(100), nullable=True)
    posting_location = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    enrollments = relationship("Enrollment", back_populates="trainee")
    attendance = relationship("Attendance", back_populates="trainee")
