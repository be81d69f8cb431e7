"""Enrollment model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from geoattend.db.base import Base


class Enrollment(Base):
    __tablename__ = "training_enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trainee_id = Column(Integer, ForeignKey("trainees.id", ondelete="CASCADE"), nullable=False)
    training_id = Column(Integer, ForeignKey("trainings.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    enrolled_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    trainee = relationship("Trainee", back_populates="enrollments")
    training = relationship("Training", back_populates="enrollments")

    __table_args__ = (
        Index("idx_enrollments_training", "training_id"),
        UniqueConstraint("trainee_id", "training_id", name="uq_enrollment_trainee_training"),
    )
