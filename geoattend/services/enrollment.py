"""Enrollment administration.

Enrollments are never deleted: revoking access flips is_active so the
history of who was enrolled when stays in the store.
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geoattend.core.errors import EnrollmentExistsError, TraineeNotFoundError, TrainingNotFoundError
from geoattend.core.logging_config import get_logger
from geoattend.core.utils import local_date, now_utc, resolve_timezone
from geoattend.db.models import Attendance, Enrollment, Trainee, Training

logger = get_logger(__name__)


def _get(db: Session, trainee_id: int, training_id: int):
    return db.query(Enrollment).filter(
        Enrollment.trainee_id == trainee_id,
        Enrollment.training_id == training_id,
    ).first()


def enroll(db: Session, trainee_id: int, training_id: int) -> Enrollment:
    """
    Enroll a trainee in a training.

    A deactivated enrollment is reactivated rather than duplicated.

    Raises:
        TraineeNotFoundError / TrainingNotFoundError: unknown id
        EnrollmentExistsError: the trainee is already actively enrolled
    """
    if db.query(Trainee.id).filter(Trainee.id == trainee_id).first() is None:
        raise TraineeNotFoundError(f"Trainee {trainee_id} not found")
    if db.query(Training.id).filter(Training.id == training_id).first() is None:
        raise TrainingNotFoundError(f"Training {training_id} not found")

    existing = _get(db, trainee_id, training_id)
    if existing is not None:
        if existing.is_active:
            raise EnrollmentExistsError("Trainee is already enrolled in this training")
        existing.is_active = True
        db.commit()
        logger.info("enrollment_reactivated", trainee_id=trainee_id, training_id=training_id)
        return existing

    enrollment = Enrollment(trainee_id=trainee_id, training_id=training_id, is_active=True)
    try:
        db.add(enrollment)
        db.commit()
    except IntegrityError:
        # Concurrent enroll won the unique constraint
        db.rollback()
        raise EnrollmentExistsError("Trainee is already enrolled in this training")
    db.refresh(enrollment)
    logger.info("enrollment_created", trainee_id=trainee_id, training_id=training_id)
    return enrollment


def deactivate(db: Session, trainee_id: int, training_id: int) -> bool:
    """Revoke check-in rights. Returns False if no enrollment exists."""
    enrollment = _get(db, trainee_id, training_id)
    if enrollment is None:
        return False
    enrollment.is_active = False
    db.commit()
    logger.info("enrollment_deactivated", trainee_id=trainee_id, training_id=training_id)
    return True


def active_trainings_for_trainee(db: Session, trainee_id: int, now: Optional[datetime] = None) -> List[Dict]:
    """
    Trainings the trainee is actively enrolled in, earliest start first.

    "Today" is taken in each training's own timezone, so in_session and
    checked_in_today agree with what the validator would decide right now.
    """
    rows = (
        db.query(Training)
        .join(Enrollment, Enrollment.training_id == Training.id)
        .filter(Enrollment.trainee_id == trainee_id, Enrollment.is_active.is_(True))
        .order_by(Training.start_date, Training.id)
        .all()
    )
    if not rows:
        return []

    at = now or now_utc()
    attended = (
        db.query(Attendance.training_id, Attendance.date)
        .filter(Attendance.trainee_id == trainee_id, Attendance.training_id.in_([t.id for t in rows]))
        .all()
    )
    checked_in = {(training_id, day) for training_id, day in attended}

    trainings = []
    for training in rows:
        tz = resolve_timezone(training.timezone)
        today = local_date(tz, at)
        trainings.append({
            "training_id": training.id,
            "name": training.name,
            "location_name": training.location_name,
            "latitude": training.latitude,
            "longitude": training.longitude,
            "geofence_radius": training.geofence_radius,
            "start_date": training.start_date.isoformat(),
            "end_date": training.end_date.isoformat(),
            "timezone": tz.key,
            "in_session": training.start_date <= today <= training.end_date,
            "checked_in_today": (training.id, today) in checked_in,
        })
    return trainings
