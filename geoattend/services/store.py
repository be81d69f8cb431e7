"""Record store operations consumed by the check-in protocol.

Each lookup returns None when the row does not exist and raises StoreError
when the store itself fails, so callers can tell "not found" from "broken".
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from geoattend.core.errors import DuplicateEntryError, StoreError
from geoattend.core.logging_config import get_logger
from geoattend.db.models import Attendance, Enrollment, Training

logger = get_logger(__name__)


def get_training_by_id(db: Session, training_id: int, fresh: bool = False) -> Optional[Training]:
    """With fresh=True the row overwrites whatever this session already holds for it."""
    try:
        query = db.query(Training)
        if fresh:
            query = query.populate_existing()
        return query.filter(Training.id == training_id).first()
    except SQLAlchemyError as e:
        logger.error("store_lookup_failed", operation="get_training_by_id", training_id=training_id, error=str(e))
        raise StoreError("Failed to load training") from e


def update_training_token(
    db: Session,
    training_id: int,
    token: str,
    generated_at: datetime,
    generated_date: date,
    expires_at: Optional[datetime],
) -> bool:
    """
    Overwrite the training's current token in a single UPDATE statement.

    All four token columns change together, so readers never observe a new
    token paired with the previous expiry.

    Returns:
        False if the training does not exist
    """
    try:
        result = db.execute(
            update(Training)
            .where(Training.id == training_id)
            .values(
                qr_token=token,
                qr_generated_at=generated_at,
                qr_generated_date=generated_date,
                qr_expires_at=expires_at,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("store_update_failed", operation="update_training_token", training_id=training_id, error=str(e))
        raise StoreError("Failed to save token") from e

    # Drop any cached Training so the next read sees the committed token
    db.expire_all()
    return result.rowcount > 0


def get_active_enrollment(db: Session, trainee_id: int, training_id: int) -> Optional[Enrollment]:
    try:
        return db.query(Enrollment).filter(
            Enrollment.trainee_id == trainee_id,
            Enrollment.training_id == training_id,
            Enrollment.is_active.is_(True),
        ).first()
    except SQLAlchemyError as e:
        logger.error("store_lookup_failed", operation="get_active_enrollment",
                     trainee_id=trainee_id, training_id=training_id, error=str(e))
        raise StoreError("Error checking training enrollment") from e


def get_attendance(db: Session, trainee_id: int, training_id: int, on_date: date) -> Optional[Attendance]:
    try:
        return db.query(Attendance).filter(
            Attendance.trainee_id == trainee_id,
            Attendance.training_id == training_id,
            Attendance.date == on_date,
        ).first()
    except SQLAlchemyError as e:
        logger.error("store_lookup_failed", operation="get_attendance",
                     trainee_id=trainee_id, training_id=training_id, error=str(e))
        raise StoreError("Error checking existing attendance") from e


def insert_attendance(db: Session, entry: Attendance) -> Attendance:
    """
    Insert an attendance row.

    Raises:
        DuplicateEntryError: the (trainee, training, date) row already exists
        StoreError: any other store failure
    """
    try:
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    except IntegrityError as e:
        db.rollback()
        logger.warning("attendance_duplicate_entry", trainee_id=entry.trainee_id,
                       training_id=entry.training_id, date=str(entry.date))
        raise DuplicateEntryError("Attendance already recorded for this day") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("store_insert_failed", operation="insert_attendance", error=str(e))
        raise StoreError("Failed to save attendance") from e
