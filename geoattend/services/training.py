"""Training administration."""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.utils import resolve_timezone, to_timezone
from geoattend.db.models import Enrollment, Training


def create_training(
    db: Session,
    name: str,
    location_name: str,
    latitude: float,
    longitude: float,
    start_date: date,
    end_date: date,
    geofence_radius: Optional[int] = None,
    timezone: Optional[str] = None,
) -> Training:
    """Create a new training session."""
    if end_date < start_date:
        raise ValueError("End date must not be before start date")

    radius = geofence_radius if geofence_radius is not None else settings.DEFAULT_GEOFENCE_RADIUS
    if radius <= 0:
        raise ValueError("Geofence radius must be a positive number of meters")

    training = Training(
        name=name,
        location_name=location_name,
        latitude=latitude,
        longitude=longitude,
        geofence_radius=radius,
        start_date=start_date,
        end_date=end_date,
        timezone=timezone,
    )
    db.add(training)
    db.commit()
    db.refresh(training)
    return training


def _serialize(training: Training) -> Dict:
    tz = resolve_timezone(training.timezone)
    return {
        "id": training.id,
        "name": training.name,
        "location_name": training.location_name,
        "latitude": training.latitude,
        "longitude": training.longitude,
        "geofence_radius": training.geofence_radius,
        "start_date": training.start_date.isoformat(),
        "end_date": training.end_date.isoformat(),
        "timezone": tz.key,
        "qr_generated_at": (
            to_timezone(training.qr_generated_at, tz).isoformat() if training.qr_generated_at else None
        ),
        "qr_expires_at": (
            to_timezone(training.qr_expires_at, tz).isoformat() if training.qr_expires_at else None
        ),
    }


def get_training(db: Session, training_id: int) -> Optional[Dict]:
    """Get a training with its current QR state (admin view)."""
    training = db.query(Training).filter(Training.id == training_id).first()
    if not training:
        return None
    return _serialize(training)


def list_trainings(db: Session) -> List[Dict]:
    """All trainings, newest first, each with its count of active enrollments."""
    active_counts = (
        db.query(Enrollment.training_id, func.count(Enrollment.id))
        .filter(Enrollment.is_active.is_(True))
        .group_by(Enrollment.training_id)
        .all()
    )
    enrolled = {training_id: count for training_id, count in active_counts}

    trainings = db.query(Training).order_by(Training.created_at.desc(), Training.id.desc()).all()
    return [{**_serialize(t), "enrolled_count": enrolled.get(t.id, 0)} for t in trainings]
