"""Attendance ledger: insert-only record of admitted check-ins."""
from datetime import date
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from geoattend.core.utils import resolve_timezone, to_timezone
from geoattend.db.models import Attendance, Trainee, Training
from geoattend.services import store


def record(db: Session, entry: Attendance) -> Attendance:
    """
    Append an attendance entry.

    The (trainee, training, date) unique constraint is the real guard against
    duplicates; callers' pre-checks only produce a friendlier message.

    Raises:
        DuplicateEntryError: an entry for the same trainee/training/date exists
        StoreError: any other store failure
    """
    return store.insert_attendance(db, entry)


def _serialize(row: Attendance, trainee: Trainee, training: Training, tz: ZoneInfo) -> Dict:
    return {
        "id": row.id,
        "trainee_id": row.trainee_id,
        "trainee_name": trainee.name,
        "posting_location": trainee.posting_location,
        "training_id": row.training_id,
        "training_name": training.name,
        "date": row.date.isoformat(),
        "check_in_time": to_timezone(row.check_in_time, tz).isoformat(),
        "distance_meters": row.distance_meters,
        "is_within_geofence": row.is_within_geofence,
        "status": row.status,
    }


def query(
    db: Session,
    training_id: Optional[int] = None,
    on_date: Optional[date] = None,
    trainee_id: Optional[int] = None,
) -> List[Dict]:
    """
    Read-only projection of attendance rows for reporting.

    Filters combine with AND; rows are ordered by check-in time. Times are
    rendered in each training's own timezone.
    """
    q = (
        db.query(Attendance, Trainee, Training)
        .join(Trainee, Attendance.trainee_id == Trainee.id)
        .join(Training, Attendance.training_id == Training.id)
    )
    if training_id is not None:
        q = q.filter(Attendance.training_id == training_id)
    if on_date is not None:
        q = q.filter(Attendance.date == on_date)
    if trainee_id is not None:
        q = q.filter(Attendance.trainee_id == trainee_id)

    rows = q.order_by(Attendance.check_in_time.asc(), Attendance.id.asc()).all()
    return [
        _serialize(row, trainee, training, resolve_timezone(training.timezone))
        for row, trainee, training in rows
    ]


def history_for_trainee(db: Session, trainee_id: int) -> List[Dict]:
    """A trainee's own attendance, most recent first."""
    return list(reversed(query(db, trainee_id=trainee_id)))
