"""Trainee administration."""
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geoattend.db.models import Enrollment, Trainee


def create_trainee(
    db: Session,
    user_id: str,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    posting_location: Optional[str] = None,
) -> Trainee:
    """Create a trainee profile linked to an identity provider account."""
    trainee = Trainee(
        user_id=user_id,
        name=name,
        email=email,
        phone=phone,
        posting_location=posting_location,
    )
    try:
        db.add(trainee)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("A trainee profile already exists for this account")
    db.refresh(trainee)
    return trainee


def list_trainees(db: Session, user_id: Optional[str] = None) -> List[Dict]:
    """
    Trainees ordered by name, each with the trainings they are actively enrolled in.

    Args:
        user_id: only the trainee linked to this identity provider account
    """
    query = db.query(Trainee)
    if user_id is not None:
        query = query.filter(Trainee.user_id == user_id)
    trainees = query.order_by(Trainee.name, Trainee.id).all()

    enrolled: Dict[int, List[int]] = defaultdict(list)
    ids = [t.id for t in trainees]
    if ids:
        rows = (
            db.query(Enrollment.trainee_id, Enrollment.training_id)
            .filter(Enrollment.trainee_id.in_(ids), Enrollment.is_active.is_(True))
            .order_by(Enrollment.training_id)
            .all()
        )
        for trainee_id, training_id in rows:
            enrolled[trainee_id].append(training_id)

    return [
        {
            "id": t.id,
            "user_id": t.user_id,
            "name": t.name,
            "email": t.email,
            "phone": t.phone,
            "posting_location": t.posting_location,
            "training_ids": enrolled[t.id],
        }
        for t in trainees
    ]
