"""Attendance reporting endpoints (admin only)."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from geoattend.api.deps import get_db, verify_admin_token
from geoattend.core.rate_limit import limiter, RATE_LIMITS
from geoattend.schemas import AttendanceEntry
from geoattend.services.ledger import query

router = APIRouter(dependencies=[Depends(verify_admin_token)])


@router.get("", response_model=List[AttendanceEntry])
@limiter.limit(RATE_LIMITS["admin_read"])
async def list_attendance_endpoint(
    request: Request,
    training_id: Optional[int] = None,
    on_date: Optional[date] = None,
    trainee_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """
    Query the attendance ledger.

    Query params (all optional, combined with AND):
        training_id: only this training
        on_date: only this venue-local date (YYYY-MM-DD)
        trainee_id: only this trainee
    """
    return query(db, training_id=training_id, on_date=on_date, trainee_id=trainee_id)
