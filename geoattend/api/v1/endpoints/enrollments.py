"""Trainee and enrollment endpoints (admin only)."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from geoattend.api.deps import get_db, verify_admin_token
from geoattend.core.errors import EnrollmentExistsError, TraineeNotFoundError, TrainingNotFoundError
from geoattend.core.rate_limit import limiter, RATE_LIMITS
from geoattend.schemas import (
    EnrollmentCreate,
    EnrollmentResponse,
    SuccessResponse,
    TraineeCreate,
    TraineeDetail,
    TraineeResponse,
)
from geoattend.services.enrollment import deactivate, enroll
from geoattend.services.trainee import create_trainee, list_trainees

router = APIRouter(dependencies=[Depends(verify_admin_token)])


@router.get("/trainees", response_model=List[TraineeDetail])
@limiter.limit(RATE_LIMITS["admin_read"])
async def list_trainees_endpoint(
    request: Request,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    List trainees with the trainings they are actively enrolled in.

    Query params:
        user_id: look up the trainee linked to one identity provider account
    """
    return list_trainees(db, user_id=user_id)


@router.post("/trainees", response_model=TraineeResponse)
@limiter.limit(RATE_LIMITS["admin_write"])
async def create_trainee_endpoint(
    request: Request,
    trainee: TraineeCreate,
    db: Session = Depends(get_db)
):
    """
    Create a trainee profile for an existing identity provider account.

    Raises:
        HTTPException: 409 if the account already has a trainee profile
    """
    try:
        created = create_trainee(db, **trainee.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TraineeResponse(trainee_id=created.id)


@router.post("/enrollments", response_model=EnrollmentResponse)
@limiter.limit(RATE_LIMITS["admin_write"])
async def enroll_endpoint(
    request: Request,
    body: EnrollmentCreate,
    db: Session = Depends(get_db)
):
    """
    Enroll a trainee in a training.

    Raises:
        HTTPException: 404 if the trainee or training does not exist
        HTTPException: 409 if the trainee is already enrolled
    """
    try:
        enrollment = enroll(db, body.trainee_id, body.training_id)
    except (TraineeNotFoundError, TrainingNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EnrollmentExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return EnrollmentResponse(
        enrollment_id=enrollment.id,
        trainee_id=enrollment.trainee_id,
        training_id=enrollment.training_id,
        is_active=enrollment.is_active,
    )


@router.delete("/enrollments/{trainee_id}/{training_id}", response_model=SuccessResponse)
@limiter.limit(RATE_LIMITS["admin_write"])
async def deactivate_enrollment_endpoint(
    request: Request,
    trainee_id: int,
    training_id: int,
    db: Session = Depends(get_db)
):
    """Revoke a trainee's check-in rights for a training (the row is kept)."""
    if not deactivate(db, trainee_id, training_id):
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return SuccessResponse(success=True, message="Enrollment deactivated")
