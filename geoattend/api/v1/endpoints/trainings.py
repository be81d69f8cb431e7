"""Training and QR issuance endpoints (admin only)."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from geoattend.api.deps import get_db, verify_admin_token
from geoattend.core.config import settings
from geoattend.core.constants import TokenRotationPolicy
from geoattend.core.errors import TrainingNotFoundError
from geoattend.core.logging_config import get_logger
from geoattend.core.rate_limit import limiter, RATE_LIMITS
from geoattend.schemas import TrainingCreate, TrainingResponse, TrainingDetail, TrainingSummary, QRCodeResponse
from geoattend.services.payload import encode_payload, render_qr_svg
from geoattend.services.store import get_training_by_id
from geoattend.services.tokens import IssuedToken, build_payload, current_or_issue, issue
from geoattend.services.training import create_training, get_training, list_trainings

logger = get_logger(__name__)
router = APIRouter(dependencies=[Depends(verify_admin_token)])


@router.post("", response_model=TrainingResponse)
@limiter.limit(RATE_LIMITS["admin_write"])
async def create_training_endpoint(
    request: Request,
    training: TrainingCreate,
    db: Session = Depends(get_db)
):
    """
    Create a training session with its venue geofence.

    Example:
        Request:
            POST /api/v1/trainings
            {
                "name": "Fire Safety Level 1",
                "location_name": "District Training Centre, Hall B",
                "latitude": 22.5726,
                "longitude": 88.3639,
                "geofence_radius": 150,
                "start_date": "2025-11-03",
                "end_date": "2025-11-07",
                "timezone": "Asia/Kolkata"
            }

        Response (200):
            {"training_id": 12}
    """
    try:
        created = create_training(db, **training.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("training_created", training_id=created.id)
    return TrainingResponse(training_id=created.id)


@router.get("", response_model=List[TrainingSummary])
@limiter.limit(RATE_LIMITS["admin_read"])
async def list_trainings_endpoint(request: Request, db: Session = Depends(get_db)):
    """All trainings, newest first, with their active enrollment counts."""
    return list_trainings(db)


@router.get("/{training_id}", response_model=TrainingDetail)
async def get_training_endpoint(training_id: int, db: Session = Depends(get_db)):
    training = get_training(db, training_id)
    if training is None:
        raise HTTPException(status_code=404, detail="Training not found")
    return training


def _issue_for_display(db: Session, training_id: int, policy: Optional[TokenRotationPolicy],
                       regenerate: bool) -> IssuedToken:
    policy = TokenRotationPolicy(policy or settings.TOKEN_ROTATION_POLICY)
    try:
        if policy == TokenRotationPolicy.DAILY and not regenerate:
            return current_or_issue(db, training_id)
        return issue(db, training_id, policy)
    except TrainingNotFoundError:
        raise HTTPException(status_code=404, detail="Training not found")


@router.post("/{training_id}/qr", response_model=QRCodeResponse)
@limiter.limit(RATE_LIMITS["admin_write"])
async def issue_qr_endpoint(
    request: Request,
    training_id: int,
    policy: Optional[TokenRotationPolicy] = None,
    regenerate: bool = False,
    db: Session = Depends(get_db)
):
    """
    Issue the QR code for a training.

    Query params:
        policy: "daily" or "interval" (defaults to TOKEN_ROTATION_POLICY)
        regenerate: with the daily policy, replace today's token even if one
                    exists, which invalidates any photo of the old code

    Under the interval policy every call rotates the token. For a display that
    rotates on its own, use the SSE stream instead.
    """
    issued = _issue_for_display(db, training_id, policy, regenerate)
    training = get_training_by_id(db, training_id)
    payload = build_payload(training, issued)
    return QRCodeResponse(
        payload=payload,
        qr_text=encode_payload(payload),
        policy=issued.policy.value,
        issued_at=issued.issued_at.isoformat(),
        expires_at=issued.expires_at.isoformat() if issued.expires_at else None,
    )


@router.get("/{training_id}/qr.svg")
async def qr_svg_endpoint(
    training_id: int,
    policy: Optional[TokenRotationPolicy] = None,
    db: Session = Depends(get_db)
):
    """Render the current QR code as SVG (daily tokens are reused for the day)."""
    issued = _issue_for_display(db, training_id, policy, regenerate=False)
    training = get_training_by_id(db, training_id)
    svg = render_qr_svg(build_payload(training, issued))
    return Response(content=svg, media_type="image/svg+xml", headers={"Cache-Control": "no-store"})
