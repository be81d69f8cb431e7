"""Check-in token issuance and rotation policy."""
import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.constants import TokenRotationPolicy
from geoattend.core.errors import TrainingNotFoundError
from geoattend.core.logging_config import get_logger
from geoattend.core.security import generate_checkin_token
from geoattend.core.utils import local_date, now_utc, resolve_timezone, to_utc
from geoattend.db.models import Training
from geoattend.services import store
from geoattend.services.payload import date_scoped_payload, time_scoped_payload

logger = get_logger(__name__)

# One lock per training id; issuance for the same training is serialized so
# the persisted token always belongs to the most recent call.
_issue_locks: Dict[int, threading.Lock] = defaultdict(threading.Lock)
_registry_lock = threading.Lock()


def _lock_for(training_id: int) -> threading.Lock:
    with _registry_lock:
        return _issue_locks[training_id]


@dataclass(frozen=True)
class IssuedToken:
    training_id: int
    token: str
    policy: TokenRotationPolicy
    issued_at: datetime
    issued_date: date
    expires_at: Optional[datetime] = None


def _issue_locked(
    db: Session,
    training: Training,
    policy: TokenRotationPolicy,
    issued_at: datetime,
    interval_seconds: Optional[float],
) -> IssuedToken:
    # Caller holds _lock_for(training.id); the row is expired by the commit below
    training_id = training.id
    issued_date = local_date(resolve_timezone(training.timezone), issued_at)
    expires_at = None
    if policy == TokenRotationPolicy.INTERVAL:
        interval = interval_seconds or settings.TOKEN_ROTATION_INTERVAL_SECONDS
        expires_at = issued_at + timedelta(seconds=interval + settings.TOKEN_EXPIRY_GRACE_SECONDS)

    token = generate_checkin_token()
    store.update_training_token(db, training_id, token, issued_at, issued_date, expires_at)

    logger.info(
        "token_issued",
        training_id=training_id,
        policy=policy.value,
        issued_date=issued_date.isoformat(),
        expires_at=expires_at.isoformat() if expires_at else None,
    )
    return IssuedToken(
        training_id=training_id,
        token=token,
        policy=policy,
        issued_at=issued_at,
        issued_date=issued_date,
        expires_at=expires_at,
    )


def _load_training(db: Session, training_id: int) -> Training:
    # Another thread may have committed a token since this session loaded the row
    training = store.get_training_by_id(db, training_id, fresh=True)
    if training is None:
        raise TrainingNotFoundError(f"Training {training_id} not found")
    return training


def issue(
    db: Session,
    training_id: int,
    policy: Optional[TokenRotationPolicy] = None,
    now: Optional[datetime] = None,
    interval_seconds: Optional[float] = None,
) -> IssuedToken:
    """
    Generate a fresh token and persist it as the training's current token.

    The previous token stops matching the moment this commits. Under the
    interval policy the token also carries an expiry one rotation period out
    (interval_seconds, defaulting to TOKEN_ROTATION_INTERVAL_SECONDS) plus
    TOKEN_EXPIRY_GRACE_SECONDS, so a code stays valid until its successor
    is on screen.

    Raises:
        TrainingNotFoundError: training does not exist
        StoreError: the update failed
    """
    policy = TokenRotationPolicy(policy or settings.TOKEN_ROTATION_POLICY)

    with _lock_for(training_id):
        training = _load_training(db, training_id)
        issued_at = to_utc(now) if now else now_utc()
        return _issue_locked(db, training, policy, issued_at, interval_seconds)


def current_or_issue(db: Session, training_id: int, now: Optional[datetime] = None) -> IssuedToken:
    """
    Daily policy: reuse today's token, issue a new one once the date rolls over.

    Lets the display page be reopened during the day without invalidating
    codes trainees have already photographed from the projector. The check
    and the issue happen under the training's lock, so two displays opened
    at the rollover end up showing the same token.
    """
    with _lock_for(training_id):
        training = _load_training(db, training_id)

        at = to_utc(now) if now else now_utc()
        today = local_date(resolve_timezone(training.timezone), at)
        if training.qr_token and training.qr_generated_date == today and training.qr_expires_at is None:
            return IssuedToken(
                training_id=training.id,
                token=training.qr_token,
                policy=TokenRotationPolicy.DAILY,
                issued_at=to_utc(training.qr_generated_at) if training.qr_generated_at else at,
                issued_date=today,
            )
        return _issue_locked(db, training, TokenRotationPolicy.DAILY, at, None)


def build_payload(training: Training, issued: IssuedToken) -> Dict[str, Any]:
    """QR payload for the token: time-scoped when it expires, date-scoped otherwise."""
    if issued.expires_at is not None:
        return time_scoped_payload(training, issued.token, issued.expires_at)
    return date_scoped_payload(training, issued.token, issued.issued_date)
