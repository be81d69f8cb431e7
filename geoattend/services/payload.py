"""QR payload encoding, decoding and rendering.

Two payload shapes are accepted on the wire:

    {"training_id": 7, "date": "2025-11-03", "token": "..."}        # date-scoped
    {"training_id": 7, "token": "...", "expires_at": 1762160400}    # time-scoped

Either may also carry training_name, latitude, longitude and geofence_radius
for display and client pre-checks. The server never uses those for admission.
"""
import io
import json
import datetime as dt
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

import qrcode
from qrcode.image.svg import SvgImage
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from geoattend.core.constants import MAX_EPOCH_SECONDS, MAX_ROW_ID, MAX_TOKEN_LENGTH
from geoattend.core.errors import CheckinRejected, RejectionCode
from geoattend.core.utils import from_epoch, to_utc
from geoattend.db.models import Training


class PayloadScope(str, Enum):
    DATE = "date"
    TIME = "time"


class QRPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    training_id: int = Field(..., gt=0, le=MAX_ROW_ID)
    token: str = Field(..., min_length=1, max_length=MAX_TOKEN_LENGTH)
    date: Optional[dt.date] = None
    expires_at: Optional[float] = Field(None, ge=0, le=MAX_EPOCH_SECONDS, allow_inf_nan=False)  # epoch seconds

    # Informational only
    training_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    geofence_radius: Optional[int] = None

    @field_validator("token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        return v.strip()

    @property
    def scope(self) -> PayloadScope:
        return PayloadScope.TIME if self.expires_at is not None else PayloadScope.DATE

    @property
    def expires_at_datetime(self) -> Optional[datetime]:
        if self.expires_at is None:
            return None
        try:
            return from_epoch(self.expires_at)
        except (OverflowError, ValueError, OSError):
            raise CheckinRejected(
                RejectionCode.INVALID_FORMAT,
                "Invalid QR code format. Please ensure you are scanning the correct QR code.",
                {"invalid_fields": ["expires_at"]},
            )


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def parse_payload(raw: Union[str, bytes, Dict[str, Any]]) -> QRPayload:
    """
    Decode a scanned QR string into a QRPayload.

    Raises:
        CheckinRejected(invalid_format): not JSON, not an object, or a field has the wrong type
        CheckinRejected(incomplete_payload): training_id, token, or both of date/expires_at missing
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise CheckinRejected(
                RejectionCode.INVALID_FORMAT,
                "Invalid QR code format. Please ensure you are scanning the correct QR code.",
            )
    else:
        data = raw

    if not isinstance(data, dict):
        raise CheckinRejected(
            RejectionCode.INVALID_FORMAT,
            "Invalid QR code format. Please ensure you are scanning the correct QR code.",
        )

    missing = [name for name in ("training_id", "token") if not _present(data.get(name))]
    if not _present(data.get("date")) and not _present(data.get("expires_at")):
        missing.append("date or expires_at")
    if missing:
        raise CheckinRejected(
            RejectionCode.INCOMPLETE_PAYLOAD,
            f"QR code is missing required information: {', '.join(missing)}.",
            {"missing": missing},
        )

    try:
        return QRPayload.model_validate(data)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise CheckinRejected(
            RejectionCode.INVALID_FORMAT,
            "Invalid QR code format. Please ensure you are scanning the correct QR code.",
            {"invalid_fields": fields},
        )


def _training_fields(training: Training) -> Dict[str, Any]:
    return {
        "training_id": training.id,
        "training_name": training.name,
        "latitude": training.latitude,
        "longitude": training.longitude,
        "geofence_radius": training.geofence_radius,
    }


def date_scoped_payload(training: Training, token: str, day: date) -> Dict[str, Any]:
    payload = _training_fields(training)
    payload.update({"date": day.isoformat(), "token": token})
    return payload


def time_scoped_payload(training: Training, token: str, expires_at: datetime) -> Dict[str, Any]:
    payload = _training_fields(training)
    payload.update({"token": token, "expires_at": int(to_utc(expires_at).timestamp())})
    return payload


def encode_payload(payload: Dict[str, Any]) -> str:
    """Compact JSON string as embedded in the QR code."""
    return json.dumps(payload, separators=(",", ":"))


def render_qr_svg(payload: Dict[str, Any]) -> bytes:
    """Render the encoded payload as an SVG QR code.

    High error correction keeps the code readable from a projector at an angle.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=4,
    )
    qr.add_data(encode_payload(payload))
    qr.make(fit=True)

    img = qr.make_image(image_factory=SvgImage)
    buffer = io.BytesIO()
    img.save(buffer)
    return buffer.getvalue()
