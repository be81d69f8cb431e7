from .checkin import CheckinResult, ScanState, validate_checkin
from .enrollment import deactivate, enroll
from .ledger import history_for_trainee, query, record
from .payload import QRPayload, encode_payload, parse_payload, render_qr_svg
from .rotation import RotationRegistry, TokenRotator, rotation_registry
from .scan import ScanCancelled, ScanSession
from .tokens import IssuedToken, build_payload, current_or_issue, issue
from .trainee import create_trainee
from .training import create_training, get_training

__all__ = [
    # checkin
    "CheckinResult",
    "ScanState",
    "validate_checkin",
    # enrollment
    "deactivate",
    "enroll",
    # ledger
    "history_for_trainee",
    "query",
    "record",
    # payload
    "QRPayload",
    "encode_payload",
    "parse_payload",
    "render_qr_svg",
    # rotation
    "RotationRegistry",
    "TokenRotator",
    "rotation_registry",
    # scan
    "ScanCancelled",
    "ScanSession",
    # tokens
    "IssuedToken",
    "build_payload",
    "current_or_issue",
    "issue",
    # admin
    "create_trainee",
    "create_training",
    "get_training",
]
