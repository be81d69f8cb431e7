"""Security and authentication utilities."""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
import argon2
import jwt
from fastapi import HTTPException, Request
from pydantic import ValidationError

from geoattend.core import config
from geoattend.core.constants import CHECKIN_TOKEN_BYTES
from geoattend.schemas.auth import TraineeClaims

# Argon2 hasher for the admin password
ph = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,
    parallelism=1,
    hash_len=32,
    salt_len=16
)


def generate_checkin_token() -> str:
    """Generate an unpredictable, URL-safe check-in token (192 bits)."""
    return secrets.token_urlsafe(CHECKIN_TOKEN_BYTES)


def get_password_hash(password: str) -> str:
    """Hash a password using Argon2."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its Argon2 hash."""
    try:
        ph.verify(password_hash, password)
        return True
    except argon2.exceptions.VerifyMismatchError:
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=config.settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, config.settings.SECRET_KEY, algorithm=config.settings.ALGORITHM)
    return encoded_jwt


def _decode(token: str) -> dict:
    try:
        return jwt.decode(token, config.settings.SECRET_KEY, algorithms=[config.settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def verify_admin_token(request: Request) -> dict:
    """Verify JWT token from cookie and return payload."""
    token = request.cookies.get("admin_token")

    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = _decode(token)
    if not payload.get("is_admin"):
        raise HTTPException(status_code=403, detail="Not authorized")
    return payload


def verify_trainee_token(request: Request) -> int:
    """Verify the trainee bearer JWT and return the trainee id it names.

    Trainee tokens are minted by the identity provider with the shared
    SECRET_KEY and carry a ``trainee_id`` claim.
    """
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        claims = TraineeClaims.model_validate(_decode(token))
    except ValidationError:
        raise HTTPException(status_code=403, detail="Not a trainee token")
    return claims.trainee_id


def verify_admin_password(password: str) -> bool:
    """Verify admin password using Argon2.

    Supports both hashed passwords (starting with $argon2) and plaintext.
    To hash a password for production, run:
        python hash_password.py
    """
    stored_password = config.settings.ADMIN_PASSWORD

    if stored_password.startswith("$argon2"):
        return verify_password(password, stored_password)
    # Plaintext (dev mode)
    return secrets.compare_digest(password, stored_password)
