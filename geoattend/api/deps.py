"""Shared API dependencies."""
from geoattend.db import get_db, get_db_context
from geoattend.core.security import verify_admin_token, verify_trainee_token

__all__ = ["get_db", "get_db_context", "verify_admin_token", "verify_trainee_token"]
