"""Database package."""
from geoattend.db.session import engine, SessionLocal, get_db, get_db_context
from geoattend.db.base import Base

__all__ = ["engine", "SessionLocal", "get_db", "get_db_context", "Base"]
