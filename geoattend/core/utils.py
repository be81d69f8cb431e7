"""General utility functions."""
from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from geoattend.core.config import settings


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC timezone."""
    if dt.tzinfo is None:
        # Assume UTC if no timezone
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_timezone(dt: datetime, tz: ZoneInfo) -> datetime:
    """Convert datetime to specified timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """Return the ZoneInfo for name, falling back to the deployment default."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return ZoneInfo(settings.DEFAULT_TIMEZONE)


def local_date(tz: ZoneInfo, at: Optional[datetime] = None) -> date:
    """Calendar date in tz at the given instant (default: now)."""
    return to_timezone(at or now_utc(), tz).date()


def from_epoch(seconds: Union[int, float]) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
