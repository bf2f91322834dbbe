"""
Date helpers.

Timestamps are stored as naive UTC datetimes. MercadoLibre returns ISO 8601
strings with offsets (``2024-05-02T10:15:00.000-04:00``).
"""

from calendar import monthrange
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.utcnow()


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value) -> Optional[datetime]:
    """Parse an API timestamp into naive UTC. Returns None for empty or invalid input."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_naive_utc(value).isoformat() + "Z"


def months_ago(months: int, now: Optional[datetime] = None) -> datetime:
    """Same day and time ``months`` calendar months back, clamped to the month end."""
    now = now or utcnow()
    total = now.year * 12 + (now.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    return now.replace(year=year, month=month, day=min(now.day, monthrange(year, month)[1]))


def month_bounds(year: int, month: int):
    """First and last instant of a calendar month."""
    last_day = monthrange(year, month)[1]
    return datetime(year, month, 1), datetime(year, month, last_day, 23, 59, 59, 999999)
