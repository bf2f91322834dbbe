"""
Shipment SLA windows.

The dispatch deadline (``sla_expected_date``) is compared with "now" to
classify urgency. All datetimes are handled as naive UTC.
"""

from datetime import datetime, timedelta
from typing import Optional

from painel_ml.utils.dates import to_naive_utc

PENDING_STATUSES = ("pending", "handling", "ready_to_ship")

OVERDUE = "overdue"
CRITICAL = "critical"
URGENT = "urgent"
NORMAL = "normal"

CRITICAL_HOURS = 6
URGENT_HOURS = 24


def hours_until(expected: datetime, now: Optional[datetime] = None) -> float:
    now = to_naive_utc(now) if now else datetime.utcnow()
    return (to_naive_utc(expected) - now).total_seconds() / 3600


def classify_urgency(expected: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Urgency of a shipment given its dispatch deadline.

    No deadline is ``normal``; past deadlines are ``overdue``; under 6 hours
    ``critical``; under 24 hours ``urgent``.
    """
    if expected is None:
        return NORMAL
    hours = hours_until(expected, now)
    if hours < 0:
        return OVERDUE
    if hours < CRITICAL_HOURS:
        return CRITICAL
    if hours < URGENT_HOURS:
        return URGENT
    return NORMAL


def format_time_remaining(expected: Optional[datetime], now: Optional[datetime] = None) -> str:
    if expected is None:
        return "Sem prazo"

    hours = hours_until(expected, now)
    if hours < 0:
        return f"Atrasado {int(abs(hours))}h"

    total_minutes = int(hours * 60)
    whole_hours, minutes = divmod(total_minutes, 60)
    if whole_hours < URGENT_HOURS:
        return f"{whole_hours}h {minutes}min"
    days, rest_hours = divmod(whole_hours, 24)
    return f"{days}d {rest_hours}h"


def is_urgent_window(expected: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when the deadline falls within the next 24 hours (inclusive)."""
    if expected is None:
        return False
    now = to_naive_utc(now) if now else datetime.utcnow()
    expected = to_naive_utc(expected)
    return now <= expected <= now + timedelta(hours=URGENT_HOURS)


def is_pending(status: Optional[str]) -> bool:
    return status in PENDING_STATUSES
