"""
Unit tests for shipment SLA classification
"""
from datetime import datetime, timedelta, timezone

import pytest

from painel_ml.services.sla import (
    classify_urgency,
    format_time_remaining,
    hours_until,
    is_pending,
    is_urgent_window,
)

NOW = datetime(2025, 3, 10, 12, 0, 0)


class TestClassifyUrgency:
    """Test urgency buckets"""

    def test_no_deadline_is_normal(self):
        assert classify_urgency(None, NOW) == "normal"

    @pytest.mark.parametrize("offset, expected", [
        (timedelta(hours=-1), "overdue"),
        (timedelta(minutes=-1), "overdue"),
        (timedelta(0), "critical"),
        (timedelta(hours=5, minutes=59), "critical"),
        (timedelta(hours=6), "urgent"),
        (timedelta(hours=23, minutes=59), "urgent"),
        (timedelta(hours=24), "normal"),
        (timedelta(days=3), "normal"),
    ])
    def test_buckets(self, offset, expected):
        assert classify_urgency(NOW + offset, NOW) == expected

    def test_aware_deadline_is_compared_in_utc(self):
        # 15:00 at UTC-3 is 18:00 UTC, six hours after NOW
        expected = datetime(2025, 3, 10, 15, 0, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert hours_until(expected, NOW) == pytest.approx(6.0)
        assert classify_urgency(expected, NOW) == "urgent"


class TestFormatTimeRemaining:
    """Test the human readable countdown"""

    def test_no_deadline(self):
        assert format_time_remaining(None, NOW) == "Sem prazo"

    def test_overdue(self):
        assert format_time_remaining(NOW - timedelta(hours=5, minutes=30), NOW) == "Atrasado 5h"

    def test_hours_and_minutes(self):
        assert format_time_remaining(NOW + timedelta(hours=3, minutes=15), NOW) == "3h 15min"

    def test_days_and_hours(self):
        assert format_time_remaining(NOW + timedelta(days=2, hours=4), NOW) == "2d 4h"


class TestUrgentWindow:
    def test_inside_window(self):
        assert is_urgent_window(NOW + timedelta(hours=20), NOW) is True

    def test_bounds_are_inclusive(self):
        assert is_urgent_window(NOW, NOW) is True
        assert is_urgent_window(NOW + timedelta(hours=24), NOW) is True

    def test_outside_window(self):
        assert is_urgent_window(NOW - timedelta(minutes=1), NOW) is False
        assert is_urgent_window(NOW + timedelta(hours=25), NOW) is False
        assert is_urgent_window(None, NOW) is False


def test_pending_statuses():
    assert is_pending("ready_to_ship")
    assert is_pending("handling")
    assert not is_pending("shipped")
    assert not is_pending(None)
