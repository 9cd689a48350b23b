"""Tests for quint.fpf.validity - evidence validity windows."""

from datetime import date, timedelta

import pytest

from quint.fpf.validity import (
    EXTERNAL_RETENTION_DAYS,
    INTERNAL_RETENTION_DAYS,
    compute_valid_until,
    is_expired,
    retention_days,
)

DAY = date(2026, 3, 1)


class TestComputeValidUntil:
    @pytest.mark.parametrize(
        "test_type,days",
        [
            ("internal", 90),
            ("external", 60),
            ("unknown", 90),
            ("", 90),
            (None, 90),
        ],
    )
    def test_window(self, test_type, days):
        expected = (DAY + timedelta(days=days)).strftime("%Y-%m-%d")
        assert compute_valid_until(test_type, today=DAY) == expected

    def test_external_exact_date(self):
        assert compute_valid_until("external", today=DAY) == "2026-04-30"

    def test_defaults_to_today(self):
        expected = (date.today() + timedelta(days=90)).strftime("%Y-%m-%d")
        assert compute_valid_until("internal") == expected

    def test_retention_constants(self):
        assert INTERNAL_RETENTION_DAYS == 90
        assert EXTERNAL_RETENTION_DAYS == 60
        assert retention_days("EXTERNAL") == 90  # case-sensitive


class TestIsExpired:
    def test_no_window_never_expires(self):
        assert not is_expired(None, today=DAY)
        assert not is_expired("", today=DAY)

    def test_past_window(self):
        assert is_expired("2026-02-28", today=DAY)

    def test_last_valid_day_is_not_expired(self):
        assert not is_expired("2026-03-01", today=DAY)

    def test_future_window(self):
        assert not is_expired(compute_valid_until("external", today=DAY), today=DAY)
