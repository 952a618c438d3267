"""Tests for billing period arithmetic."""

import pytest
from datetime import datetime, timezone

from packages.billing.models.domain.enums import BillingCycle
from packages.billing.periods import add_months, next_period_end


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestAddMonths:
    def test_same_day_next_month(self):
        assert add_months(_utc(2026, 3, 15, 10, 30), 1) == _utc(2026, 4, 15, 10, 30)

    def test_clamps_to_end_of_shorter_month(self):
        assert add_months(_utc(2026, 1, 31), 1) == _utc(2026, 2, 28)

    def test_clamps_to_leap_day(self):
        assert add_months(_utc(2028, 1, 31), 1) == _utc(2028, 2, 29)

    def test_rolls_over_year(self):
        assert add_months(_utc(2026, 12, 5), 1) == _utc(2027, 1, 5)

    def test_keeps_time_and_timezone(self):
        result = add_months(_utc(2026, 5, 31, 23, 59, 59), 1)
        assert result == _utc(2026, 6, 30, 23, 59, 59)
        assert result.tzinfo == timezone.utc


class TestNextPeriodEnd:
    def test_monthly(self):
        assert next_period_end(_utc(2026, 10, 19), BillingCycle.MONTHLY) == _utc(
            2026, 11, 19
        )

    def test_yearly(self):
        assert next_period_end(_utc(2026, 10, 19), BillingCycle.YEARLY) == _utc(
            2027, 10, 19
        )

    def test_yearly_from_leap_day(self):
        assert next_period_end(_utc(2028, 2, 29), BillingCycle.YEARLY) == _utc(
            2029, 2, 28
        )

    def test_one_time_does_not_renew(self):
        with pytest.raises(ValueError):
            next_period_end(_utc(2026, 10, 19), BillingCycle.ONE_TIME)
