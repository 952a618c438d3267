"""
Billing period arithmetic.

Periods are extended from the current period end, never from "now", so a
renewal that runs late does not shorten or drift the paid period. Day-of-month
overflow is clamped to the last day of the target month (Jan 31 + 1 month is
Feb 28, or Feb 29 in a leap year; Feb 29 + 1 year is Feb 28).
"""

import calendar
from datetime import datetime

from packages.billing.models.domain.enums import BillingCycle


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_period_end(period_end: datetime, billing_cycle: BillingCycle) -> datetime:
    """Return the end of the period following one that ends at period_end."""
    if billing_cycle == BillingCycle.MONTHLY:
        return add_months(period_end, 1)
    if billing_cycle == BillingCycle.YEARLY:
        return add_months(period_end, 12)
    raise ValueError(f"Billing cycle {billing_cycle} does not renew")
