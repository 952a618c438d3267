"""
Domain models for subscription renewal audit rows.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from common.core.dates import ensure_utc
from packages.billing.models.domain.enums import RenewalStatus


class SubscriptionRenewal(BaseModel):
    """Record of one period extension."""

    id: int
    subscription_id: int
    payment_transaction_id: Optional[int] = None
    renewal_date: datetime
    previous_period_end: datetime
    new_period_end: datetime
    status: RenewalStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator(
        "renewal_date", "previous_period_end", "new_period_end", "created_at"
    )
    @classmethod
    def normalize_datetimes(cls, v):
        return ensure_utc(v)


class SubscriptionRenewalCreateModel(BaseModel):
    subscription_id: int
    payment_transaction_id: Optional[int] = None
    renewal_date: datetime
    previous_period_end: datetime
    new_period_end: datetime
    status: RenewalStatus = RenewalStatus.SCHEDULED
