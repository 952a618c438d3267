"""
Domain models for subscriptions.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

from common.core.dates import ensure_utc, utcnow
from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    PlanType,
    BillingCycle,
)


class Subscription(BaseModel):
    """
    User subscription domain model.

    Represents a user's paid entitlement including:
    - Plan and price (amount in whole VND)
    - Status (Active/Expired/Cancelled/Suspended/Pending Payment)
    - Billing period and next billing date
    - Auto-renewal policy and retry bookkeeping
    """

    id: int
    user_id: int

    plan_type: PlanType
    status: SubscriptionStatus
    amount: int
    currency: str = "VND"
    billing_cycle: BillingCycle

    # Billing period
    started_at: Optional[datetime] = None
    current_period_start: datetime
    current_period_end: datetime
    next_billing_date: Optional[datetime] = None

    # Renewal policy
    auto_renewal: bool = False
    grace_period_days: int = 0

    # Renewal retry bookkeeping
    retry_count: int = 0
    next_retry_at: Optional[datetime] = None
    last_renewal_error: Optional[str] = None

    plan_features: Optional[Dict[str, Any]] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)

    # Lifecycle dates
    cancelled_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None

    # Metadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator(
        "started_at",
        "current_period_start",
        "current_period_end",
        "next_billing_date",
        "next_retry_at",
        "cancelled_at",
        "suspended_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def normalize_datetimes(cls, v):
        return ensure_utc(v)

    @field_validator("extra_data", mode="before")
    @classmethod
    def default_extra_data(cls, v):
        return v or {}

    def has_access(self) -> bool:
        """Check if subscription allows product access."""
        return self.status.has_access()

    def is_renewable(self) -> bool:
        """Eligibility guard for an auto-renewal attempt."""
        return (
            self.status == SubscriptionStatus.ACTIVE
            and self.auto_renewal
            and self.billing_cycle.is_recurring()
        )

    def days_until_renewal(self) -> int:
        """Get number of days until next billing cycle."""
        due = self.next_billing_date or self.current_period_end
        delta = due - utcnow()
        return max(0, delta.days)


class SubscriptionCreateModel(BaseModel):
    """Model for creating a new subscription."""

    user_id: int
    plan_type: PlanType
    status: SubscriptionStatus = SubscriptionStatus.PENDING_PAYMENT
    amount: int
    currency: str = "VND"
    billing_cycle: BillingCycle
    current_period_start: datetime = Field(default_factory=utcnow)
    current_period_end: datetime  # Must be provided
    next_billing_date: Optional[datetime] = None
    auto_renewal: bool = False
    grace_period_days: int = 0
    plan_features: Optional[Dict[str, Any]] = None
    extra_data: Optional[Dict[str, Any]] = None

    @field_validator("auto_renewal")
    @classmethod
    def one_time_cannot_auto_renew(cls, v, info):
        if v and info.data.get("billing_cycle") == BillingCycle.ONE_TIME:
            raise ValueError("one_time subscriptions cannot auto-renew")
        return v


class SubscriptionUpdateModel(BaseModel):
    """Model for updating a subscription. Only fields that are set get written."""

    status: Optional[str] = None
    amount: Optional[int] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None

    auto_renewal: Optional[bool] = None

    retry_count: Optional[int] = None
    next_retry_at: Optional[datetime] = None
    last_renewal_error: Optional[str] = None

    extra_data: Optional[Dict[str, Any]] = None

    cancelled_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, SubscriptionStatus):
            return v.value
        return v
