"""
API schemas for billing operations.

Request and response models for billing endpoints.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import (
    BillingCycle,
    PaymentStatus,
    PaymentType,
    PlanType,
    SubscriptionStatus,
)


# ============================================================================
# Subscription Schemas
# ============================================================================


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    user_id: int
    plan_type: PlanType
    status: SubscriptionStatus
    amount: int
    currency: str
    billing_cycle: BillingCycle
    current_period_start: datetime
    current_period_end: datetime
    next_billing_date: Optional[datetime] = None
    auto_renewal: bool
    retry_count: int
    next_retry_at: Optional[datetime] = None
    last_renewal_error: Optional[str] = None
    has_access: bool = False


class CancelSubscriptionRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


# ============================================================================
# Payment Schemas
# ============================================================================


class PaymentTransactionResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    subscription_id: Optional[int] = None
    amount: int
    currency: str
    payment_type: PaymentType
    status: PaymentStatus
    transaction_ref: Optional[str] = None
    gateway_transaction_no: Optional[str] = None
    payment_date: Optional[datetime] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class PaymentMethodResponse(BaseModel):
    """Masked card details. The gateway token is never returned."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    card_brand: Optional[str] = None
    card_last_4: Optional[str] = None
    card_exp_month: Optional[int] = None
    card_exp_year: Optional[int] = None
    is_default: bool
    is_active: bool


class PaymentReturnResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    payment_id: Optional[int] = None
    subscription_id: Optional[int] = None
    already_processed: bool = False


class IpnResponse(BaseModel):
    """Acknowledgement body the gateway expects from the IPN endpoint."""

    RspCode: str
    Message: str
