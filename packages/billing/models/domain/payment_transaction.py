"""
Domain models for the payment ledger.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

from common.core.dates import ensure_utc
from packages.billing.models.domain.enums import (
    PaymentMethodType,
    PaymentStatus,
    PaymentType,
)


class PaymentTransaction(BaseModel):
    """One attempted charge (ledger row)."""

    id: int
    subscription_id: Optional[int] = None
    user_id: int

    amount: int
    currency: str = "VND"
    payment_method: PaymentMethodType
    payment_type: PaymentType
    status: PaymentStatus

    transaction_ref: Optional[str] = None
    gateway_transaction_no: Optional[str] = None
    gateway_response: Optional[Dict[str, Any]] = None

    payment_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    description: Optional[str] = None
    failure_reason: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("payment_date", "due_date", "created_at", "updated_at")
    @classmethod
    def normalize_datetimes(cls, v):
        return ensure_utc(v)

    @field_validator("extra_data", mode="before")
    @classmethod
    def default_extra_data(cls, v):
        return v or {}

    def is_final(self) -> bool:
        return self.status.is_final()


class PaymentTransactionCreateModel(BaseModel):
    """Model for appending a ledger row."""

    subscription_id: Optional[int] = None
    user_id: int
    amount: int
    currency: str = "VND"
    payment_method: PaymentMethodType = PaymentMethodType.VNPAY
    payment_type: PaymentType
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_ref: Optional[str] = None
    due_date: Optional[datetime] = None
    description: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None


class PaymentTransactionUpdateModel(BaseModel):
    """Model for moving a ledger row to its outcome."""

    status: Optional[str] = None
    transaction_ref: Optional[str] = None
    gateway_transaction_no: Optional[str] = None
    gateway_response: Optional[Dict[str, Any]] = None
    payment_date: Optional[datetime] = None
    failure_reason: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, PaymentStatus):
            return v.value
        return v
