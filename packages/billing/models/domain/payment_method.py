"""
Domain models for tokenized payment methods.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

from common.core.dates import ensure_utc


class PaymentMethod(BaseModel):
    """A gateway token usable for future charges without re-collecting the card."""

    id: int
    user_id: int
    subscription_id: Optional[int] = None

    payment_method_token: str

    card_last_4: Optional[str] = None
    card_brand: Optional[str] = None
    card_exp_month: Optional[int] = None
    card_exp_year: Optional[int] = None

    is_active: bool = True
    is_default: bool = False

    gateway_customer_id: Optional[str] = None
    gateway_payment_method_id: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_datetimes(cls, v):
        return ensure_utc(v)

    @field_validator("extra_data", mode="before")
    @classmethod
    def default_extra_data(cls, v):
        return v or {}

    def masked(self) -> str:
        """Display form, e.g. 'Visa **** 4242'."""
        return f"{self.card_brand or 'Card'} **** {self.card_last_4 or '????'}"


class PaymentMethodCreateModel(BaseModel):
    """Model for storing a new tokenized payment method."""

    user_id: int
    subscription_id: Optional[int] = None
    payment_method_token: str
    card_last_4: Optional[str] = None
    card_brand: Optional[str] = None
    card_exp_month: Optional[int] = None
    card_exp_year: Optional[int] = None
    is_active: bool = True
    is_default: bool = True
    gateway_customer_id: Optional[str] = None
    gateway_payment_method_id: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None

    @field_validator("card_last_4")
    @classmethod
    def validate_last_4(cls, v):
        if v is not None and (len(v) > 4 or not v.isdigit()):
            raise ValueError("card_last_4 must be at most 4 digits")
        return v


class PaymentMethodUpdateModel(BaseModel):
    """Model for updating a payment method."""

    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    subscription_id: Optional[int] = None
