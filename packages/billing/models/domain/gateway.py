"""
Domain models exchanged with the payment gateway.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


class PaymentUrlRequest(BaseModel):
    """Input for building a signed redirect payment URL."""

    amount: int = Field(..., gt=0, description="Amount in whole VND")
    order_info: str
    txn_ref: str
    ip_addr: str = "127.0.0.1"
    order_type: str = "other"
    locale: str = "vn"
    bank_code: Optional[str] = None
    return_url: Optional[str] = None
    expire_date: Optional[datetime] = None

    @field_validator("order_info")
    @classmethod
    def validate_order_info(cls, v):
        if not v.strip():
            raise ValueError("order_info cannot be empty")
        return v


class ChargeResult(BaseModel):
    """Outcome of a server-to-server charge against a stored token."""

    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None


class CallbackResult(BaseModel):
    """Parsed and verified gateway return/IPN parameters."""

    is_valid: bool
    is_success: bool = False
    response_code: Optional[str] = None
    message: Optional[str] = None
    txn_ref: Optional[str] = None
    transaction_no: Optional[str] = None
    amount: Optional[int] = None
    bank_code: Optional[str] = None
    card_type: Optional[str] = None
    pay_date: Optional[str] = None


class RecurringPaymentSetup(BaseModel):
    """Request to start a first payment for a recurring plan."""

    user_id: int
    plan_id: int
    ip_addr: str = "127.0.0.1"
    return_url: Optional[str] = None


class RecurringPaymentResult(BaseModel):
    payment_id: int
    subscription_id: int
    txn_ref: str
    payment_url: str


class PaymentReturnResult(BaseModel):
    """Outcome of processing a gateway return."""

    success: bool
    message: str
    payment_id: Optional[int] = None
    subscription_id: Optional[int] = None
    already_processed: bool = False


class TransactionQueryResult(BaseModel):
    """Gateway-side state of an earlier charge, looked up by merchant reference."""

    found: bool
    is_settled: bool = False
    is_pending: bool = False
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None
