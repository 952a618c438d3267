"""Domain models for membership plan templates."""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import BillingCycle, PlanType


class MembershipPlan(BaseModel):
    """A purchasable plan shown on the pricing page."""

    id: int
    plan_type: PlanType
    name: str
    description: Optional[str] = None
    amount: int
    currency: str = "VND"
    billing_cycle: BillingCycle
    features: Optional[Dict[str, Any]] = None
    is_active: bool = True

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MembershipPlanCreateModel(BaseModel):
    plan_type: PlanType
    name: str
    description: Optional[str] = None
    amount: int
    currency: str = "VND"
    billing_cycle: BillingCycle
    features: Optional[Dict[str, Any]] = None
    is_active: bool = True
