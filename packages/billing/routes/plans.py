"""
Plans API routes.

Public endpoint for retrieving available membership plans.
"""

from typing import List
from fastapi import APIRouter

from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.models.domain.plans import MembershipPlan

router = APIRouter()


@router.get("", response_model=List[MembershipPlan])
async def get_plans():
    """Active plans, cheapest first. Public, used by the pricing page."""
    return await SubscriptionService().get_plan_templates()
