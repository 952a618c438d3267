"""
Subscription support routes.

Operator endpoints for inspecting and cancelling user subscriptions.
Protected by the admin API key.
"""

from typing import List, Optional
from fastapi import APIRouter, HTTPException, status

from common.core.exceptions import NotFoundError
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.schemas.billing import (
    CancelSubscriptionRequest,
    PaymentMethodResponse,
    PaymentTransactionResponse,
    SubscriptionResponse,
)
from packages.billing.services.payment_method_service import PaymentMethodService
from packages.billing.services.subscription_service import SubscriptionService

router = APIRouter()


def _to_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse.model_validate(
        {**subscription.model_dump(), "has_access": subscription.has_access()}
    )


@router.get("/users/{user_id}", response_model=Optional[SubscriptionResponse])
async def get_user_subscription(user_id: int):
    subscription = await SubscriptionService().get_user_subscription(user_id)
    return _to_response(subscription) if subscription else None


@router.get(
    "/users/{user_id}/payments", response_model=List[PaymentTransactionResponse]
)
async def get_user_payment_history(user_id: int, limit: int = 50):
    return await SubscriptionService().get_user_payment_history(
        user_id, limit=min(limit, 200)
    )


@router.get(
    "/users/{user_id}/payment-methods", response_model=List[PaymentMethodResponse]
)
async def list_user_payment_methods(user_id: int):
    return await PaymentMethodService().list_user_payment_methods(user_id)


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: int, request: Optional[CancelSubscriptionRequest] = None
):
    try:
        subscription = await SubscriptionService().cancel_subscription(
            subscription_id, reason=request.reason if request else None
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _to_response(subscription)
