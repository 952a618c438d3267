"""Billing repositories."""

from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.billing.repositories.payment_transaction_repository import (
    PaymentTransactionRepository,
)
from packages.billing.repositories.payment_method_repository import (
    PaymentMethodRepository,
)
from packages.billing.repositories.subscription_renewal_repository import (
    SubscriptionRenewalRepository,
)
from packages.billing.repositories.plan_repository import MembershipPlanRepository

__all__ = [
    "SubscriptionRepository",
    "PaymentTransactionRepository",
    "PaymentMethodRepository",
    "SubscriptionRenewalRepository",
    "MembershipPlanRepository",
]
