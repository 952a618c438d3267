"""Database models for billing."""

from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.database.payment_transaction import (
    PaymentTransactionEntity,
)
from packages.billing.models.database.payment_method import PaymentMethodEntity
from packages.billing.models.database.subscription_renewal import (
    SubscriptionRenewalEntity,
)
from packages.billing.models.database.plan import MembershipPlanEntity

__all__ = [
    "SubscriptionEntity",
    "PaymentTransactionEntity",
    "PaymentMethodEntity",
    "SubscriptionRenewalEntity",
    "MembershipPlanEntity",
]
