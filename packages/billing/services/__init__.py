"""Billing services."""

from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.services.payment_method_service import PaymentMethodService
from packages.billing.services.payment_service import PaymentService
from packages.billing.services.renewal_service import RenewalService

__all__ = [
    "SubscriptionService",
    "PaymentMethodService",
    "PaymentService",
    "RenewalService",
]
