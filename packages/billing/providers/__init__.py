"""Billing providers - abstracted external platform integrations."""

from packages.billing.providers.payment.factory import get_payment_gateway
from packages.billing.providers.notifications.factory import get_renewal_notifier

__all__ = [
    "get_payment_gateway",
    "get_renewal_notifier",
]
