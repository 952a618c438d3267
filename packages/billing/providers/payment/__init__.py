"""Payment gateways - signed redirect payments and stored token charges."""

from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.providers.payment.factory import get_payment_gateway

__all__ = [
    "PaymentGatewayInterface",
    "get_payment_gateway",
]
