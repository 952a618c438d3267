"""
Factory for getting payment gateway instance.
"""

from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.providers.payment.vnpay_gateway import VNPayGateway


def get_payment_gateway() -> PaymentGatewayInterface:
    """
    Get payment gateway instance based on configuration.

    Raises:
        SigningError: If the gateway signing configuration is incomplete
    """
    return VNPayGateway()
