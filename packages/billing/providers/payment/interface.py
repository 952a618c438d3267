"""
Interface for payment gateways.

Abstracts the hosted-redirect gateway protocol (signed URLs, signed callbacks)
and server-to-server token charges away from a specific processor.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Mapping

from packages.billing.models.domain.gateway import (
    CallbackResult,
    ChargeResult,
    PaymentUrlRequest,
    TransactionQueryResult,
)
from packages.billing.models.domain.payment_method import PaymentMethod


class PaymentGatewayInterface(ABC):
    """Abstract interface for payment gateways."""

    @abstractmethod
    def build_payment_url(self, request: PaymentUrlRequest) -> str:
        """
        Build a signed redirect URL for a hosted payment page.

        Args:
            request: Amount, order info, transaction reference and options

        Returns:
            Full gateway URL including the signature parameter

        Raises:
            SigningError: If merchant code, secret or base URL is missing
        """
        pass

    @abstractmethod
    def verify_callback(self, params: Mapping[str, Any]) -> bool:
        """
        Verify the signature of callback parameters.

        Args:
            params: Query parameters received on the return/IPN URL

        Returns:
            True iff the received signature matches the parameters
        """
        pass

    @abstractmethod
    def parse_callback(self, params: Mapping[str, Any]) -> CallbackResult:
        """
        Verify and interpret callback parameters.

        Args:
            params: Query parameters received on the return/IPN URL

        Returns:
            CallbackResult; is_valid is False when the signature is wrong
        """
        pass

    @abstractmethod
    async def charge_stored_token(
        self,
        payment_method: PaymentMethod,
        amount: int,
        txn_ref: str,
        order_info: str,
    ) -> ChargeResult:
        """
        Charge a previously tokenized payment method.

        Args:
            payment_method: Stored payment method holding the gateway token
            amount: Amount in whole VND
            txn_ref: Merchant transaction reference
            order_info: Description shown to the customer

        Returns:
            ChargeResult. Gateway and network failures are reported with
            success=False, never raised.
        """
        pass

    @abstractmethod
    async def query_transaction(
        self, txn_ref: str, created_at: datetime
    ) -> TransactionQueryResult:
        """
        Query the gateway for the state of an earlier charge.

        Args:
            txn_ref: Merchant transaction reference
            created_at: When the charge was created on our side

        Returns:
            TransactionQueryResult. found=False when the gateway has no
            record of txn_ref.

        Raises:
            PaymentGatewayError: The gateway could not be asked or gave no
                usable answer
        """
        pass
