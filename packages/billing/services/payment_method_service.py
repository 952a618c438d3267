"""
Service for the payment method vault.

A user has at most one payment method that is both default and active.
"""

from typing import List, Optional

from common.core.exceptions import NotFoundError, ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.scoped import transaction
from packages.billing.repositories.payment_method_repository import (
    PaymentMethodRepository,
)
from packages.billing.models.domain.payment_method import (
    PaymentMethod,
    PaymentMethodCreateModel,
    PaymentMethodUpdateModel,
)

logger = get_logger(__name__)


class PaymentMethodService:
    """Service for storing and retrieving tokenized payment methods."""

    def __init__(self):
        self.payment_method_repo = PaymentMethodRepository()

    @trace_span
    async def save_payment_method(
        self, payment_method_data: PaymentMethodCreateModel
    ) -> PaymentMethod:
        """Store a payment method. A new default replaces the previous one."""
        async with transaction():
            if payment_method_data.is_default and payment_method_data.is_active:
                await self.payment_method_repo.unset_defaults(
                    payment_method_data.user_id
                )
            payment_method = await self.payment_method_repo.create(payment_method_data)

        logger.info(
            f"Saved payment method {payment_method.id} for user {payment_method.user_id}",
            extra={
                "payment_method_id": payment_method.id,
                "user_id": payment_method.user_id,
                "card_brand": payment_method.card_brand,
                "is_default": payment_method.is_default,
            },
        )
        return payment_method

    @trace_span
    async def get_default_payment_method(self, user_id: int) -> Optional[PaymentMethod]:
        return await self.payment_method_repo.get_default_active(user_id)

    @trace_span
    async def list_user_payment_methods(self, user_id: int) -> List[PaymentMethod]:
        return await self.payment_method_repo.list_by_user(user_id)

    @trace_span
    async def set_default_payment_method(
        self, user_id: int, payment_method_id: int
    ) -> PaymentMethod:
        payment_method = await self.payment_method_repo.get(payment_method_id)
        if not payment_method or payment_method.user_id != user_id:
            raise NotFoundError(f"Payment method {payment_method_id} not found")
        if not payment_method.is_active:
            raise ValidationError(
                f"Payment method {payment_method_id} is inactive and cannot be default"
            )

        async with transaction():
            await self.payment_method_repo.unset_defaults(user_id)
            updated = await self.payment_method_repo.update(
                payment_method_id, PaymentMethodUpdateModel(is_default=True)
            )
        return updated

    @trace_span
    async def deactivate_payment_method(self, payment_method_id: int) -> PaymentMethod:
        payment_method = await self.payment_method_repo.deactivate(payment_method_id)
        if not payment_method:
            raise NotFoundError(f"Payment method {payment_method_id} not found")

        logger.info(
            f"Deactivated payment method {payment_method_id}",
            extra={
                "payment_method_id": payment_method_id,
                "user_id": payment_method.user_id,
            },
        )
        return payment_method
