"""
Repository for the payment ledger.
"""

from typing import List, Optional
from sqlalchemy import select

from common.repositories.base import BaseRepository
from packages.billing.models.database.payment_transaction import (
    PaymentTransactionEntity,
)
from packages.billing.models.database.subscription_renewal import (
    SubscriptionRenewalEntity,
)
from packages.billing.models.domain.payment_transaction import PaymentTransaction
from packages.billing.models.domain.enums import PaymentStatus, PaymentType
from common.core.otel_axiom_exporter import trace_span


class PaymentTransactionRepository(
    BaseRepository[PaymentTransactionEntity, PaymentTransaction]
):
    def __init__(self, db_session=None):
        super().__init__(PaymentTransactionEntity, PaymentTransaction, db_session)

    @trace_span
    async def get_by_transaction_ref(
        self, transaction_ref: str
    ) -> Optional[PaymentTransaction]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentTransactionEntity)
                .where(PaymentTransactionEntity.transaction_ref == transaction_ref)
                .order_by(PaymentTransactionEntity.id.desc())
                .limit(1)
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def get_by_user(
        self, user_id: int, limit: int = 50
    ) -> List[PaymentTransaction]:
        """Payment history for a user, newest first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentTransactionEntity)
                .where(PaymentTransactionEntity.user_id == user_id)
                .order_by(
                    PaymentTransactionEntity.created_at.desc(),
                    PaymentTransactionEntity.id.desc(),
                )
                .limit(limit)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_by_subscription(
        self, subscription_id: int
    ) -> List[PaymentTransaction]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentTransactionEntity)
                .where(PaymentTransactionEntity.subscription_id == subscription_id)
                .order_by(PaymentTransactionEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_orphaned_renewals(self, limit: int = 100) -> List[PaymentTransaction]:
        """
        Completed renewal charges that never produced a renewal audit row,
        i.e. the subscription period was never extended for them.
        """
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentTransactionEntity)
                .outerjoin(
                    SubscriptionRenewalEntity,
                    SubscriptionRenewalEntity.payment_transaction_id
                    == PaymentTransactionEntity.id,
                )
                .where(
                    PaymentTransactionEntity.payment_type == PaymentType.RENEWAL.value,
                    PaymentTransactionEntity.status == PaymentStatus.COMPLETED.value,
                    PaymentTransactionEntity.subscription_id.is_not(None),
                    SubscriptionRenewalEntity.id.is_(None),
                )
                .order_by(PaymentTransactionEntity.id)
                .limit(limit)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_pending_renewals(
        self, subscription_id: int
    ) -> List[PaymentTransaction]:
        """Renewal charges of a subscription that never reached an outcome."""
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentTransactionEntity)
                .where(
                    PaymentTransactionEntity.subscription_id == subscription_id,
                    PaymentTransactionEntity.payment_type == PaymentType.RENEWAL.value,
                    PaymentTransactionEntity.status == PaymentStatus.PENDING.value,
                )
                .order_by(PaymentTransactionEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())
