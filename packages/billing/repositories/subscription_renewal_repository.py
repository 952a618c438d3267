"""
Repository for subscription renewal audit rows.
"""

from typing import List, Optional
from sqlalchemy import select

from common.repositories.base import BaseRepository
from packages.billing.models.database.subscription_renewal import (
    SubscriptionRenewalEntity,
)
from packages.billing.models.domain.subscription_renewal import SubscriptionRenewal
from common.core.otel_axiom_exporter import trace_span


class SubscriptionRenewalRepository(
    BaseRepository[SubscriptionRenewalEntity, SubscriptionRenewal]
):
    def __init__(self, db_session=None):
        super().__init__(SubscriptionRenewalEntity, SubscriptionRenewal, db_session)

    @trace_span
    async def get_by_subscription(
        self, subscription_id: int
    ) -> List[SubscriptionRenewal]:
        async with self._get_session() as session:
            result = await session.execute(
                select(SubscriptionRenewalEntity)
                .where(SubscriptionRenewalEntity.subscription_id == subscription_id)
                .order_by(SubscriptionRenewalEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_by_payment_transaction(
        self, payment_transaction_id: int
    ) -> Optional[SubscriptionRenewal]:
        async with self._get_session() as session:
            result = await session.execute(
                select(SubscriptionRenewalEntity).where(
                    SubscriptionRenewalEntity.payment_transaction_id
                    == payment_transaction_id
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None
