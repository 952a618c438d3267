"""
Repository for tokenized payment methods.
"""

from typing import List, Optional
from sqlalchemy import select, update

from common.repositories.base import BaseRepository
from packages.billing.models.database.payment_method import PaymentMethodEntity
from packages.billing.models.domain.payment_method import PaymentMethod
from common.core.otel_axiom_exporter import trace_span


class PaymentMethodRepository(BaseRepository[PaymentMethodEntity, PaymentMethod]):
    def __init__(self, db_session=None):
        super().__init__(PaymentMethodEntity, PaymentMethod, db_session)

    @trace_span
    async def get_default_active(self, user_id: int) -> Optional[PaymentMethod]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentMethodEntity)
                .where(
                    PaymentMethodEntity.user_id == user_id,
                    PaymentMethodEntity.is_default.is_(True),
                    PaymentMethodEntity.is_active.is_(True),
                )
                .order_by(PaymentMethodEntity.id.desc())
                .limit(1)
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def list_by_user(
        self, user_id: int, active_only: bool = True
    ) -> List[PaymentMethod]:
        query = select(PaymentMethodEntity).where(
            PaymentMethodEntity.user_id == user_id
        )
        if active_only:
            query = query.where(PaymentMethodEntity.is_active.is_(True))
        query = query.order_by(
            PaymentMethodEntity.is_default.desc(), PaymentMethodEntity.id.desc()
        )

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def unset_defaults(self, user_id: int) -> None:
        """Clear is_default on every payment method of a user."""
        async with self._get_session() as session:
            await session.execute(
                update(PaymentMethodEntity)
                .where(
                    PaymentMethodEntity.user_id == user_id,
                    PaymentMethodEntity.is_default.is_(True),
                )
                .values(is_default=False)
                .execution_options(synchronize_session=False)
            )
            await session.flush()

    @trace_span
    async def deactivate(self, payment_method_id: int) -> Optional[PaymentMethod]:
        async with self._get_session() as session:
            await session.execute(
                update(PaymentMethodEntity)
                .where(PaymentMethodEntity.id == payment_method_id)
                .values(is_active=False, is_default=False)
                .execution_options(synchronize_session=False)
            )
            await session.flush()
        return await self.get(payment_method_id)
