"""
Repository for subscription management.
"""

from typing import List, Optional
from datetime import datetime
from sqlalchemy import select, or_

from common.repositories.base import BaseRepository
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.domain.subscription import Subscription
from packages.billing.models.domain.enums import BillingCycle, SubscriptionStatus
from common.core.otel_axiom_exporter import trace_span


class SubscriptionRepository(BaseRepository[SubscriptionEntity, Subscription]):
    """Repository for managing user subscriptions."""

    def __init__(self, db_session=None):
        super().__init__(SubscriptionEntity, Subscription, db_session)

    @trace_span
    async def get_by_user_id(
        self, user_id: int, active_only: bool = True
    ) -> Optional[Subscription]:
        """Get the most recent (optionally active) subscription for a user."""
        query = select(SubscriptionEntity).where(
            SubscriptionEntity.user_id == user_id
        )
        if active_only:
            query = query.where(
                SubscriptionEntity.status == SubscriptionStatus.ACTIVE.value
            )
        query = query.order_by(SubscriptionEntity.id.desc()).limit(1)

        async with self._get_session() as session:
            result = await session.execute(query)
            db_subscription = result.scalar_one_or_none()
            return self._entity_to_domain(db_subscription) if db_subscription else None

    @trace_span
    async def get_renewal_candidates(
        self, cutoff: datetime, now: datetime
    ) -> List[Subscription]:
        """
        Get active auto-renewing recurring subscriptions due on or before cutoff.

        Rows with a retry scheduled after now are left for a later pass.
        """
        query = (
            select(SubscriptionEntity)
            .where(
                SubscriptionEntity.status == SubscriptionStatus.ACTIVE.value,
                SubscriptionEntity.auto_renewal.is_(True),
                SubscriptionEntity.billing_cycle != BillingCycle.ONE_TIME.value,
                SubscriptionEntity.next_billing_date.is_not(None),
                SubscriptionEntity.next_billing_date <= cutoff,
                or_(
                    SubscriptionEntity.next_retry_at.is_(None),
                    SubscriptionEntity.next_retry_at <= now,
                ),
            )
            .order_by(SubscriptionEntity.next_billing_date, SubscriptionEntity.id)
        )

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def get_lapsed(self, now: datetime) -> List[Subscription]:
        """
        Get active subscriptions whose period ended and that will not renew:
        auto-renewal is off or the billing cycle is one-time.
        """
        query = (
            select(SubscriptionEntity)
            .where(
                SubscriptionEntity.status == SubscriptionStatus.ACTIVE.value,
                SubscriptionEntity.current_period_end <= now,
                or_(
                    SubscriptionEntity.auto_renewal.is_(False),
                    SubscriptionEntity.billing_cycle == BillingCycle.ONE_TIME.value,
                ),
            )
            .order_by(SubscriptionEntity.current_period_end, SubscriptionEntity.id)
        )

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())
