"""
Repository for membership plan templates.
"""

from typing import List
from sqlalchemy import select

from common.repositories.base import BaseRepository
from packages.billing.models.database.plan import MembershipPlanEntity
from packages.billing.models.domain.plans import MembershipPlan
from common.core.otel_axiom_exporter import trace_span


class MembershipPlanRepository(BaseRepository[MembershipPlanEntity, MembershipPlan]):
    def __init__(self, db_session=None):
        super().__init__(MembershipPlanEntity, MembershipPlan, db_session)

    @trace_span
    async def get_active(self) -> List[MembershipPlan]:
        """Active plans, cheapest first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(MembershipPlanEntity)
                .where(MembershipPlanEntity.is_active.is_(True))
                .order_by(MembershipPlanEntity.amount, MembershipPlanEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())
