"""
Database entity for membership plan templates.
"""

from sqlalchemy import Column, String, DateTime, Boolean, JSON, Text
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class MembershipPlanEntity(Base):
    """Catalogue of purchasable plans shown on the pricing page."""

    __tablename__ = "membership_plans"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    plan_type = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(BigIntegerType, nullable=False)
    currency = Column(String(10), nullable=False, server_default="VND")
    billing_cycle = Column(String(20), nullable=False)
    features = Column(JSON, nullable=True)
    is_active = Column(
        Boolean, nullable=False, default=True, server_default="true", index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
