"""
Database entity for subscriptions.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, JSON, Index
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class SubscriptionEntity(Base):
    """
    User subscription database entity.

    Stores the plan, billing period and renewal policy. Retry bookkeeping for
    auto-renewal lives in typed columns (retry_count, next_retry_at,
    last_renewal_error); extra_data keeps descriptive stamps only.
    """

    __tablename__ = "subscriptions"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    user_id = Column(BigIntegerType, nullable=False, index=True)

    # Plan details
    plan_type = Column(String(50), nullable=False)  # free, premium, partner
    status = Column(
        String(50), nullable=False, index=True
    )  # active, expired, cancelled, suspended, pending_payment
    amount = Column(BigIntegerType, nullable=False)  # Whole VND
    currency = Column(String(10), nullable=False, server_default="VND")
    billing_cycle = Column(String(20), nullable=False)  # monthly, yearly, one_time

    # Billing period
    started_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    current_period_start = Column(DateTime(timezone=True), nullable=False)
    current_period_end = Column(DateTime(timezone=True), nullable=False)
    next_billing_date = Column(DateTime(timezone=True), nullable=True)

    # Renewal policy
    auto_renewal = Column(Boolean, nullable=False, default=False, server_default="false")
    grace_period_days = Column(Integer, nullable=False, default=0, server_default="0")

    # Renewal retry bookkeeping
    retry_count = Column(Integer, nullable=False, default=0, server_default="0")
    next_retry_at = Column(DateTime(timezone=True), nullable=True)
    last_renewal_error = Column(Text, nullable=True)

    plan_features = Column(JSON, nullable=True)
    extra_data = Column(JSON, nullable=True)

    # Lifecycle timestamps
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)

    # Standard timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Composite index for the renewal candidate query
    __table_args__ = (
        Index(
            "idx_subscription_renewal_candidates",
            "status",
            "auto_renewal",
            "next_billing_date",
        ),
    )
