"""
Database entity for subscription renewal audit rows.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class SubscriptionRenewalEntity(Base):
    """Audit row written every time a subscription period is extended."""

    __tablename__ = "subscription_renewals"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    subscription_id = Column(
        BigIntegerType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payment_transaction_id = Column(
        BigIntegerType,
        ForeignKey("payment_transactions.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,  # A ledger row extends a period at most once
    )

    renewal_date = Column(DateTime(timezone=True), nullable=False)
    previous_period_end = Column(DateTime(timezone=True), nullable=False)
    new_period_end = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(50), nullable=False)  # scheduled, completed, failed

    created_at = Column(DateTime(timezone=True), server_default=func.now())
