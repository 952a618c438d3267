"""
Database entity for the payment ledger.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON, Text
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class PaymentTransactionEntity(Base):
    """
    One attempted charge, successful or not.

    Append-only per attempt: a failed renewal produces a new row. Completed
    and refunded rows are never mutated.
    """

    __tablename__ = "payment_transactions"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    subscription_id = Column(
        BigIntegerType,
        ForeignKey("subscriptions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    user_id = Column(BigIntegerType, nullable=False, index=True)

    amount = Column(BigIntegerType, nullable=False)
    currency = Column(String(10), nullable=False, server_default="VND")
    payment_method = Column(String(50), nullable=False)  # vnpay, momo, card, ...
    payment_type = Column(String(50), nullable=False)  # subscription, renewal, ...
    status = Column(String(50), nullable=False, index=True)

    # Gateway references
    transaction_ref = Column(String(100), nullable=True, index=True)
    gateway_transaction_no = Column(String(100), nullable=True)
    gateway_response = Column(JSON, nullable=True)

    payment_date = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    description = Column(Text, nullable=True)
    failure_reason = Column(Text, nullable=True)
    extra_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_payment_transaction_type_status", "payment_type", "status"),
    )
