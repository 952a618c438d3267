"""
Database entity for tokenized payment methods.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON, Boolean, Integer
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class PaymentMethodEntity(Base):
    """
    Gateway-issued card token plus masked card metadata.

    At most one row per user is both is_default and is_active.
    """

    __tablename__ = "payment_methods"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    user_id = Column(BigIntegerType, nullable=False, index=True)
    subscription_id = Column(
        BigIntegerType,
        ForeignKey("subscriptions.id", ondelete="SET NULL"),
        nullable=True,
    )

    payment_method_token = Column(String(255), nullable=False)

    # Masked card metadata
    card_last_4 = Column(String(4), nullable=True)
    card_brand = Column(String(50), nullable=True)
    card_exp_month = Column(Integer, nullable=True)
    card_exp_year = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    is_default = Column(Boolean, nullable=False, default=False, server_default="false")

    gateway_customer_id = Column(String(255), nullable=True)
    gateway_payment_method_id = Column(String(255), nullable=True)
    extra_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_payment_method_user_default", "user_id", "is_default", "is_active"),
    )
