"""create_billing_tables

Revision ID: 4c1e9a7d2b10
Revises:
Create Date: 2026-10-19 09:12:41.218305

Creates the subscription billing schema.

Tables:
- membership_plans: Purchasable plan catalogue
- subscriptions: User entitlements, billing period and renewal retry bookkeeping
- payment_transactions: Append-only payment ledger
- payment_methods: Gateway card tokens with masked card metadata
- subscription_renewals: Audit row for every period extension
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1e9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add billing tables with proper indexes and constraints."""

    op.create_table(
        'membership_plans',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('plan_type', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False, server_default='VND'),
        sa.Column('billing_cycle', sa.String(20), nullable=False),
        sa.Column('features', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_membership_plans_id', 'membership_plans', ['id'])
    op.create_index('ix_membership_plans_is_active', 'membership_plans', ['is_active'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),

        # Plan details
        sa.Column('plan_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False, server_default='VND'),
        sa.Column('billing_cycle', sa.String(20), nullable=False),

        # Billing period
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('next_billing_date', sa.DateTime(timezone=True), nullable=True),

        # Renewal policy and retry bookkeeping
        sa.Column('auto_renewal', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('grace_period_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('next_retry_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_renewal_error', sa.Text(), nullable=True),

        sa.Column('plan_features', sa.JSON(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),

        # Lifecycle timestamps
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('suspended_at', sa.DateTime(timezone=True), nullable=True),

        # Standard timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),

        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subscriptions_id', 'subscriptions', ['id'])
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_status', 'subscriptions', ['status'])
    op.create_index('idx_subscription_renewal_candidates', 'subscriptions', ['status', 'auto_renewal', 'next_billing_date'])

    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('subscription_id', sa.BigInteger(), nullable=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False, server_default='VND'),
        sa.Column('payment_method', sa.String(50), nullable=False),
        sa.Column('payment_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),

        # Gateway references
        sa.Column('transaction_ref', sa.String(100), nullable=True),
        sa.Column('gateway_transaction_no', sa.String(100), nullable=True),
        sa.Column('gateway_response', sa.JSON(), nullable=True),

        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_payment_transactions_id', 'payment_transactions', ['id'])
    op.create_index('ix_payment_transactions_subscription_id', 'payment_transactions', ['subscription_id'])
    op.create_index('ix_payment_transactions_user_id', 'payment_transactions', ['user_id'])
    op.create_index('ix_payment_transactions_status', 'payment_transactions', ['status'])
    op.create_index('ix_payment_transactions_transaction_ref', 'payment_transactions', ['transaction_ref'])
    op.create_index('idx_payment_transaction_type_status', 'payment_transactions', ['payment_type', 'status'])

    op.create_table(
        'payment_methods',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('subscription_id', sa.BigInteger(), nullable=True),
        sa.Column('payment_method_token', sa.String(255), nullable=False),

        # Masked card metadata
        sa.Column('card_last_4', sa.String(4), nullable=True),
        sa.Column('card_brand', sa.String(50), nullable=True),
        sa.Column('card_exp_month', sa.Integer(), nullable=True),
        sa.Column('card_exp_year', sa.Integer(), nullable=True),

        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('gateway_customer_id', sa.String(255), nullable=True),
        sa.Column('gateway_payment_method_id', sa.String(255), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_payment_methods_id', 'payment_methods', ['id'])
    op.create_index('ix_payment_methods_user_id', 'payment_methods', ['user_id'])
    op.create_index('idx_payment_method_user_default', 'payment_methods', ['user_id', 'is_default', 'is_active'])
    # At most one active default card per user
    op.create_index('uq_payment_method_active_default', 'payment_methods', ['user_id'], unique=True, postgresql_where=sa.text('is_default AND is_active'))

    op.create_table(
        'subscription_renewals',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('subscription_id', sa.BigInteger(), nullable=False),
        sa.Column('payment_transaction_id', sa.BigInteger(), nullable=True),
        sa.Column('renewal_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('previous_period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('new_period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['payment_transaction_id'], ['payment_transactions.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('payment_transaction_id'),
    )
    op.create_index('ix_subscription_renewals_id', 'subscription_renewals', ['id'])
    op.create_index('ix_subscription_renewals_subscription_id', 'subscription_renewals', ['subscription_id'])


def downgrade() -> None:
    """Remove billing tables."""
    op.drop_table('subscription_renewals')
    op.drop_table('payment_methods')
    op.drop_table('payment_transactions')
    op.drop_table('subscriptions')
    op.drop_table('membership_plans')
