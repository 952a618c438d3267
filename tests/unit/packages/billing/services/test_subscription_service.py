"""
Unit tests for SubscriptionService.

Database interactions are NOT mocked.
"""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import patch
from sqlalchemy import update

from common.core.exceptions import NotFoundError, ValidationError
from packages.billing.models.domain.enums import (
    BillingCycle,
    PaymentStatus,
    PaymentType,
    PlanType,
    RenewalStatus,
    SubscriptionStatus,
)
from packages.billing.models.domain.payment_transaction import (
    PaymentTransactionCreateModel,
)
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.domain.subscription import (
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.periods import next_period_end
from packages.billing.services.subscription_service import SubscriptionService


@pytest.fixture
def subscription_service():
    return SubscriptionService()


async def _create_payment(service, subscription, **overrides):
    data = dict(
        subscription_id=subscription.id,
        user_id=subscription.user_id,
        amount=subscription.amount,
        payment_type=PaymentType.RENEWAL,
        transaction_ref="NLC_1760000000000_TEST01",
    )
    data.update(overrides)
    return await service.create_payment_transaction(PaymentTransactionCreateModel(**data))


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestSubscriptionLifecycle:
    @pytest.mark.asyncio
    async def test_get_subscription_not_found(self, mock_start_span, subscription_service):
        with pytest.raises(NotFoundError):
            await subscription_service.get_subscription(999999)

    @pytest.mark.asyncio
    async def test_one_time_subscription_cannot_auto_renew(self, mock_start_span):
        with pytest.raises(ValueError):
            SubscriptionCreateModel(
                user_id=1,
                plan_type=PlanType.PARTNER,
                amount=500000,
                billing_cycle=BillingCycle.ONE_TIME,
                current_period_end=datetime.now(timezone.utc),
                auto_renewal=True,
            )

    @pytest.mark.asyncio
    async def test_cancel_subscription(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        cancelled = await subscription_service.cancel_subscription(
            sample_subscription.id, reason="Too expensive"
        )

        assert cancelled.status == SubscriptionStatus.CANCELLED
        assert cancelled.auto_renewal is False
        assert cancelled.cancelled_at is not None
        assert cancelled.extra_data["cancellation_reason"] == "Too expensive"
        assert cancelled.has_access() is False

    @pytest.mark.asyncio
    async def test_activate_subscription_starts_one_cycle(
        self, mock_start_span, subscription_service, pending_subscription
    ):
        start = datetime(2026, 1, 31, 8, 0, tzinfo=timezone.utc)

        activated = await subscription_service.activate_subscription(
            pending_subscription.id, period_start=start
        )

        assert activated.status == SubscriptionStatus.ACTIVE
        assert activated.current_period_start == start
        assert activated.current_period_end == datetime(
            2026, 2, 28, 8, 0, tzinfo=timezone.utc
        )
        assert activated.next_billing_date == activated.current_period_end

    @pytest.mark.asyncio
    async def test_subscriptions_for_renewal(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        due = await subscription_service.get_subscriptions_for_renewal(days_ahead=3)
        assert [s.id for s in due] == [sample_subscription.id]

        assert await subscription_service.get_subscriptions_for_renewal(
            days_ahead=0
        ) == []


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestPaymentLedger:
    @pytest.mark.asyncio
    async def test_complete_payment(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        payment = await _create_payment(subscription_service, sample_subscription)

        completed = await subscription_service.complete_payment_transaction(
            payment.id, gateway_transaction_no="14012345", gateway_response={"a": "b"}
        )

        assert completed.status == PaymentStatus.COMPLETED
        assert completed.gateway_transaction_no == "14012345"
        assert completed.payment_date is not None
        assert completed.gateway_response == {"a": "b"}

    @pytest.mark.asyncio
    async def test_completed_payment_is_frozen(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        payment = await _create_payment(subscription_service, sample_subscription)
        await subscription_service.complete_payment_transaction(payment.id)

        with pytest.raises(ValidationError):
            await subscription_service.fail_payment_transaction(payment.id, "late")

        reloaded = await subscription_service.get_payment_transaction(payment.id)
        assert reloaded.status == PaymentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_failed_payment_keeps_reason(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        payment = await _create_payment(subscription_service, sample_subscription)

        failed = await subscription_service.fail_payment_transaction(
            payment.id, "Insufficient account balance"
        )

        assert failed.status == PaymentStatus.FAILED
        assert failed.failure_reason == "Insufficient account balance"

    @pytest.mark.asyncio
    async def test_get_payment_by_ref(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        payment = await _create_payment(
            subscription_service, sample_subscription, transaction_ref="NLC_REF_1"
        )

        found = await subscription_service.get_payment_by_ref("NLC_REF_1")

        assert found.id == payment.id


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestSubscriptionRenewal:
    @pytest.mark.asyncio
    async def test_renewal_extends_from_period_end(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        before = await subscription_service.get_subscription(sample_subscription.id)
        payment = await _create_payment(subscription_service, sample_subscription)

        renewal = await subscription_service.create_subscription_renewal(
            sample_subscription.id, payment.id
        )

        expected_end = next_period_end(before.current_period_end, BillingCycle.MONTHLY)
        assert renewal.status == RenewalStatus.COMPLETED
        assert renewal.previous_period_end == before.current_period_end
        assert renewal.new_period_end == expected_end

        after = await subscription_service.get_subscription(sample_subscription.id)
        assert after.current_period_start == before.current_period_end
        assert after.current_period_end == expected_end
        assert after.next_billing_date == expected_end

    @pytest.mark.asyncio
    async def test_one_time_subscription_cannot_be_renewed(
        self, mock_start_span, subscription_service
    ):
        now = datetime.now(timezone.utc)
        subscription = await subscription_service.create_subscription(
            SubscriptionCreateModel(
                user_id=3003,
                plan_type=PlanType.PARTNER,
                status=SubscriptionStatus.ACTIVE,
                amount=500000,
                billing_cycle=BillingCycle.ONE_TIME,
                current_period_end=now + timedelta(days=30),
            )
        )

        with pytest.raises(ValidationError):
            await subscription_service.create_subscription_renewal(subscription.id)

        assert await subscription_service.get_subscription_renewals(subscription.id) == []

    @pytest.mark.asyncio
    async def test_orphaned_renewal_payments(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        payment = await _create_payment(subscription_service, sample_subscription)
        await subscription_service.complete_payment_transaction(payment.id)

        orphans = await subscription_service.get_orphaned_renewal_payments()
        assert [p.id for p in orphans] == [payment.id]

        await subscription_service.create_subscription_renewal(
            sample_subscription.id, payment.id
        )
        assert await subscription_service.get_orphaned_renewal_payments() == []


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestExpiry:
    @pytest.mark.asyncio
    async def test_lapsed_subscription_without_auto_renewal_expires(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        now = datetime.now(timezone.utc)
        await subscription_service.update_subscription(
            sample_subscription.id,
            SubscriptionUpdateModel(
                auto_renewal=False, current_period_end=now - timedelta(minutes=1)
            ),
        )

        expired = await subscription_service.expire_lapsed_subscriptions(now)

        assert [s.id for s in expired] == [sample_subscription.id]
        subscription = await subscription_service.get_subscription(sample_subscription.id)
        assert subscription.status == SubscriptionStatus.EXPIRED
        assert subscription.has_access() is False
        assert subscription.next_billing_date is None
        assert "expired_at" in subscription.extra_data
        assert await subscription_service.get_user_subscription(
            sample_subscription.user_id
        ) is None

    @pytest.mark.asyncio
    async def test_grace_period_delays_expiry(
        self, mock_start_span, subscription_service, sample_subscription, test_db
    ):
        now = datetime.now(timezone.utc)
        await subscription_service.update_subscription(
            sample_subscription.id,
            SubscriptionUpdateModel(
                auto_renewal=False, current_period_end=now - timedelta(days=1)
            ),
        )
        await test_db.execute(
            update(SubscriptionEntity)
            .where(SubscriptionEntity.id == sample_subscription.id)
            .values(grace_period_days=3)
        )
        await test_db.commit()

        assert await subscription_service.expire_lapsed_subscriptions(now) == []

        later = now + timedelta(days=2, minutes=1)
        expired = await subscription_service.expire_lapsed_subscriptions(later)
        assert [s.id for s in expired] == [sample_subscription.id]

    @pytest.mark.asyncio
    async def test_auto_renewing_subscription_does_not_expire(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        now = datetime.now(timezone.utc)
        await subscription_service.update_subscription(
            sample_subscription.id,
            SubscriptionUpdateModel(current_period_end=now - timedelta(days=1)),
        )

        assert await subscription_service.expire_lapsed_subscriptions(now) == []
        subscription = await subscription_service.get_subscription(sample_subscription.id)
        assert subscription.status == SubscriptionStatus.ACTIVE


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestPlans:
    @pytest.mark.asyncio
    async def test_get_plan_templates(
        self, mock_start_span, subscription_service, sample_plan
    ):
        plans = await subscription_service.get_plan_templates()

        assert [p.id for p in plans] == [sample_plan.id]
        assert plans[0].billing_cycle == BillingCycle.MONTHLY

    @pytest.mark.asyncio
    async def test_get_plan_not_found(self, mock_start_span, subscription_service):
        with pytest.raises(NotFoundError):
            await subscription_service.get_plan(999999)
