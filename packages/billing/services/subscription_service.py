"""
Service for subscriptions, the payment ledger and renewal bookkeeping.

This is the store the renewal engine talks to. Lookups that must find a row
raise NotFoundError; writes that would break a ledger invariant raise
ValidationError.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta

from common.core.dates import utcnow
from common.core.exceptions import NotFoundError, ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.scoped import transaction
from packages.billing.periods import next_period_end
from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.billing.repositories.payment_transaction_repository import (
    PaymentTransactionRepository,
)
from packages.billing.repositories.subscription_renewal_repository import (
    SubscriptionRenewalRepository,
)
from packages.billing.repositories.plan_repository import MembershipPlanRepository
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.payment_transaction import (
    PaymentTransaction,
    PaymentTransactionCreateModel,
    PaymentTransactionUpdateModel,
)
from packages.billing.models.domain.subscription_renewal import (
    SubscriptionRenewal,
    SubscriptionRenewalCreateModel,
)
from packages.billing.models.domain.plans import MembershipPlan
from packages.billing.models.domain.enums import (
    PaymentStatus,
    RenewalStatus,
    SubscriptionStatus,
)

logger = get_logger(__name__)


class SubscriptionService:
    """Service for subscription management."""

    def __init__(self):
        self.subscription_repo = SubscriptionRepository()
        self.transaction_repo = PaymentTransactionRepository()
        self.renewal_repo = SubscriptionRenewalRepository()
        self.plan_repo = MembershipPlanRepository()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    @trace_span
    async def create_subscription(
        self, subscription_data: SubscriptionCreateModel
    ) -> Subscription:
        subscription = await self.subscription_repo.create(subscription_data)

        logger.info(
            f"Created subscription {subscription.id} for user {subscription.user_id}",
            extra={
                "subscription_id": subscription.id,
                "user_id": subscription.user_id,
                "plan_type": subscription.plan_type.value,
                "billing_cycle": subscription.billing_cycle.value,
            },
        )
        return subscription

    @trace_span
    async def get_subscription(self, subscription_id: int) -> Subscription:
        subscription = await self.subscription_repo.get(subscription_id)
        if not subscription:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return subscription

    @trace_span
    async def get_user_subscription(self, user_id: int) -> Optional[Subscription]:
        """Current active subscription of a user, if any."""
        return await self.subscription_repo.get_by_user_id(user_id)

    @trace_span
    async def update_subscription(
        self, subscription_id: int, update_data: SubscriptionUpdateModel
    ) -> Subscription:
        updated = await self.subscription_repo.update(subscription_id, update_data)
        if not updated:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return updated

    @trace_span
    async def cancel_subscription(
        self, subscription_id: int, reason: Optional[str] = None
    ) -> Subscription:
        """Cancel on explicit user action. Access ends, auto-renewal stops."""
        subscription = await self.get_subscription(subscription_id)
        if subscription.status == SubscriptionStatus.CANCELLED:
            return subscription

        now = utcnow()
        extra_data = dict(subscription.extra_data)
        extra_data["cancellation_reason"] = reason or "user_requested"

        updated = await self.update_subscription(
            subscription_id,
            SubscriptionUpdateModel(
                status=SubscriptionStatus.CANCELLED,
                auto_renewal=False,
                cancelled_at=now,
                extra_data=extra_data,
            ),
        )

        logger.info(
            f"Cancelled subscription {subscription_id}",
            extra={
                "subscription_id": subscription_id,
                "user_id": subscription.user_id,
                "old_status": subscription.status.value,
                "reason": extra_data["cancellation_reason"],
            },
        )
        return updated

    @trace_span
    async def activate_subscription(
        self,
        subscription_id: int,
        period_start: Optional[datetime] = None,
    ) -> Subscription:
        """
        Activate a subscription after its first successful payment.

        The paid period starts at period_start (default now) and lasts one
        billing cycle.
        """
        subscription = await self.get_subscription(subscription_id)
        start = period_start or utcnow()

        if subscription.billing_cycle.is_recurring():
            period_end = next_period_end(start, subscription.billing_cycle)
            next_billing_date = period_end
        else:
            # One-time packages keep the length they were sold with
            period_end = start + (
                subscription.current_period_end - subscription.current_period_start
            )
            next_billing_date = None

        updated = await self.update_subscription(
            subscription_id,
            SubscriptionUpdateModel(
                status=SubscriptionStatus.ACTIVE,
                current_period_start=start,
                current_period_end=period_end,
                next_billing_date=next_billing_date,
                retry_count=0,
                next_retry_at=None,
                last_renewal_error=None,
            ),
        )

        logger.info(
            f"Activated subscription {subscription_id} until {period_end.isoformat()}",
            extra={"subscription_id": subscription_id, "user_id": updated.user_id},
        )
        return updated

    @trace_span
    async def get_subscriptions_for_renewal(
        self, days_ahead: int, now: Optional[datetime] = None
    ) -> List[Subscription]:
        """
        Active, auto-renewing, recurring subscriptions billed within days_ahead.

        Subscriptions waiting out a retry delay are not returned until the
        delay has passed.
        """
        now = now or utcnow()
        cutoff = now + timedelta(days=days_ahead)
        return await self.subscription_repo.get_renewal_candidates(cutoff, now)

    @trace_span
    async def expire_lapsed_subscriptions(
        self, now: Optional[datetime] = None
    ) -> List[Subscription]:
        """
        Move active subscriptions that will not renew to expired once their
        period and grace period have both ended.
        """
        now = now or utcnow()
        lapsed = [
            subscription
            for subscription in await self.subscription_repo.get_lapsed(now)
            if subscription.current_period_end
            + timedelta(days=subscription.grace_period_days)
            <= now
        ]

        expired = []
        for subscription in lapsed:
            extra_data = dict(subscription.extra_data)
            extra_data["expired_at"] = now.isoformat()
            expired.append(
                await self.update_subscription(
                    subscription.id,
                    SubscriptionUpdateModel(
                        status=SubscriptionStatus.EXPIRED,
                        next_billing_date=None,
                        next_retry_at=None,
                        extra_data=extra_data,
                    ),
                )
            )
            logger.info(
                f"Expired subscription {subscription.id}",
                extra={
                    "subscription_id": subscription.id,
                    "user_id": subscription.user_id,
                    "period_end": subscription.current_period_end.isoformat(),
                },
            )
        return expired

    # ------------------------------------------------------------------
    # Payment ledger
    # ------------------------------------------------------------------

    @trace_span
    async def create_payment_transaction(
        self, transaction_data: PaymentTransactionCreateModel
    ) -> PaymentTransaction:
        return await self.transaction_repo.create(transaction_data)

    @trace_span
    async def get_payment_transaction(self, transaction_id: int) -> PaymentTransaction:
        payment = await self.transaction_repo.get(transaction_id)
        if not payment:
            raise NotFoundError(f"Payment transaction {transaction_id} not found")
        return payment

    @trace_span
    async def get_payment_by_ref(self, transaction_ref: str) -> Optional[PaymentTransaction]:
        return await self.transaction_repo.get_by_transaction_ref(transaction_ref)

    @trace_span
    async def update_payment_transaction(
        self, transaction_id: int, update_data: PaymentTransactionUpdateModel
    ) -> PaymentTransaction:
        """Move a ledger row to its outcome. Completed and refunded rows are frozen."""
        payment = await self.get_payment_transaction(transaction_id)
        if payment.is_final():
            raise ValidationError(
                f"Payment transaction {transaction_id} is {payment.status.value} "
                "and cannot be modified"
            )

        return await self.transaction_repo.update(transaction_id, update_data)

    @trace_span
    async def complete_payment_transaction(
        self,
        transaction_id: int,
        gateway_transaction_no: Optional[str] = None,
        gateway_response: Optional[Dict[str, Any]] = None,
    ) -> PaymentTransaction:
        return await self.update_payment_transaction(
            transaction_id,
            PaymentTransactionUpdateModel(
                status=PaymentStatus.COMPLETED,
                gateway_transaction_no=gateway_transaction_no,
                gateway_response=gateway_response,
                payment_date=utcnow(),
            ),
        )

    @trace_span
    async def fail_payment_transaction(
        self,
        transaction_id: int,
        failure_reason: str,
        gateway_response: Optional[Dict[str, Any]] = None,
    ) -> PaymentTransaction:
        return await self.update_payment_transaction(
            transaction_id,
            PaymentTransactionUpdateModel(
                status=PaymentStatus.FAILED,
                failure_reason=failure_reason,
                gateway_response=gateway_response,
            ),
        )

    @trace_span
    async def get_user_payment_history(
        self, user_id: int, limit: int = 50
    ) -> List[PaymentTransaction]:
        return await self.transaction_repo.get_by_user(user_id, limit=limit)

    # ------------------------------------------------------------------
    # Renewals
    # ------------------------------------------------------------------

    @trace_span
    async def create_subscription_renewal(
        self,
        subscription_id: int,
        payment_transaction_id: Optional[int] = None,
    ) -> SubscriptionRenewal:
        """
        Extend a subscription by one billing cycle and record the renewal.

        The new period starts where the current one ends, so a late renewal
        does not lose or gain days.
        """
        async with transaction():
            subscription = await self.get_subscription(subscription_id)
            if not subscription.billing_cycle.is_recurring():
                raise ValidationError(
                    f"Subscription {subscription_id} has a one-time billing cycle"
                )

            previous_end = subscription.current_period_end
            new_end = next_period_end(previous_end, subscription.billing_cycle)

            renewal = await self.renewal_repo.create(
                SubscriptionRenewalCreateModel(
                    subscription_id=subscription_id,
                    payment_transaction_id=payment_transaction_id,
                    renewal_date=utcnow(),
                    previous_period_end=previous_end,
                    new_period_end=new_end,
                    status=RenewalStatus.COMPLETED,
                )
            )

            await self.subscription_repo.update(
                subscription_id,
                SubscriptionUpdateModel(
                    current_period_start=previous_end,
                    current_period_end=new_end,
                    next_billing_date=new_end,
                ),
            )

        logger.info(
            f"Extended subscription {subscription_id} to {new_end.isoformat()}",
            extra={
                "subscription_id": subscription_id,
                "payment_transaction_id": payment_transaction_id,
                "previous_period_end": previous_end.isoformat(),
                "new_period_end": new_end.isoformat(),
            },
        )
        return renewal

    @trace_span
    async def get_subscription_renewals(
        self, subscription_id: int
    ) -> List[SubscriptionRenewal]:
        return await self.renewal_repo.get_by_subscription(subscription_id)

    @trace_span
    async def get_orphaned_renewal_payments(self) -> List[PaymentTransaction]:
        """Completed renewal charges whose period extension was never recorded."""
        return await self.transaction_repo.get_orphaned_renewals()

    @trace_span
    async def get_pending_renewal_payments(
        self, subscription_id: int
    ) -> List[PaymentTransaction]:
        return await self.transaction_repo.get_pending_renewals(subscription_id)

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    @trace_span
    async def get_plan_templates(self) -> List[MembershipPlan]:
        return await self.plan_repo.get_active()

    @trace_span
    async def get_plan(self, plan_id: int) -> MembershipPlan:
        plan = await self.plan_repo.get(plan_id)
        if not plan or not plan.is_active:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan
