"""
Service for renewing one subscription at a time.

Each attempt moves a subscription through
eligible -> charging -> renewed | retry_scheduled | suspended,
or ends early as skipped (not eligible / leased elsewhere) or
payment_method_missing (auto-renewal is switched off).

A renewal row left pending by an interrupted attempt is looked up at the
gateway before a new charge is made for the same subscription.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from common.core.dates import utcnow
from common.core.otel_axiom_exporter import trace_span, get_logger, log_span_event
from common.db.scoped import transaction
from common.providers.locking.factory import get_lock_provider
from packages.billing.lock_keys import (
    SUBSCRIPTION_RENEWAL_LOCK_TTL,
    subscription_renewal_lock_key,
)
from packages.billing.models.domain.enums import (
    PaymentMethodType,
    PaymentType,
    RenewalOutcomeType,
    SubscriptionStatus,
)
from packages.billing.models.domain.gateway import ChargeResult
from packages.billing.models.domain.payment_method import PaymentMethod
from packages.billing.models.domain.payment_transaction import (
    PaymentTransaction,
    PaymentTransactionCreateModel,
)
from packages.billing.models.domain.renewal import (
    ReconciliationResult,
    RenewalJobConfig,
    RenewalOutcome,
)
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.subscription_renewal import SubscriptionRenewal
from packages.billing.providers.notifications.factory import get_renewal_notifier
from packages.billing.providers.notifications.interface import (
    RenewalNotifierInterface,
)
from packages.billing.providers.payment.factory import get_payment_gateway
from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.providers.payment.vnpay_gateway import generate_txn_ref
from packages.billing.services.payment_method_service import PaymentMethodService
from packages.billing.services.subscription_service import SubscriptionService

logger = get_logger(__name__)

NO_PAYMENT_METHOD_REASON = "No active payment method"


class RenewalService:
    """Per-subscription renewal state machine and ledger reconciliation."""

    def __init__(
        self,
        gateway: Optional[PaymentGatewayInterface] = None,
        notifier: Optional[RenewalNotifierInterface] = None,
    ):
        self.subscription_service = SubscriptionService()
        self.payment_method_service = PaymentMethodService()
        self.lock_provider = get_lock_provider()
        self.notifier = notifier or get_renewal_notifier()
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGatewayInterface:
        """Gateway resolved on first use; raises SigningError when unconfigured."""
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    @trace_span
    async def renew_subscription(
        self,
        subscription: Subscription,
        config: RenewalJobConfig,
        now: Optional[datetime] = None,
    ) -> RenewalOutcome:
        """
        Renew one candidate under its distributed lease.

        The subscription is re-read once the lease is held, so a candidate
        renewed by another process since it was selected is skipped.
        """
        lock_key = subscription_renewal_lock_key(subscription.id)
        async with self.lock_provider.lease(
            lock_key, SUBSCRIPTION_RENEWAL_LOCK_TTL
        ) as token:
            if not token:
                logger.info(
                    f"Renewal of subscription {subscription.id} already in progress elsewhere",
                    extra={"subscription_id": subscription.id},
                )
                return RenewalOutcome(
                    subscription_id=subscription.id,
                    outcome=RenewalOutcomeType.SKIPPED,
                    error="Renewal already in progress",
                )

            current = await self.subscription_service.get_subscription(
                subscription.id
            )
            cutoff = (now or utcnow()) + timedelta(days=config.days_before_expiry)
            if current.next_billing_date and current.next_billing_date > cutoff:
                return RenewalOutcome(
                    subscription_id=current.id,
                    outcome=RenewalOutcomeType.SKIPPED,
                    error="Subscription is no longer due",
                )

            return await self.process_subscription(current, config)

    @trace_span
    async def process_subscription(
        self, subscription: Subscription, config: RenewalJobConfig
    ) -> RenewalOutcome:
        """Run one renewal attempt for a subscription the caller holds the lease for."""
        ineligible = self._ineligibility_reason(subscription)
        if ineligible:
            return RenewalOutcome(
                subscription_id=subscription.id,
                outcome=RenewalOutcomeType.SKIPPED,
                error=ineligible,
            )

        payment_method = await self.payment_method_service.get_default_payment_method(
            subscription.user_id
        )
        if not payment_method:
            await self._disable_auto_renewal(subscription)
            return RenewalOutcome(
                subscription_id=subscription.id,
                outcome=RenewalOutcomeType.PAYMENT_METHOD_MISSING,
                error=NO_PAYMENT_METHOD_REASON,
            )

        # Resolved before any ledger row exists: a misconfigured gateway must
        # not count as a failed charge against the customer
        gateway = self.gateway

        resolved = await self._resolve_pending_payments(gateway, subscription, config)
        if resolved:
            return resolved

        payment = await self.subscription_service.create_payment_transaction(
            PaymentTransactionCreateModel(
                subscription_id=subscription.id,
                user_id=subscription.user_id,
                amount=subscription.amount,
                currency=subscription.currency,
                payment_method=PaymentMethodType.VNPAY,
                payment_type=PaymentType.RENEWAL,
                transaction_ref=generate_txn_ref(),
                due_date=subscription.next_billing_date,
                description=(
                    f"Auto-renewal {subscription.plan_type.value} "
                    f"{subscription.billing_cycle.value} subscription"
                ),
                extra_data={"payment_method_id": payment_method.id},
            )
        )

        charge = await self._charge(gateway, subscription, payment_method, payment, config)

        if charge.success:
            return await self._handle_success(subscription, payment_method, payment, charge)
        return await self._handle_failure(subscription, payment, charge, config)

    @staticmethod
    def _ineligibility_reason(subscription: Subscription) -> Optional[str]:
        if subscription.status != SubscriptionStatus.ACTIVE:
            return "Subscription is not active"
        if not subscription.auto_renewal:
            return "Auto-renewal is disabled"
        if not subscription.billing_cycle.is_recurring():
            return "One-time subscription does not need renewal"
        return None

    async def _charge(
        self,
        gateway: PaymentGatewayInterface,
        subscription: Subscription,
        payment_method: PaymentMethod,
        payment: PaymentTransaction,
        config: RenewalJobConfig,
    ) -> ChargeResult:
        """Charge the stored token. Timeouts and gateway exceptions are failures."""
        timeout_seconds = config.charge_timeout_ms / 1000
        try:
            return await asyncio.wait_for(
                gateway.charge_stored_token(
                    payment_method,
                    subscription.amount,
                    payment.transaction_ref,
                    payment.description or f"Renewal {subscription.id}",
                ),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Charge for subscription {subscription.id} timed out after {timeout_seconds}s",
                extra={"subscription_id": subscription.id, "payment_id": payment.id},
            )
            return ChargeResult(
                success=False,
                error=f"Payment gateway timed out after {config.charge_timeout_ms}ms",
            )
        except Exception as e:
            logger.error(
                f"Charge for subscription {subscription.id} raised: {e}",
                extra={"subscription_id": subscription.id, "payment_id": payment.id},
                exc_info=True,
            )
            return ChargeResult(success=False, error=str(e) or type(e).__name__)

    async def _handle_success(
        self,
        subscription: Subscription,
        payment_method: PaymentMethod,
        payment: PaymentTransaction,
        charge: ChargeResult,
    ) -> RenewalOutcome:
        # Committed on its own: if the extension fails, the completed row is
        # left as an orphan for reconciliation and blocks a second charge
        await self.subscription_service.complete_payment_transaction(
            payment.id,
            gateway_transaction_no=charge.transaction_id,
            gateway_response=charge.raw,
        )
        renewal = await self._extend_after_payment(subscription.id, payment.id)

        log_span_event(
            "Subscription renewed",
            {
                "subscription_id": subscription.id,
                "user_id": subscription.user_id,
                "payment_id": payment.id,
                "gateway_transaction_id": charge.transaction_id,
                "amount": subscription.amount,
                "payment_method_id": payment_method.id,
                "new_period_end": renewal.new_period_end.isoformat(),
            },
        )
        return RenewalOutcome(
            subscription_id=subscription.id,
            outcome=RenewalOutcomeType.RENEWED,
            transaction_id=payment.id,
        )

    async def _extend_after_payment(
        self, subscription_id: int, payment_id: int
    ) -> SubscriptionRenewal:
        """Extend the period for a completed charge and clear retry bookkeeping."""
        async with transaction():
            subscription = await self.subscription_service.get_subscription(
                subscription_id
            )
            renewal = await self.subscription_service.create_subscription_renewal(
                subscription_id, payment_id
            )
            extra_data = dict(subscription.extra_data)
            extra_data["last_renewal_at"] = utcnow().isoformat()
            await self.subscription_service.update_subscription(
                subscription_id,
                SubscriptionUpdateModel(
                    retry_count=0,
                    next_retry_at=None,
                    last_renewal_error=None,
                    extra_data=extra_data,
                ),
            )
        return renewal

    async def _resolve_pending_payments(
        self,
        gateway: PaymentGatewayInterface,
        subscription: Subscription,
        config: RenewalJobConfig,
    ) -> Optional[RenewalOutcome]:
        """
        Settle renewal rows an earlier attempt left pending before charging again.

        A row the gateway settled completes the renewal without a new charge.
        A row the gateway never saw, or saw fail, is marked failed. A row whose
        state cannot be learned, or is still in progress, blocks the charge
        until a later pass.
        """
        pending = await self.subscription_service.get_pending_renewal_payments(
            subscription.id
        )
        for payment in pending:
            state = None
            if payment.transaction_ref:
                try:
                    state = await asyncio.wait_for(
                        gateway.query_transaction(
                            payment.transaction_ref, payment.created_at or utcnow()
                        ),
                        timeout=config.charge_timeout_ms / 1000,
                    )
                except Exception as e:
                    error = str(e) or type(e).__name__
                    logger.error(
                        f"Could not resolve pending renewal payment {payment.id}: {error}",
                        extra={"subscription_id": subscription.id, "payment_id": payment.id},
                    )
                    return RenewalOutcome(
                        subscription_id=subscription.id,
                        outcome=RenewalOutcomeType.SKIPPED,
                        transaction_id=payment.id,
                        error=f"Pending renewal payment {payment.id} is unresolved: {error}",
                    )

            if state is not None and state.is_settled:
                logger.warning(
                    f"Pending renewal payment {payment.id} was settled by the gateway",
                    extra={"subscription_id": subscription.id, "payment_id": payment.id},
                )
                await self.subscription_service.complete_payment_transaction(
                    payment.id,
                    gateway_transaction_no=state.transaction_id,
                    gateway_response=state.raw,
                )
                await self._extend_after_payment(subscription.id, payment.id)
                return RenewalOutcome(
                    subscription_id=subscription.id,
                    outcome=RenewalOutcomeType.RENEWED,
                    transaction_id=payment.id,
                )

            if state is not None and state.is_pending:
                return RenewalOutcome(
                    subscription_id=subscription.id,
                    outcome=RenewalOutcomeType.SKIPPED,
                    transaction_id=payment.id,
                    error=f"Pending renewal payment {payment.id} is still in progress",
                )

            await self.subscription_service.fail_payment_transaction(
                payment.id,
                "Charge was not completed at the gateway",
                gateway_response=state.raw if state else None,
            )
        return None

    async def _handle_failure(
        self,
        subscription: Subscription,
        payment: PaymentTransaction,
        charge: ChargeResult,
        config: RenewalJobConfig,
    ) -> RenewalOutcome:
        error = charge.error or "Unknown payment error"
        now = utcnow()
        attempts = subscription.retry_count + 1

        if attempts >= config.max_retry_attempts:
            extra_data = dict(subscription.extra_data)
            extra_data.update(
                renewal_failed=True,
                renewal_failure_reason=error,
                max_retry_reached=True,
                suspended_at=now.isoformat(),
            )
            update_data = SubscriptionUpdateModel(
                status=SubscriptionStatus.SUSPENDED,
                auto_renewal=False,
                suspended_at=now,
                retry_count=attempts,
                next_retry_at=None,
                last_renewal_error=error,
                extra_data=extra_data,
            )
            outcome = RenewalOutcomeType.SUSPENDED
        else:
            next_retry_at = now + timedelta(milliseconds=config.retry_delay_ms)
            update_data = SubscriptionUpdateModel(
                retry_count=attempts,
                next_retry_at=next_retry_at,
                last_renewal_error=error,
            )
            outcome = RenewalOutcomeType.RETRY_SCHEDULED

        async with transaction():
            await self.subscription_service.fail_payment_transaction(
                payment.id, error, gateway_response=charge.raw
            )
            await self.subscription_service.update_subscription(
                subscription.id, update_data
            )

        log_span_event(
            "Subscription renewal failed",
            {
                "subscription_id": subscription.id,
                "user_id": subscription.user_id,
                "payment_id": payment.id,
                "error": error,
                "attempt": attempts,
                "max_attempts": config.max_retry_attempts,
                "outcome": outcome.value,
            },
        )

        if outcome == RenewalOutcomeType.SUSPENDED:
            await self._notify_failure(subscription, "max_retry_reached", error)

        return RenewalOutcome(
            subscription_id=subscription.id,
            outcome=outcome,
            transaction_id=payment.id,
            error=error,
        )

    async def _disable_auto_renewal(self, subscription: Subscription) -> None:
        extra_data = dict(subscription.extra_data)
        extra_data.update(
            auto_renewal_disabled_reason=NO_PAYMENT_METHOD_REASON,
            auto_renewal_disabled_at=utcnow().isoformat(),
        )
        await self.subscription_service.update_subscription(
            subscription.id,
            SubscriptionUpdateModel(auto_renewal=False, extra_data=extra_data),
        )
        logger.warning(
            f"Disabled auto-renewal for subscription {subscription.id}: {NO_PAYMENT_METHOD_REASON}",
            extra={"subscription_id": subscription.id, "user_id": subscription.user_id},
        )

    async def _notify_failure(
        self, subscription: Subscription, reason: str, error: Optional[str]
    ) -> None:
        # Best effort: the suspension is already persisted
        try:
            await self.notifier.notify_renewal_failure(subscription, reason, error)
        except Exception as e:
            logger.error(
                f"Failed to send renewal failure notification: {e}",
                extra={"subscription_id": subscription.id},
                exc_info=True,
            )

    @trace_span
    async def reconcile_orphaned_transactions(self) -> ReconciliationResult:
        """
        Extend periods for completed renewal charges that have no renewal row.

        Such rows are left behind when a process dies, or the extension
        fails, after the charge was recorded as completed. The unique payment_transaction_id on renewal rows keeps the
        repair from being applied twice.
        """
        result = ReconciliationResult()
        orphans = await self.subscription_service.get_orphaned_renewal_payments()

        for payment in orphans:
            lock_key = subscription_renewal_lock_key(payment.subscription_id)
            try:
                async with self.lock_provider.lease(
                    lock_key, SUBSCRIPTION_RENEWAL_LOCK_TTL
                ) as token:
                    if not token:
                        continue
                    await self._extend_after_payment(
                        payment.subscription_id, payment.id
                    )
                result.repaired += 1
                logger.warning(
                    f"Repaired orphaned renewal payment {payment.id}",
                    extra={
                        "payment_id": payment.id,
                        "subscription_id": payment.subscription_id,
                    },
                )
            except Exception as e:
                logger.error(
                    f"Failed to reconcile payment {payment.id}: {e}",
                    extra={"payment_id": payment.id},
                    exc_info=True,
                )
                result.errors.append(f"Failed to reconcile payment {payment.id}: {e}")

        return result
