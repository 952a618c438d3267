"""
Service for first payments through the hosted gateway page.

setup_recurring_payment creates a pending subscription and ledger row and
returns a signed redirect URL. handle_payment_return consumes the signed
callback, settles the ledger row, stores the card token for auto-renewal and
activates the subscription.
"""

import time
from datetime import timedelta
from typing import Any, Mapping, Optional

from common.core.dates import utcnow
from common.core.exceptions import (
    InvalidSignatureError,
    NotFoundError,
    SigningError,
    ValidationError,
)
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.scoped import transaction
from packages.billing.models.domain.enums import (
    PaymentMethodType,
    PaymentStatus,
    PaymentType,
    PlanType,
    SubscriptionStatus,
)
from packages.billing.models.domain.gateway import (
    CallbackResult,
    PaymentReturnResult,
    PaymentUrlRequest,
    RecurringPaymentResult,
    RecurringPaymentSetup,
)
from packages.billing.models.domain.payment_method import PaymentMethodCreateModel
from packages.billing.models.domain.payment_transaction import (
    PaymentTransaction,
    PaymentTransactionCreateModel,
    PaymentTransactionUpdateModel,
)
from packages.billing.models.domain.plans import MembershipPlan
from packages.billing.models.domain.subscription import SubscriptionCreateModel
from packages.billing.periods import next_period_end
from packages.billing.providers.payment.factory import get_payment_gateway
from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.providers.payment.response_codes import (
    BankCode,
    card_brand_from_number,
)
from packages.billing.services.payment_method_service import PaymentMethodService
from packages.billing.services.subscription_service import SubscriptionService

logger = get_logger(__name__)

# Length of a one-time package when the plan does not say otherwise
DEFAULT_ONE_TIME_DAYS = 30


def build_setup_txn_ref(plan_type: PlanType, payment_id: int) -> str:
    return f"{plan_type.value.upper()}_{payment_id}_{int(time.time() * 1000)}"


def extract_payment_id(txn_ref: Optional[str]) -> Optional[int]:
    """Payment id from a '<PLAN>_<paymentId>_<ms>' reference."""
    if not txn_ref:
        return None
    parts = txn_ref.split("_")
    if len(parts) < 3 or not parts[1].isdigit():
        return None
    return int(parts[1])


class PaymentService:
    """Service for gateway-hosted first payments."""

    def __init__(self, gateway: Optional[PaymentGatewayInterface] = None):
        self.subscription_service = SubscriptionService()
        self.payment_method_service = PaymentMethodService()
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGatewayInterface:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    @trace_span
    async def setup_recurring_payment(
        self, setup: RecurringPaymentSetup
    ) -> RecurringPaymentResult:
        """
        Start a first payment for a plan.

        Premium plans are paid by international card so the gateway can
        tokenize it for later renewals.
        """
        plan = await self.subscription_service.get_plan(setup.plan_id)
        is_recurring = plan.plan_type.is_recurring() and plan.billing_cycle.is_recurring()
        now = utcnow()

        async with transaction():
            subscription = await self.subscription_service.create_subscription(
                SubscriptionCreateModel(
                    user_id=setup.user_id,
                    plan_type=plan.plan_type,
                    status=SubscriptionStatus.PENDING_PAYMENT,
                    amount=plan.amount,
                    currency=plan.currency,
                    billing_cycle=plan.billing_cycle,
                    current_period_start=now,
                    current_period_end=self._initial_period_end(plan, now),
                    auto_renewal=is_recurring,
                    plan_features=plan.features,
                    extra_data={"plan_id": plan.id},
                )
            )
            payment = await self.subscription_service.create_payment_transaction(
                PaymentTransactionCreateModel(
                    subscription_id=subscription.id,
                    user_id=setup.user_id,
                    amount=plan.amount,
                    currency=plan.currency,
                    payment_method=PaymentMethodType.VNPAY,
                    payment_type=(
                        PaymentType.SUBSCRIPTION if is_recurring else PaymentType.ONE_TIME
                    ),
                    description=f"{plan.name} ({plan.billing_cycle.value})",
                    extra_data={
                        "setup_recurring": is_recurring,
                        "plan_type": plan.plan_type.value,
                    },
                )
            )

        txn_ref = build_setup_txn_ref(plan.plan_type, payment.id)
        request = PaymentUrlRequest(
            amount=plan.amount,
            order_info=f"{plan.name} - payment {payment.id}",
            txn_ref=txn_ref,
            ip_addr=setup.ip_addr,
            order_type="subscription" if is_recurring else "other",
            bank_code=BankCode.INTCARD.value if is_recurring else None,
            return_url=setup.return_url,
        )

        try:
            payment_url = self.gateway.build_payment_url(request)
        except SigningError:
            await self.subscription_service.fail_payment_transaction(
                payment.id, "Payment gateway is not configured"
            )
            raise

        await self.subscription_service.update_payment_transaction(
            payment.id, PaymentTransactionUpdateModel(transaction_ref=txn_ref)
        )

        logger.info(
            f"Created payment {payment.id} for user {setup.user_id}",
            extra={
                "payment_id": payment.id,
                "subscription_id": subscription.id,
                "user_id": setup.user_id,
                "txn_ref": txn_ref,
            },
        )
        return RecurringPaymentResult(
            payment_id=payment.id,
            subscription_id=subscription.id,
            txn_ref=txn_ref,
            payment_url=payment_url,
        )

    @staticmethod
    def _initial_period_end(plan: MembershipPlan, start):
        if plan.billing_cycle.is_recurring():
            return next_period_end(start, plan.billing_cycle)
        days = (plan.features or {}).get("duration_days", DEFAULT_ONE_TIME_DAYS)
        return start + timedelta(days=int(days))

    async def _find_payment(self, callback: CallbackResult) -> PaymentTransaction:
        payment = None
        if callback.txn_ref:
            payment = await self.subscription_service.get_payment_by_ref(
                callback.txn_ref
            )
        if payment:
            return payment

        payment_id = extract_payment_id(callback.txn_ref)
        if not payment_id:
            raise NotFoundError(f"Payment for reference {callback.txn_ref} not found")
        return await self.subscription_service.get_payment_transaction(payment_id)

    @trace_span
    async def handle_payment_return(
        self, params: Mapping[str, Any]
    ) -> PaymentReturnResult:
        """
        Settle a payment from signed gateway return/IPN parameters.

        Raises:
            InvalidSignatureError: Signature did not verify; nothing is written
            NotFoundError: No payment matches the transaction reference
            ValidationError: Paid amount differs from the ledger amount
        """
        callback = self.gateway.parse_callback(params)
        if not callback.is_valid:
            raise InvalidSignatureError("Invalid payment signature")

        payment = await self._find_payment(callback)

        if callback.amount is not None and callback.amount != payment.amount:
            raise ValidationError(
                f"Paid amount {callback.amount} does not match payment {payment.id}"
            )

        if payment.status != PaymentStatus.PENDING:
            logger.info(
                f"Payment {payment.id} already {payment.status.value}, ignoring callback",
                extra={"payment_id": payment.id, "txn_ref": callback.txn_ref},
            )
            return PaymentReturnResult(
                success=payment.status == PaymentStatus.COMPLETED,
                message="Payment already processed",
                payment_id=payment.id,
                subscription_id=payment.subscription_id,
                already_processed=True,
            )

        gateway_response = dict(params)

        if not callback.is_success:
            await self.subscription_service.fail_payment_transaction(
                payment.id, callback.message, gateway_response=gateway_response
            )
            logger.info(
                f"Payment {payment.id} failed: {callback.message}",
                extra={
                    "payment_id": payment.id,
                    "response_code": callback.response_code,
                },
            )
            return PaymentReturnResult(
                success=False,
                message=callback.message,
                payment_id=payment.id,
                subscription_id=payment.subscription_id,
            )

        async with transaction():
            await self.subscription_service.complete_payment_transaction(
                payment.id,
                gateway_transaction_no=callback.transaction_no,
                gateway_response=gateway_response,
            )
            if callback.card_type:
                await self._save_card(payment, callback, params)
            if payment.subscription_id:
                await self.subscription_service.activate_subscription(
                    payment.subscription_id
                )

        logger.info(
            f"Payment {payment.id} completed",
            extra={
                "payment_id": payment.id,
                "subscription_id": payment.subscription_id,
                "gateway_transaction_no": callback.transaction_no,
            },
        )
        return PaymentReturnResult(
            success=True,
            message=callback.message,
            payment_id=payment.id,
            subscription_id=payment.subscription_id,
        )

    async def _save_card(
        self,
        payment: PaymentTransaction,
        callback: CallbackResult,
        params: Mapping[str, Any],
    ) -> None:
        token = params.get("vnp_Token")
        if not token:
            logger.warning(
                f"Payment {payment.id} returned card details without a token",
                extra={"payment_id": payment.id},
            )
            return

        card_number = str(params.get("vnp_CardNumber") or "")
        last_4 = "".join(ch for ch in card_number if ch.isdigit())[-4:] or None

        await self.payment_method_service.save_payment_method(
            PaymentMethodCreateModel(
                user_id=payment.user_id,
                subscription_id=payment.subscription_id,
                payment_method_token=token,
                card_last_4=last_4,
                card_brand=card_brand_from_number(card_number),
                is_active=True,
                is_default=True,
                gateway_customer_id=params.get("vnp_TmnCode"),
                gateway_payment_method_id=callback.transaction_no,
                extra_data={
                    "card_type": callback.card_type,
                    "bank_code": callback.bank_code,
                    "created_from_payment": payment.id,
                },
            )
        )
