"""
Billing enums - strongly typed enumerations for subscription and payment states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Subscription status lifecycle.

    Flow: pending_payment -> active -> (suspended | cancelled | expired)
    """

    ACTIVE = "active"  # Paid and within its period
    EXPIRED = "expired"  # Period lapsed with no auto-renewal
    CANCELLED = "cancelled"  # User cancelled subscription
    SUSPENDED = "suspended"  # Renewal retries exhausted
    PENDING_PAYMENT = "pending_payment"  # Created, first payment not confirmed

    def has_access(self) -> bool:
        """Check if this status allows product access."""
        return self == SubscriptionStatus.ACTIVE


class PlanType(str, Enum):
    """Membership plan types."""

    FREE = "free"
    PREMIUM = "premium"  # Recurring, card is tokenized for auto-renewal
    PARTNER = "partner"  # One-off package

    def is_recurring(self) -> bool:
        return self == PlanType.PREMIUM


class BillingCycle(str, Enum):
    """How often a subscription is billed."""

    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"

    def is_recurring(self) -> bool:
        return self != BillingCycle.ONE_TIME


class PaymentMethodType(str, Enum):
    """Channel a payment was made through."""

    VNPAY = "vnpay"
    MOMO = "momo"
    BANK_TRANSFER = "bank_transfer"
    QR_CODE = "qr_code"
    CARD = "card"


class PaymentType(str, Enum):
    """Why a payment was taken."""

    SUBSCRIPTION = "subscription"
    ONE_TIME = "one_time"
    RENEWAL = "renewal"
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"


class PaymentStatus(str, Enum):
    """Ledger row status. Completed and refunded rows are final."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    def is_final(self) -> bool:
        """Final rows are immutable."""
        return self in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED)


class RenewalStatus(str, Enum):
    """Status of a subscription renewal audit row."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    FAILED = "failed"


class RenewalOutcomeType(str, Enum):
    """Terminal state of one per-subscription renewal attempt."""

    RENEWED = "renewed"
    RETRY_SCHEDULED = "retry_scheduled"
    SUSPENDED = "suspended"
    SKIPPED = "skipped"
    PAYMENT_METHOD_MISSING = "payment_method_missing"

    def is_failure(self) -> bool:
        """Outcomes counted in failed_renewals."""
        return self in (
            RenewalOutcomeType.RETRY_SCHEDULED,
            RenewalOutcomeType.SUSPENDED,
            RenewalOutcomeType.PAYMENT_METHOD_MISSING,
        )
