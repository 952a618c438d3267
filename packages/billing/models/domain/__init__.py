"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    PlanType,
    BillingCycle,
    PaymentMethodType,
    PaymentType,
    PaymentStatus,
    RenewalStatus,
    RenewalOutcomeType,
)
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
from packages.billing.models.domain.payment_method import (
    PaymentMethod,
    PaymentMethodCreateModel,
    PaymentMethodUpdateModel,
)
from packages.billing.models.domain.subscription_renewal import (
    SubscriptionRenewal,
    SubscriptionRenewalCreateModel,
)
from packages.billing.models.domain.plans import (
    MembershipPlan,
    MembershipPlanCreateModel,
)
from packages.billing.models.domain.renewal import (
    RenewalJobConfig,
    RenewalResult,
    RenewalOutcome,
    JobsConfig,
    JobsConfigUpdate,
    JobsStatus,
    RenewalJobStatus,
    ReconciliationResult,
)
from packages.billing.models.domain.gateway import (
    PaymentUrlRequest,
    ChargeResult,
    CallbackResult,
    RecurringPaymentSetup,
    RecurringPaymentResult,
    PaymentReturnResult,
)

__all__ = [
    # Enums
    "SubscriptionStatus",
    "PlanType",
    "BillingCycle",
    "PaymentMethodType",
    "PaymentType",
    "PaymentStatus",
    "RenewalStatus",
    "RenewalOutcomeType",
    # Subscription
    "Subscription",
    "SubscriptionCreateModel",
    "SubscriptionUpdateModel",
    # Ledger
    "PaymentTransaction",
    "PaymentTransactionCreateModel",
    "PaymentTransactionUpdateModel",
    # Vault
    "PaymentMethod",
    "PaymentMethodCreateModel",
    "PaymentMethodUpdateModel",
    # Renewals
    "SubscriptionRenewal",
    "SubscriptionRenewalCreateModel",
    "RenewalJobConfig",
    "RenewalResult",
    "RenewalOutcome",
    "JobsConfig",
    "JobsConfigUpdate",
    "JobsStatus",
    "RenewalJobStatus",
    "ReconciliationResult",
    # Plans
    "MembershipPlan",
    "MembershipPlanCreateModel",
    # Gateway
    "PaymentUrlRequest",
    "ChargeResult",
    "CallbackResult",
    "RecurringPaymentSetup",
    "RecurringPaymentResult",
    "PaymentReturnResult",
]
