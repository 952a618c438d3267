from typing import Optional

from common.core.otel_axiom_exporter import get_logger, trace_span
from packages.billing.models.domain.subscription import Subscription
from packages.billing.providers.notifications.interface import (
    RenewalNotifierInterface,
)

logger = get_logger(__name__)


class LoggingRenewalNotifier(RenewalNotifierInterface):
    """Records renewal notifications in the application log."""

    @trace_span
    async def notify_renewal_failure(
        self, subscription: Subscription, reason: str, error: Optional[str] = None
    ) -> None:
        logger.warning(
            f"Renewal failure notification for user {subscription.user_id}: {reason}",
            extra={
                "subscription_id": subscription.id,
                "user_id": subscription.user_id,
                "reason": reason,
                "error": error,
            },
        )
