from abc import ABC, abstractmethod
from typing import Optional

from packages.billing.models.domain.subscription import Subscription


class RenewalNotifierInterface(ABC):
    """Notifies users about renewal problems on their subscription."""

    @abstractmethod
    async def notify_renewal_failure(
        self, subscription: Subscription, reason: str, error: Optional[str] = None
    ) -> None:
        """
        Tell the user a renewal could not be completed.

        Args:
            subscription: Subscription as it was before the failed attempt
            reason: Machine-readable reason, e.g. "max_retry_reached"
            error: Gateway error message, when there is one
        """
        pass
