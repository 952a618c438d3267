from .interface import RenewalNotifierInterface
from .logging_notifier import LoggingRenewalNotifier


def get_renewal_notifier() -> RenewalNotifierInterface:
    """Get the renewal notifier instance."""
    return LoggingRenewalNotifier()
