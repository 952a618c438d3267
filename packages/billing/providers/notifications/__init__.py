from .interface import RenewalNotifierInterface
from .factory import get_renewal_notifier

__all__ = ["RenewalNotifierInterface", "get_renewal_notifier"]
