"""Lock key generators for billing package."""


# Lease TTL for one subscription's renewal attempt (seconds). Must outlive the
# charge timeout so the lease cannot lapse while a charge is in flight.
SUBSCRIPTION_RENEWAL_LOCK_TTL = 120


def subscription_renewal_lock_key(subscription_id: int) -> str:
    """Generate lock key for a subscription renewal attempt.

    Held while a subscription is charged and its outcome written, so a
    scheduled pass and a manual run in another process never charge the same
    subscription twice.
    """
    return f"renewal:subscription:{subscription_id}"
