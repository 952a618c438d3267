"""Background billing jobs."""

from packages.billing.jobs.renewal_job import RenewalJob
from packages.billing.jobs.manager import JobsManager

__all__ = ["RenewalJob", "JobsManager"]
