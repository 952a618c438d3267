"""
Domain models for the renewal job and its manager.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from common.core.config import settings
from packages.billing.models.domain.enums import RenewalOutcomeType


class RenewalJobConfig(BaseModel):
    """Tunables of the renewal job. Read at the start of every pass."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    check_interval_ms: int = Field(
        default_factory=lambda: settings.renewal_check_interval_ms, gt=0
    )
    days_before_expiry: int = Field(
        default_factory=lambda: settings.renewal_days_before_expiry, ge=0
    )
    max_retry_attempts: int = Field(
        default_factory=lambda: settings.renewal_max_retry_attempts, ge=1
    )
    retry_delay_ms: int = Field(
        default_factory=lambda: settings.renewal_retry_delay_ms, ge=0
    )
    item_delay_ms: int = Field(
        default_factory=lambda: settings.renewal_item_delay_ms, ge=0
    )
    charge_timeout_ms: int = Field(
        default_factory=lambda: settings.renewal_charge_timeout_ms, gt=0
    )


class RenewalResult(BaseModel):
    """Aggregate report of one renewal pass."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_checked: int = 0
    successful_renewals: int = 0
    failed_renewals: int = 0
    skipped_renewals: int = 0
    # Subset of failed_renewals that were rescheduled rather than suspended
    retry_scheduled: int = 0
    expired_subscriptions: int = 0
    errors: List[str] = Field(default_factory=list)


class RenewalOutcome(BaseModel):
    """Terminal state of one per-subscription renewal attempt."""

    subscription_id: int
    outcome: RenewalOutcomeType
    transaction_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.outcome == RenewalOutcomeType.RENEWED


class JobsConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enable_renewal_job: bool = True
    renewal_job_config: RenewalJobConfig = Field(default_factory=RenewalJobConfig)


class JobsConfigUpdate(BaseModel):
    """Partial update; unset fields keep their current values."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enable_renewal_job: Optional[bool] = None
    check_interval_ms: Optional[int] = Field(default=None, gt=0)
    days_before_expiry: Optional[int] = Field(default=None, ge=0)
    max_retry_attempts: Optional[int] = Field(default=None, ge=1)
    retry_delay_ms: Optional[int] = Field(default=None, ge=0)
    item_delay_ms: Optional[int] = Field(default=None, ge=0)
    charge_timeout_ms: Optional[int] = Field(default=None, gt=0)


class RenewalJobStatus(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_running: bool
    config: RenewalJobConfig


class JobsStatus(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_initialized: bool
    config: JobsConfig
    renewal_job: RenewalJobStatus


class ReconciliationResult(BaseModel):
    """Outcome of repairing completed renewal charges that never extended a period."""

    repaired: int = 0
    errors: List[str] = Field(default_factory=list)
