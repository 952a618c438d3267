"""
Lifecycle owner for background billing jobs.

One JobsManager is built by each composition root (the API lifespan or the
renewal worker) and handed to whatever needs it; there is no global instance.
"""

from typing import Any, Dict, Optional, Union

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from packages.billing.jobs.renewal_job import RenewalJob
from packages.billing.models.domain.renewal import (
    JobsConfig,
    JobsConfigUpdate,
    JobsStatus,
    RenewalJobConfig,
    RenewalJobStatus,
    RenewalResult,
)

logger = get_logger(__name__)

NESTED_CONFIG_KEYS = ("renewal_job_config", "renewalJobConfig")

RENEWAL_CONFIG_FIELDS = (
    "check_interval_ms",
    "days_before_expiry",
    "max_retry_attempts",
    "retry_delay_ms",
    "item_delay_ms",
    "charge_timeout_ms",
)


class JobsManager:
    """Starts, stops and reconfigures the renewal job."""

    def __init__(
        self,
        config: Optional[JobsConfig] = None,
        renewal_job: Optional[RenewalJob] = None,
        background_jobs_allowed: Optional[bool] = None,
    ):
        self.config = config or JobsConfig()
        self.renewal_job = renewal_job or RenewalJob(
            self.config.renewal_job_config.model_copy()
        )
        self._background_jobs_allowed = background_jobs_allowed
        self.is_initialized = False

    @property
    def background_jobs_allowed(self) -> bool:
        if self._background_jobs_allowed is not None:
            return self._background_jobs_allowed
        return settings.background_jobs_allowed

    @staticmethod
    def _as_update(
        changes: Union[JobsConfig, JobsConfigUpdate, Dict[str, Any], None]
    ) -> JobsConfigUpdate:
        if changes is None:
            return JobsConfigUpdate()
        if isinstance(changes, JobsConfigUpdate):
            return changes
        if isinstance(changes, JobsConfig):
            changes = changes.model_dump(exclude_unset=True)

        # Flatten the nested job config; only keys the caller sent are merged
        flat = dict(changes)
        for key in NESTED_CONFIG_KEYS:
            nested = flat.pop(key, None)
            if isinstance(nested, RenewalJobConfig):
                nested = nested.model_dump(exclude_unset=True)
            if nested:
                flat.update(nested)
        return JobsConfigUpdate.model_validate(flat)

    def _merge(self, update: JobsConfigUpdate) -> None:
        values = update.model_dump(exclude_unset=True, exclude_none=True)

        if "enable_renewal_job" in values:
            self.config.enable_renewal_job = values.pop("enable_renewal_job")

        renewal_changes = {k: v for k, v in values.items() if k in RENEWAL_CONFIG_FIELDS}
        if renewal_changes:
            self.config.renewal_job_config = self.config.renewal_job_config.model_copy(
                update=renewal_changes
            )
            self.renewal_job.update_config(self.config.renewal_job_config.model_copy())

    async def initialize(
        self, config: Union[JobsConfig, JobsConfigUpdate, Dict[str, Any], None] = None
    ) -> None:
        """Merge config and start enabled jobs. Calling it again is a no-op."""
        if self.is_initialized:
            logger.info("Jobs manager already initialized")
            return

        self._merge(self._as_update(config))

        if self.config.enable_renewal_job and self.background_jobs_allowed:
            await self.renewal_job.start()
        elif self.config.enable_renewal_job:
            logger.info(
                "Background jobs are disabled in this environment; "
                "renewal job can only be run manually",
                extra={"environment": settings.environment.value},
            )

        self.is_initialized = True
        logger.info(
            "Jobs manager initialized",
            extra={
                "renewal_job_running": self.renewal_job.is_running,
                "environment": settings.environment.value,
            },
        )

    async def shutdown(self) -> None:
        if not self.is_initialized:
            return

        await self.renewal_job.stop()
        self.is_initialized = False
        logger.info("Jobs manager shut down")

    async def run_manually(self) -> RenewalResult:
        """Run one renewal pass now. The timer is left alone."""
        logger.info("Running renewal job manually")
        return await self.renewal_job.run_once()

    def get_status(self) -> JobsStatus:
        return JobsStatus(
            is_initialized=self.is_initialized,
            config=self.config.model_copy(deep=True),
            renewal_job=RenewalJobStatus(
                is_running=self.renewal_job.is_running,
                config=self.renewal_job.config.model_copy(),
            ),
        )

    async def update_config(
        self, changes: Union[JobsConfigUpdate, Dict[str, Any]]
    ) -> JobsStatus:
        """
        Merge a partial config.

        Interval and threshold changes reach the running job without a
        restart. Toggling enable_renewal_job starts or stops the timer once
        the manager is initialized.
        """
        self._merge(self._as_update(changes))

        if self.is_initialized:
            should_run = self.config.enable_renewal_job and self.background_jobs_allowed
            if should_run and not self.renewal_job.is_running:
                await self.renewal_job.start()
            elif not should_run and self.renewal_job.is_running:
                await self.renewal_job.stop()

        return self.get_status()
