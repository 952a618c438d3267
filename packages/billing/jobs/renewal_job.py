"""
Recurring renewal pass.

A pass repairs orphaned renewal charges, expires subscriptions that lapsed
without auto-renewal, then selects due subscriptions and renews them one by
one, sleeping between candidates to throttle load on the payment gateway.
Only one pass runs at a time per process: a pass requested while another is
in flight returns the in-flight pass's result.
"""

import asyncio
import time
from typing import Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import RenewalOutcomeType
from packages.billing.models.domain.renewal import RenewalJobConfig, RenewalResult
from packages.billing.services.renewal_service import RenewalService

logger = get_logger(__name__)


class RenewalJob:
    """Owns the renewal timer and the single-pass entry point."""

    def __init__(
        self,
        config: Optional[RenewalJobConfig] = None,
        renewal_service: Optional[RenewalService] = None,
    ):
        self.config = config or RenewalJobConfig()
        self.renewal_service = renewal_service or RenewalService()
        self._timer_task: Optional[asyncio.Task] = None
        self._current_pass: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def update_config(self, config: RenewalJobConfig) -> None:
        """Replace the config. Picked up by the next pass and the next sleep."""
        self.config = config
        logger.info(
            "Renewal job config updated",
            extra={"renewal_config": config.model_dump()},
        )

    async def start(self) -> None:
        """Run a pass now, then every check_interval_ms until stopped."""
        if self.is_running:
            logger.info("Renewal job is already running")
            return

        logger.info(
            f"Starting renewal job, interval {self.config.check_interval_ms}ms",
            extra={"renewal_config": self.config.model_dump()},
        )
        self._timer_task = asyncio.create_task(
            self._run_forever(), name="renewal-job-timer"
        )

    async def stop(self) -> None:
        """Cancel the timer. A pass already charging is allowed to finish."""
        if not self.is_running:
            logger.info("Renewal job is not running")
            return

        logger.info("Stopping renewal job")
        self._timer_task.cancel()
        try:
            await self._timer_task
        except asyncio.CancelledError:
            pass
        self._timer_task = None

        if self._current_pass is not None and not self._current_pass.done():
            await asyncio.wait({self._current_pass})

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                # Never let a pass end the timer
                logger.error(f"Renewal pass crashed: {e}", exc_info=True)
            await asyncio.sleep(self.config.check_interval_ms / 1000)

    async def run_once(self) -> RenewalResult:
        """Run a single renewal pass, or join the one already in flight."""
        if self._current_pass is not None and not self._current_pass.done():
            logger.info("Renewal pass already in progress, waiting for its result")
        else:
            self._current_pass = asyncio.create_task(
                self._run_pass(), name="renewal-job-pass"
            )
        # Shielded so a cancelled caller does not abort a pass mid-charge
        return await asyncio.shield(self._current_pass)

    @trace_span
    async def _run_pass(self) -> RenewalResult:
        config = self.config
        started = time.perf_counter()
        result = RenewalResult()
        subscription_service = self.renewal_service.subscription_service

        logger.info("Starting renewal check")

        # Repair first: an unextended paid period would otherwise be charged again
        try:
            reconciliation = await self.renewal_service.reconcile_orphaned_transactions()
            result.errors.extend(reconciliation.errors)
        except Exception as e:
            logger.error(f"Reconciliation failed: {e}", exc_info=True)
            result.errors.append(f"Reconciliation failed: {e}")

        try:
            expired = await subscription_service.expire_lapsed_subscriptions()
            result.expired_subscriptions = len(expired)
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}", exc_info=True)
            result.errors.append(f"Expiry sweep failed: {e}")

        try:
            candidates = await subscription_service.get_subscriptions_for_renewal(
                config.days_before_expiry
            )
        except Exception as e:
            logger.error(f"Failed to fetch subscriptions: {e}", exc_info=True)
            result.errors.append(f"Failed to fetch subscriptions: {e}")
            return result

        if not candidates:
            logger.info("No subscriptions due for renewal")
            return result

        result.total_checked = len(candidates)
        logger.info(f"Found {len(candidates)} subscriptions due for renewal")

        for index, subscription in enumerate(candidates):
            if index > 0 and config.item_delay_ms:
                await asyncio.sleep(config.item_delay_ms / 1000)

            try:
                outcome = await self.renewal_service.renew_subscription(
                    subscription, config
                )
            except Exception as e:
                logger.error(
                    f"Exception renewing subscription {subscription.id}: {e}",
                    extra={"subscription_id": subscription.id},
                    exc_info=True,
                )
                result.failed_renewals += 1
                result.errors.append(f"Exception renewing {subscription.id}: {e}")
                continue

            if outcome.is_success:
                result.successful_renewals += 1
            elif outcome.outcome.is_failure():
                result.failed_renewals += 1
                if outcome.outcome == RenewalOutcomeType.RETRY_SCHEDULED:
                    result.retry_scheduled += 1
                result.errors.append(
                    f"Failed to renew {subscription.id}: {outcome.error}"
                )
            else:
                result.skipped_renewals += 1

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Renewal check completed in {duration_ms:.0f}ms",
            extra={
                "total": result.total_checked,
                "success": result.successful_renewals,
                "failed": result.failed_renewals,
                "skipped": result.skipped_renewals,
                "retry_scheduled": result.retry_scheduled,
                "expired": result.expired_subscriptions,
                "error_count": len(result.errors),
            },
        )
        return result
