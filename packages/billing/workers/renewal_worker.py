import asyncio
from typing import Optional
from uuid import uuid4

from common.core.otel_axiom_exporter import get_logger
from common.db.session import dispose_engine
from common.providers.locking.factory import get_lock_provider
from packages.billing.jobs.manager import JobsManager

logger = get_logger(__name__)


class RenewalWorker:
    """
    Dedicated process for the renewal timer.

    Runs the same JobsManager the API lifespan runs, without serving HTTP.
    Per-subscription leases keep the two from charging the same subscription.
    """

    def __init__(self, jobs_manager: Optional[JobsManager] = None):
        self.worker_id = f"renewal_worker_{uuid4()}"
        self.jobs_manager = jobs_manager or JobsManager()
        self.running = False
        self._stop_requested = asyncio.Event()

    async def start(self):
        if self.running:
            logger.warning(f"Worker {self.worker_id} is already running")
            return

        if not self.jobs_manager.background_jobs_allowed:
            logger.warning(
                f"Worker {self.worker_id} not started: background jobs are disabled "
                "in this environment (set ENABLE_BACKGROUND_JOBS=true to opt in)"
            )
            return

        self.running = True
        await self.jobs_manager.initialize()
        logger.info(f"Worker {self.worker_id} started")

        await self._stop_requested.wait()

    def request_stop(self):
        """Signal-safe: wakes start() so the launcher can run stop()."""
        self.running = False
        self._stop_requested.set()

    async def stop(self):
        self.request_stop()
        await self.jobs_manager.shutdown()
        await get_lock_provider().disconnect()
        await dispose_engine()
        logger.info(f"Worker {self.worker_id} stopped")
