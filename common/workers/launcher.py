"""
Process entry point for long-running workers.

A worker exposes three methods:
    start()         async, returns once the worker is asked to stop
    request_stop()  sync, safe to call from a signal handler
    stop()          async, releases connections and background tasks
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Callable, Optional

from common.core.otel_axiom_exporter import _initialize_telemetry, get_logger

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class WorkerLauncher:
    """Builds a worker, wires SIGINT/SIGTERM to it and always runs its cleanup."""

    def __init__(self):
        self.logger = get_logger(__name__)
        self.worker_instance: Optional[Any] = None
        self.failed = False

    def _setup_logging(self):
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )

    def _on_stop_signal(self, signum: int) -> None:
        self.logger.info(
            f"Received {signal.Signals(signum).name}, stopping worker after the current pass"
        )
        if self.worker_instance is not None:
            self.worker_instance.request_stop()

    def _register_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in STOP_SIGNALS:
            loop.add_signal_handler(signum, self._on_stop_signal, signum)

    async def run_async(self, worker_instance: Any, worker_name: str) -> None:
        """Run a worker until it returns or is signalled, then clean it up."""
        self.worker_instance = worker_instance
        self._register_signal_handlers()

        try:
            self.logger.info(f"Starting {worker_name}")
            await worker_instance.start()
        except Exception as e:
            self.failed = True
            self.logger.error(f"{worker_name} failed: {e}", exc_info=True)
        finally:
            try:
                await worker_instance.stop()
                self.logger.info(f"{worker_name} shut down")
            except Exception as cleanup_error:
                self.failed = True
                self.logger.error(
                    f"Error while stopping {worker_name}: {cleanup_error}",
                    exc_info=True,
                )

    def run(
        self,
        worker_factory: Callable[..., Any],
        worker_name: str,
        setup_logging: bool = True,
        **factory_kwargs: Any,
    ) -> None:
        """
        Configure telemetry and logging, build the worker and block until it exits.

        Exits the process with status 1 when the worker or its cleanup raised.
        """
        _initialize_telemetry()
        if setup_logging:
            self._setup_logging()

        worker_instance = worker_factory(**factory_kwargs)
        asyncio.run(self.run_async(worker_instance, worker_name))

        if self.failed:
            sys.exit(1)
