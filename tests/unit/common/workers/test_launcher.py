import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from common.workers.launcher import WorkerLauncher


class _StoppableWorker:
    def __init__(self):
        self._stop = asyncio.Event()
        self.stopped = False

    async def start(self):
        await self._stop.wait()

    def request_stop(self):
        self._stop.set()

    async def stop(self):
        self.stopped = True


class TestWorkerLauncher:
    async def test_stop_signal_wakes_worker_and_runs_cleanup(self):
        launcher = WorkerLauncher()
        worker = _StoppableWorker()

        task = asyncio.create_task(launcher.run_async(worker, "Test Worker"))
        await asyncio.sleep(0)
        launcher._on_stop_signal(15)
        await asyncio.wait_for(task, timeout=1)

        assert worker.stopped is True
        assert launcher.failed is False

    async def test_crashing_worker_is_still_stopped(self):
        launcher = WorkerLauncher()
        worker = MagicMock()
        worker.start = AsyncMock(side_effect=RuntimeError("redis unreachable"))
        worker.stop = AsyncMock()

        await launcher.run_async(worker, "Test Worker")

        worker.stop.assert_awaited_once()
        assert launcher.failed is True

    async def test_cleanup_error_marks_failure(self):
        launcher = WorkerLauncher()
        worker = MagicMock()
        worker.start = AsyncMock()
        worker.stop = AsyncMock(side_effect=RuntimeError("dispose failed"))

        await launcher.run_async(worker, "Test Worker")

        assert launcher.failed is True

    def test_run_exits_non_zero_on_failure(self, monkeypatch):
        monkeypatch.setattr("common.workers.launcher._initialize_telemetry", MagicMock())
        worker = MagicMock()
        worker.start = AsyncMock(side_effect=RuntimeError("boom"))
        worker.stop = AsyncMock()

        with pytest.raises(SystemExit) as exc_info:
            WorkerLauncher().run(lambda: worker, "Test Worker", setup_logging=False)

        assert exc_info.value.code == 1
