"""Scheduling of background report completion."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

CompletionRunner = Callable[[str], Awaitable[None]]


class ReportScheduler(Protocol):
    def schedule(self, report_id: str) -> None: ...


class CeleryReportScheduler:
    """Enqueue a durable completion job; a Celery worker runs it after the delay."""

    def __init__(self, delay_seconds: float):
        self.delay_seconds = delay_seconds

    def schedule(self, report_id: str) -> None:
        from digest_api.worker import complete_report

        complete_report.apply_async(args=[report_id], countdown=self.delay_seconds)
        logger.info(f"Enqueued completion for {report_id} (countdown={self.delay_seconds}s)")


class InProcessReportScheduler:
    """
    Run completion on the current event loop after a delay.

    Work scheduled here is lost if the process exits before it runs, so this
    is meant for local development and tests only.
    """

    def __init__(self, delay_seconds: float):
        self.delay_seconds = delay_seconds
        self._runner: Optional[CompletionRunner] = None
        self._tasks: set[asyncio.Task] = set()

    def bind(self, runner: CompletionRunner) -> None:
        self._runner = runner

    def schedule(self, report_id: str) -> None:
        if self._runner is None:
            raise RuntimeError("InProcessReportScheduler has no completion runner bound")

        task = asyncio.get_running_loop().create_task(self._run(report_id))
        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, report_id: str) -> None:
        await asyncio.sleep(self.delay_seconds)
        try:
            await self._runner(report_id)
        except Exception:
            logger.exception(f"Background completion failed for {report_id}")

    async def drain(self) -> None:
        """Wait for all scheduled completions (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
