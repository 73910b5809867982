"""In-process recurring timer for the order change detection job."""

from __future__ import annotations

import asyncio
import logging

from opsconsole.orders.detector import ChangeDetectionJob

logger = logging.getLogger(__name__)


class ChangeDetectionScheduler:
    """Ticks the detection job every ``interval_minutes``.

    A tick that lands while a run is in progress is dropped by the job's
    single-flight guard. Tick failures are logged and never stop the loop.
    """

    def __init__(self, job: ChangeDetectionJob):
        self.job = job
        self._task: asyncio.Task | None = None

    @property
    def is_started(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start the timer loop.

        Returns:
            False when the job is disabled by configuration
        """
        config = self.job.config
        if not config.enabled:
            logger.info(
                "Order change detection is disabled "
                "(set ORDER_CHANGE_DETECTOR_ENABLED=true to enable)"
            )
            return False
        if self.is_started:
            return True

        logger.info(
            f"Starting order change detection every {config.interval_minutes} minutes "
            f"(scan window {config.hours_to_scan}h, "
            f"auto-tag {'enabled' if config.auto_tag else 'disabled'}, "
            f"max {config.max_orders_per_run} orders per run)"
        )
        self._task = asyncio.create_task(self._loop(), name="order-change-detector")
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def tick(self) -> None:
        try:
            await self.job.run()
        except Exception:
            logger.exception("Scheduled order change detection run failed")

    async def _loop(self) -> None:
        config = self.job.config
        await asyncio.sleep(config.start_delay_seconds)
        while True:
            await self.tick()
            # At least one minute between runs
            await asyncio.sleep(max(config.interval_minutes, 1) * 60)
