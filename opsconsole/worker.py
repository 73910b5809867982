"""arq worker running order change detection on a cron schedule.

Start with ``arq opsconsole.worker.WorkerSettings`` and set
ORDER_CHANGE_DETECTOR_SCHEDULER=worker so the web app does not run its own
in-process timer as well.
"""

import logging
from typing import Any

from arq.connections import RedisSettings
from arq.cron import cron

from opsconsole.config import get_config
from opsconsole.core.logging import configure_logging
from opsconsole.orders.factory import (
    build_change_detection_job,
    close_change_detection_job,
)

logger = logging.getLogger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """Build the detection job once per worker process."""
    configure_logging()
    ctx["change_detection_job"] = build_change_detection_job()
    logger.info("Worker started. Change detection job initialized.")


async def shutdown(ctx: dict[str, Any]) -> None:
    job = ctx.get("change_detection_job")
    if job is not None:
        await close_change_detection_job(job)
    logger.info("Worker stopped. Platform clients closed.")


async def detect_order_changes(ctx: dict[str, Any]) -> dict[str, Any] | None:
    """Run one detection pass.

    Returns:
        Run statistics, or None when a run was already in progress
    """
    job = ctx["change_detection_job"]
    stats = await job.run()
    return stats.model_dump(mode="json") if stats is not None else None


def _cron_jobs() -> list:
    detector = get_config().change_detector
    if not detector.enabled or detector.scheduler != "worker":
        return []
    interval = max(1, detector.interval_minutes)
    minutes = set(range(0, 60, min(interval, 60)))
    # Cron minutes repeat every hour, so only divisors of 60 space runs evenly
    if 60 % interval:
        logger.warning(
            f"Interval of {interval} minutes cannot be expressed as an hourly cron; "
            f"running at minutes {sorted(minutes)} of every hour instead"
        )
    return [
        cron(
            detect_order_changes,
            minute=minutes,
            run_at_startup=True,
            unique=True,
        )
    ]


class WorkerSettings:
    functions = [detect_order_changes]
    cron_jobs = _cron_jobs()
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_config().redis_url)
