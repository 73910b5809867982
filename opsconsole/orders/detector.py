"""Order change detection job.

Scans recent fulfillment orders, compares each against its commerce order,
caches the outcome and optionally tags discrepant orders for operators.

Runs are single-flight: a run requested while another is in progress is
skipped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import ValidationError

from opsconsole.config import ChangeDetectorConfig, get_config
from opsconsole.core.errors import JobAlreadyRunningError
from opsconsole.integration.protocols import CommerceOrderLookup, FulfillmentClient
from opsconsole.models import (
    ChangeCacheEntry,
    FulfillmentOrder,
    JobStats,
    RunError,
    RunStats,
)
from opsconsole.orders.cache import ChangeCache, is_skippable
from opsconsole.orders.comparator import compare_orders

logger = logging.getLogger(__name__)

NO_COMMERCE_MATCH = "no_commerce_match"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class ChangeDetectionJob:
    """Compares fulfillment orders with their commerce orders on a schedule.

    Usage:
        job = ChangeDetectionJob(shopify, shipstation, ChangeCache(store))
        stats = await job.run()
    """

    def __init__(
        self,
        commerce: CommerceOrderLookup,
        fulfillment: FulfillmentClient,
        cache: ChangeCache,
        config: ChangeDetectorConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.commerce = commerce
        self.fulfillment = fulfillment
        self.cache = cache
        self.config = config or get_config().change_detector
        self._sleep = sleep
        self._clock = clock

        self.state = JobState.IDLE
        self.last_run_time: datetime | None = None
        self.last_run: RunStats | None = None
        self.stats = JobStats()

    @property
    def is_running(self) -> bool:
        return self.state is JobState.RUNNING

    def _now_ms(self) -> int:
        return _epoch_ms(self._clock())

    def should_skip(self, order_id: str | int) -> bool:
        """Apply the cache skip rule to one order at the current time."""
        return is_skippable(
            self.cache.get(order_id), self._now_ms(), self.config.freshness_window_ms
        )

    async def run(self) -> RunStats | None:
        """Execute one detection run.

        Returns:
            Run statistics, or None when a run was already in progress
        """
        if self.state is JobState.RUNNING:
            logger.info("Order change detection already running, skipping this run")
            return None

        self.state = JobState.RUNNING
        started = self._clock()
        self.last_run_time = started
        run_stats = RunStats(started_at=started)
        logger.info(f"Starting order change detection at {started.isoformat()}")

        try:
            await self._run(run_stats)
            self._record_run(run_stats, started)
            self._log_summary(run_stats)
        except Exception as exc:
            logger.exception("Order change detection failed")
            run_stats.errors.append(RunError(error=f"Job failed: {exc}"))
            run_stats.duration_seconds = (self._clock() - started).total_seconds()
            self.stats.last_error = str(exc)
        finally:
            self.state = JobState.IDLE

        self.last_run = run_stats
        return run_stats

    async def trigger_manual_run(self) -> RunStats:
        """Run immediately on operator request.

        Raises:
            JobAlreadyRunningError: If a run is in progress
        """
        if self.is_running:
            raise JobAlreadyRunningError()
        stats = await self.run()
        if stats is None:  # Lost the race to a scheduled tick
            raise JobAlreadyRunningError()
        return stats

    def get_status(self) -> dict[str, Any]:
        """Cumulative statistics plus scheduling state."""
        next_run = None
        if self.last_run_time is not None:
            next_run = self.last_run_time + timedelta(
                minutes=self.config.interval_minutes
            )
        return {
            **self.stats.model_dump(mode="json"),
            "config": {
                "enabled": self.config.enabled,
                "interval_minutes": self.config.interval_minutes,
                "hours_to_scan": self.config.hours_to_scan,
                "auto_tag": self.config.auto_tag,
                "max_orders_per_run": self.config.max_orders_per_run,
            },
            "is_running": self.is_running,
            "state": self.state.value,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "next_run_time": next_run.isoformat() if next_run else None,
            "last_run": self.last_run.model_dump(mode="json") if self.last_run else None,
        }

    # ------------------------------------------------------------------
    # Run body
    # ------------------------------------------------------------------

    async def _run(self, run_stats: RunStats) -> None:
        await self.cache.load_all()
        self.cache.evict_older_than(self.config.retention_window_ms, self._now_ms())

        now = self._clock()
        since = now - timedelta(hours=self.config.hours_to_scan)
        logger.info(f"Fetching orders from {since.isoformat()} to {now.isoformat()}")

        records = await self.fulfillment.search_orders(
            modified_since=since,
            modified_until=now,
            status=self.config.order_status,
            page_size=self.config.max_orders_per_run,
            page=1,
        )
        logger.info(f"Found {len(records)} orders to check")

        tag_id = await self._resolve_tag(run_stats) if records else None

        for index, record in enumerate(records, start=1):
            order = self._parse_order(record, run_stats)
            if order is not None:
                checked = True
                try:
                    checked = await self._check_order(order, tag_id, run_stats)
                except Exception as exc:
                    logger.error(f"Error processing order {order.order_number}: {exc}")
                    run_stats.errors.append(
                        RunError(
                            order_id=str(order.order_id),
                            order_number=order.order_number,
                            error=str(exc),
                        )
                    )
                # Paced whenever a lookup was attempted, including failed ones
                if checked:
                    await self._sleep(self.config.order_delay_seconds)

            if index % 10 == 0:
                logger.info(f"Progress: {index}/{len(records)} orders checked")

        await self.cache.save_all()

    def _parse_order(
        self, record: dict[str, Any] | FulfillmentOrder, run_stats: RunStats
    ) -> FulfillmentOrder | None:
        """Validate one search record; a bad record is an error for that order only."""
        try:
            return FulfillmentOrder.model_validate(record)
        except ValidationError as exc:
            order_id = record.get("orderId") if isinstance(record, dict) else None
            order_number = record.get("orderNumber") if isinstance(record, dict) else None
            logger.error(f"Invalid order record {order_number or order_id}: {exc}")
            run_stats.errors.append(
                RunError(
                    order_id=str(order_id) if order_id is not None else None,
                    order_number=str(order_number) if order_number is not None else None,
                    error=f"Invalid order record: {exc}",
                )
            )
            return None

    async def _resolve_tag(self, run_stats: RunStats) -> int | str | None:
        if not self.config.auto_tag:
            return None
        try:
            return await self.fulfillment.get_or_create_tag_id(self.config.tag_name)
        except Exception as exc:
            logger.error(f"Cannot resolve tag {self.config.tag_name!r}: {exc}")
            run_stats.errors.append(
                RunError(error=f"Tag lookup failed for {self.config.tag_name!r}: {exc}")
            )
            return None

    async def _check_order(
        self,
        order: FulfillmentOrder,
        tag_id: int | str | None,
        run_stats: RunStats,
    ) -> bool:
        """Compare one order. Returns False when it was skipped without any lookup."""
        order_id = str(order.order_id)
        previous = self.cache.get(order_id)

        if is_skippable(previous, self._now_ms(), self.config.freshness_window_ms):
            run_stats.orders_skipped += 1
            return False

        commerce_order = await self.commerce.get_order_by_number(order.order_number)
        if commerce_order is None:
            run_stats.errors.append(
                RunError(
                    order_id=order_id,
                    order_number=order.order_number,
                    error="No matching commerce order found",
                )
            )
            self.cache.put(
                order_id,
                ChangeCacheEntry(
                    last_checked=self._now_ms(),
                    has_changes=False,
                    order_number=order.order_number,
                    error=NO_COMMERCE_MATCH,
                ),
            )
            return True

        comparison = compare_orders(commerce_order, order)
        run_stats.orders_scanned += 1

        entry = ChangeCacheEntry(
            last_checked=self._now_ms(),
            has_changes=comparison.has_changes,
            changes=comparison.changes,
            order_number=order.order_number,
            tagged=False,
        )
        self.cache.put(order_id, entry)

        if comparison.has_changes:
            run_stats.changes_detected += 1
            if previous is None or not previous.has_changes:
                run_stats.new_changes += 1
                logger.warning(
                    f"Changes detected in order #{order.order_number} "
                    f"(ID {order_id}, customer {order.customer_name}): "
                    + "; ".join(change.description for change in comparison.changes)
                )

            if self.config.auto_tag and tag_id is not None:
                await self._tag_order(order, tag_id, entry, run_stats)

        return True

    async def _tag_order(
        self,
        order: FulfillmentOrder,
        tag_id: int | str,
        entry: ChangeCacheEntry,
        run_stats: RunStats,
    ) -> None:
        order_id = str(order.order_id)
        current_tags = {str(t) for t in (order.tag_ids or [])}
        if str(tag_id) in current_tags:
            entry.tagged = True
            return

        try:
            await self.fulfillment.add_tag_to_order(order.order_id, tag_id)
        except Exception as exc:
            logger.error(f"Failed to tag order {order.order_number}: {exc}")
            run_stats.errors.append(
                RunError(
                    order_id=order_id,
                    order_number=order.order_number,
                    error=f"Tagging failed: {exc}",
                )
            )
            return

        run_stats.orders_tagged += 1
        entry.tagged = True
        logger.info(f"Tagged order #{order.order_number}")
        await self._sleep(self.config.tag_delay_seconds)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record_run(self, run_stats: RunStats, started: datetime) -> None:
        run_stats.duration_seconds = (self._clock() - started).total_seconds()
        self.stats.total_runs += 1
        self.stats.last_run_date = self._clock()
        self.stats.last_run_duration_seconds = run_stats.duration_seconds
        self.stats.orders_scanned += run_stats.orders_scanned
        self.stats.changes_detected += run_stats.changes_detected
        self.stats.orders_tagged += run_stats.orders_tagged
        self.stats.last_error = None

    def _log_summary(self, run_stats: RunStats) -> None:
        logger.info(
            "Order change detection finished: "
            f"scanned={run_stats.orders_scanned} "
            f"skipped={run_stats.orders_skipped} "
            f"changes={run_stats.changes_detected} "
            f"new={run_stats.new_changes} "
            f"tagged={run_stats.orders_tagged} "
            f"errors={len(run_stats.errors)} "
            f"duration={run_stats.duration_seconds:.0f}s"
        )
        if run_stats.new_changes:
            logger.warning(
                f"{run_stats.new_changes} orders have new changes that need attention"
            )
