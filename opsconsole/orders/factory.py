"""Builds a change detection job wired to the configured platforms and cache."""

from __future__ import annotations

from opsconsole.config import AppConfig, get_config
from opsconsole.integration.shipstation_client import ShipStationClient
from opsconsole.integration.shopify_client import ShopifyClient
from opsconsole.orders.cache import (
    CacheStore,
    ChangeCache,
    JsonFileCacheStore,
    RedisCacheStore,
)
from opsconsole.orders.detector import ChangeDetectionJob


def build_cache_store(config: AppConfig | None = None) -> CacheStore:
    config = config or get_config()
    detector = config.change_detector
    if detector.cache_backend == "redis":
        return RedisCacheStore(config.redis_url, key=detector.redis_key)
    if detector.cache_backend != "file":
        raise ValueError(
            f"Unknown ORDER_CHANGE_CACHE_BACKEND {detector.cache_backend!r} "
            "(expected 'file' or 'redis')"
        )
    return JsonFileCacheStore(detector.cache_path)


def build_change_detection_job(config: AppConfig | None = None) -> ChangeDetectionJob:
    """Create the job with live Shopify/ShipStation clients.

    Raises:
        KeyError: If platform credentials are missing
    """
    config = config or get_config()
    return ChangeDetectionJob(
        commerce=ShopifyClient(config.shopify),
        fulfillment=ShipStationClient(config.shipstation),
        cache=ChangeCache(build_cache_store(config)),
        config=config.change_detector,
    )


async def close_change_detection_job(job: ChangeDetectionJob) -> None:
    """Release HTTP clients and cache connections held by the job."""
    for resource in (job.commerce, job.fulfillment, job.cache.store):
        close = getattr(resource, "close", None)
        if close is not None:
            await close()
