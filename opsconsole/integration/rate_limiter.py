"""Rate limiting for outbound platform API calls.

Enforces a minimum interval between requests to the same host so the
commerce and fulfillment APIs are not hammered.
"""

from __future__ import annotations

import asyncio
import logging
import time
import urllib.parse
from typing import Dict

logger = logging.getLogger(__name__)


class RateLimiter:
    """Minimum-interval rate limiter per host.

    Example:
        >>> limiter = RateLimiter(delay_seconds=0.55)
        >>> await limiter.acquire("shop.myshopify.com")  # First call: no wait
        >>> await limiter.acquire("shop.myshopify.com")  # Second call: waits 0.55s
    """

    def __init__(self, delay_seconds: float = 0.55):
        """Initialize rate limiter.

        Args:
            delay_seconds: Minimum delay between requests to the same host
        """
        self.delay = delay_seconds
        self.last_request: Dict[str, float] = {}
        self.lock = asyncio.Lock()

    async def acquire(self, host: str) -> None:
        """Wait until the rate limit allows the next request to ``host``."""
        async with self.lock:
            now = time.monotonic()
            last = self.last_request.get(host)
            if last is not None:
                elapsed = now - last
                if elapsed < self.delay:
                    wait = self.delay - elapsed
                    logger.debug(f"Rate limiting {host}: waiting {wait:.2f}s")
                    await asyncio.sleep(wait)

            self.last_request[host] = time.monotonic()

    async def acquire_url(self, url: str) -> None:
        """Wait on the host of a full URL."""
        await self.acquire(self.get_host_from_url(url))

    def get_host_from_url(self, url: str) -> str:
        """Extract host from URL.

        Example:
            >>> limiter.get_host_from_url("https://shop.myshopify.com/admin")
            'shop.myshopify.com'
        """
        return urllib.parse.urlparse(url).netloc

    def reset(self, host: str) -> None:
        """Forget the last request time for ``host``."""
        if host in self.last_request:
            del self.last_request[host]
            logger.debug(f"Reset rate limit state for {host}")

    def get_time_until_ready(self, host: str) -> float:
        """Seconds until the next request to ``host`` is allowed (0 if ready)."""
        last = self.last_request.get(host)
        if last is None:
            return 0
        elapsed = time.monotonic() - last
        if elapsed >= self.delay:
            return 0
        return self.delay - elapsed
