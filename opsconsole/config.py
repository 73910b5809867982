"""OpsConsole configuration management.

Loads configuration from environment variables with sensible defaults.
Platform credentials are only required when a platform client is built.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


# Re-check suppression and retention windows for the change detector
FRESHNESS_WINDOW_MS = 6 * 60 * 60 * 1000
RETENTION_WINDOW_MS = 7 * 24 * 60 * 60 * 1000


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_positive_int(name: str, default: int) -> int:
    # Zero or negative counts and intervals mean "unset", as with an empty value
    value = _env_int(name, default)
    return value if value > 0 else default


@dataclass
class DBConfig:
    """Catalog database connection configuration."""

    url: str = "sqlite+aiosqlite:///./opsconsole.db"
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False  # SQL logging


@dataclass
class ShopifyConfig:
    """Commerce platform (Shopify Admin API) settings."""

    store: str | None = None
    access_token: str | None = None
    api_version: str = "2024-01"
    min_request_interval: float = 0.55  # ~2 rps REST limit


@dataclass
class ShipStationConfig:
    """Fulfillment platform (ShipStation) settings."""

    api_key: str | None = None
    api_secret: str | None = None
    base_url: str = "https://ssapi.shipstation.com"


@dataclass
class ChangeDetectorConfig:
    """Order change detection job settings."""

    enabled: bool = True
    interval_minutes: int = 15
    hours_to_scan: int = 24
    auto_tag: bool = False
    max_orders_per_run: int = 500
    tag_name: str = "ORDER CHANGE"
    order_status: str = "awaiting_shipment"

    # Cache persistence
    cache_backend: str = "file"  # file or redis
    cache_path: Path = Path("data/order-change-cache.json")
    redis_key: str = "opsconsole:order-change-cache"

    # Windows (constants, not read from the environment)
    freshness_window_ms: int = FRESHNESS_WINDOW_MS
    retention_window_ms: int = RETENTION_WINDOW_MS

    # Courtesy delays between fulfillment platform calls
    order_delay_seconds: float = 0.55
    tag_delay_seconds: float = 0.15
    start_delay_seconds: float = 5.0

    # Where the recurring timer lives: "web" (in-process) or "worker" (arq cron)
    scheduler: str = "web"


@dataclass
class AppConfig:
    """Root application configuration."""

    db: DBConfig = field(default_factory=DBConfig)
    log_level: str = "INFO"
    log_format: str = "text"  # json or text
    redis_url: str = "redis://localhost:6379/0"

    shopify: ShopifyConfig = field(default_factory=ShopifyConfig)
    shipstation: ShipStationConfig = field(default_factory=ShipStationConfig)
    change_detector: ChangeDetectorConfig = field(default_factory=ChangeDetectorConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Optional (with defaults):
        - DATABASE_URL: catalog database (default: local SQLite file)
        - ORDER_CHANGE_DETECTOR_ENABLED: anything but "false" enables the job
        - ORDER_CHANGE_DETECTOR_INTERVAL: minutes between runs (default: 15)
        - ORDER_CHANGE_DETECTOR_HOURS: trailing scan window (default: 24)
        - ORDER_CHANGE_DETECTOR_AUTO_TAG: only "true" enables tagging
        - ORDER_CHANGE_DETECTOR_MAX_ORDERS: orders fetched per run (default: 500)
        - SHOPIFY_STORE / SHOPIFY_ACCESS_TOKEN, SHIPSTATION_API_KEY / SHIPSTATION_API_SECRET
        """
        return cls(
            db=DBConfig(
                url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./opsconsole.db"),
                pool_size=_env_int("DB_POOL_SIZE", 10),
                pool_max_overflow=_env_int("DB_POOL_MAX_OVERFLOW", 20),
                pool_timeout=_env_int("DB_POOL_TIMEOUT", 30),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            shopify=ShopifyConfig(
                store=os.getenv("SHOPIFY_STORE"),
                access_token=os.getenv("SHOPIFY_ACCESS_TOKEN"),
                api_version=os.getenv("SHOPIFY_API_VERSION", "2024-01"),
            ),
            shipstation=ShipStationConfig(
                api_key=os.getenv("SHIPSTATION_API_KEY"),
                api_secret=os.getenv("SHIPSTATION_API_SECRET"),
                base_url=os.getenv(
                    "SHIPSTATION_BASE_URL", "https://ssapi.shipstation.com"
                ),
            ),
            change_detector=ChangeDetectorConfig(
                enabled=os.getenv("ORDER_CHANGE_DETECTOR_ENABLED", "true").lower()
                != "false",
                interval_minutes=_env_positive_int("ORDER_CHANGE_DETECTOR_INTERVAL", 15),
                hours_to_scan=_env_positive_int("ORDER_CHANGE_DETECTOR_HOURS", 24),
                auto_tag=os.getenv("ORDER_CHANGE_DETECTOR_AUTO_TAG", "false").lower()
                == "true",
                max_orders_per_run=_env_positive_int("ORDER_CHANGE_DETECTOR_MAX_ORDERS", 500),
                tag_name=os.getenv("ORDER_CHANGE_TAG_NAME", "ORDER CHANGE"),
                cache_backend=os.getenv("ORDER_CHANGE_CACHE_BACKEND", "file").lower(),
                cache_path=Path(
                    os.getenv("ORDER_CHANGE_CACHE_PATH", "data/order-change-cache.json")
                ),
                scheduler=os.getenv("ORDER_CHANGE_DETECTOR_SCHEDULER", "web").lower(),
            ),
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached singleton so the next call re-reads the environment."""
    global _config
    _config = None
