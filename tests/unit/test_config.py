"""Unit tests for OpsConsole configuration management.

Tests AppConfig loading from environment variables and defaults.
"""

from __future__ import annotations

from pathlib import Path

from opsconsole.config import (
    FRESHNESS_WINDOW_MS,
    RETENTION_WINDOW_MS,
    AppConfig,
    get_config,
    reset_config,
)


class TestAppConfig:
    """Test AppConfig creation from the environment."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ORDER_CHANGE_CACHE_PATH", raising=False)

        config = AppConfig.from_env()
        detector = config.change_detector

        assert detector.enabled is True
        assert detector.interval_minutes == 15
        assert detector.hours_to_scan == 24
        assert detector.auto_tag is False
        assert detector.max_orders_per_run == 500
        assert detector.tag_name == "ORDER CHANGE"
        assert detector.cache_backend == "file"
        assert detector.cache_path == Path("data/order-change-cache.json")
        assert detector.scheduler == "web"
        assert detector.order_delay_seconds == 0.55
        assert detector.tag_delay_seconds == 0.15

    def test_windows(self):
        detector = AppConfig.from_env().change_detector

        assert detector.freshness_window_ms == FRESHNESS_WINDOW_MS == 6 * 3600 * 1000
        assert detector.retention_window_ms == RETENTION_WINDOW_MS == 7 * 24 * 3600 * 1000

    def test_detector_overrides(self, monkeypatch):
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_INTERVAL", "5")
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_HOURS", "48")
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_AUTO_TAG", "true")
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_MAX_ORDERS", "100")
        monkeypatch.setenv("ORDER_CHANGE_TAG_NAME", "CHECK ITEMS")
        monkeypatch.setenv("ORDER_CHANGE_CACHE_BACKEND", "REDIS")

        detector = AppConfig.from_env().change_detector

        assert detector.interval_minutes == 5
        assert detector.hours_to_scan == 48
        assert detector.auto_tag is True
        assert detector.max_orders_per_run == 100
        assert detector.tag_name == "CHECK ITEMS"
        assert detector.cache_backend == "redis"

    def test_only_literal_false_disables(self, monkeypatch):
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_ENABLED", "no")
        assert AppConfig.from_env().change_detector.enabled is True

        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_ENABLED", "FALSE")
        assert AppConfig.from_env().change_detector.enabled is False

    def test_only_literal_true_enables_auto_tag(self, monkeypatch):
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_AUTO_TAG", "yes")
        assert AppConfig.from_env().change_detector.auto_tag is False

    def test_bad_integers_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_INTERVAL", "soon")
        monkeypatch.setenv("DB_POOL_SIZE", "")

        config = AppConfig.from_env()

        assert config.change_detector.interval_minutes == 15
        assert config.db.pool_size == 10

    def test_non_positive_detector_values_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_INTERVAL", "0")
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_MAX_ORDERS", "0")
        monkeypatch.setenv("ORDER_CHANGE_DETECTOR_HOURS", "-1")

        detector = AppConfig.from_env().change_detector

        assert detector.interval_minutes == 15
        assert detector.max_orders_per_run == 500
        assert detector.hours_to_scan == 24

    def test_zero_pool_overflow_is_kept(self, monkeypatch):
        monkeypatch.setenv("DB_POOL_MAX_OVERFLOW", "0")

        assert AppConfig.from_env().db.pool_max_overflow == 0

    def test_platform_credentials(self, monkeypatch):
        monkeypatch.setenv("SHOPIFY_STORE", "example.myshopify.com")
        monkeypatch.setenv("SHOPIFY_ACCESS_TOKEN", "shpat_test")
        monkeypatch.setenv("SHIPSTATION_API_KEY", "key")
        monkeypatch.setenv("SHIPSTATION_API_SECRET", "secret")

        config = AppConfig.from_env()

        assert config.shopify.store == "example.myshopify.com"
        assert config.shopify.api_version == "2024-01"
        assert config.shipstation.api_key == "key"
        assert config.shipstation.base_url == "https://ssapi.shipstation.com"

    def test_missing_credentials_do_not_fail_at_load(self):
        config = AppConfig.from_env()

        assert config.shopify.store is None
        assert config.shipstation.api_key is None

    def test_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@localhost/ops")
        monkeypatch.setenv("DB_ECHO", "true")

        config = AppConfig.from_env()

        assert config.db.url == "postgresql+asyncpg://u:p@localhost/ops"
        assert config.db.echo is True


class TestGetConfig:
    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset_rereads_environment(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        reset_config()

        second = get_config()

        assert second is not first
        assert second.log_level == "DEBUG"
