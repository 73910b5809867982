"""Tests for opsconsole.web.app - lifespan wiring and exception handlers."""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from opsconsole.core.errors import PlatformAPIError
from opsconsole.web.app import app


class TestLifespan:
    def test_starts_without_platform_credentials(self):
        with TestClient(app) as client:
            assert app.state.change_detection_job is None
            assert app.state.pick_state is None

            response = client.get("/api/order-change-detector/job-status")

        assert response.status_code == 503

    def test_health_reports_database_and_detector(self):
        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "database": "connected",
            "change_detector": "disabled",
        }

    def test_request_id_is_echoed(self):
        with TestClient(app) as client:
            given = client.get("/health", headers={"X-Request-ID": "req-123"})
            generated = client.get("/health")

        assert given.headers["X-Request-ID"] == "req-123"
        assert len(generated.headers["X-Request-ID"]) == 32


class TestExceptionHandlers:
    def test_platform_error_maps_to_502(self):
        job = MagicMock()
        job.fulfillment.get_order_by_number = AsyncMock(
            side_effect=PlatformAPIError("ShipStation", "unavailable", status_code=503)
        )

        with TestClient(app) as client:
            app.state.change_detection_job = job
            response = client.get("/api/order-change-detector/compare/1001")

        assert response.status_code == 502
        assert response.json()["platform"] == "ShipStation"
        assert "ShipStation API error 503" in response.json()["detail"]
