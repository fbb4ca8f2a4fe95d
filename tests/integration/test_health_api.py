# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for health endpoints and the application factory."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.routes.health import ComponentHealth


class TestHealthEndpoints:
    """Tests for /health and /health/ready."""

    def test_liveness_is_public(self) -> None:
        client = TestClient(create_app())

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @patch("src.api.routes.health.check_redis", new_callable=AsyncMock)
    @patch("src.api.routes.health.check_database", new_callable=AsyncMock)
    def test_readiness_reports_each_dependency(self, mock_db_check, mock_redis_check) -> None:
        mock_db_check.return_value = ComponentHealth(status="healthy", latency_ms=1.2)
        mock_redis_check.return_value = ComponentHealth(status="unhealthy", message="refused")

        client = TestClient(create_app())
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["ready"] is False
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["redis"]["status"] == "unhealthy"


class TestApplicationFactory:
    """Tests for create_app."""

    def test_api_routes_mounted(self) -> None:
        app = create_app()
        routes = [route.path for route in app.routes]

        assert "/api/v1/behavior/at-risk" in routes
        assert "/api/v1/interventions" in routes
        assert "/health" in routes

    def test_protected_route_without_token(self) -> None:
        client = TestClient(create_app())

        response = client.get("/api/v1/behavior/at-risk")

        assert response.status_code == 401
