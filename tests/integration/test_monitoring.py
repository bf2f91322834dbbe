"""
Integration tests for health, metrics and error handling
"""
from unittest.mock import MagicMock, patch

from fastapi import status

from painel_ml.monitoring.prometheus_metrics import PrometheusMetrics, normalize_endpoint


class TestHealthEndpoints:
    """Test health check endpoints"""

    def test_basic_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "painel-ml"
        assert "timestamp" in data

    @patch("painel_ml.api.routes.health.get_cache")
    def test_readiness_check_healthy(self, mock_get_cache, client):
        mock_get_cache.return_value.ping.return_value = True

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        checks = response.json()["checks"]
        assert checks["database"]["status"] == "healthy"
        assert checks["redis"]["status"] == "healthy"

    @patch("painel_ml.api.routes.health.get_cache")
    def test_readiness_check_redis_down(self, mock_get_cache, client):
        mock_get_cache.return_value.ping.return_value = False

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["checks"]["redis"]["error"] == "PING failed"

    def test_liveness_check(self, client):
        response = client.get("/health/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "alive"

    def test_root(self, client):
        data = client.get("/").json()
        assert data == {"name": "Painel ML API", "version": "1.0.0", "status": "operational"}


class TestMetricsEndpoint:
    """Test Prometheus metrics endpoint"""

    def test_metrics_endpoint(self, client):
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == status.HTTP_200_OK
        content = response.text
        assert "painel_http_requests_total" in content
        assert "painel_http_request_duration_seconds" in content
        assert 'endpoint="/health"' in content

    def test_normalize_endpoint(self):
        assert normalize_endpoint("/items-management/item/MLB123") == "/items-management/item/{meli_id}"
        assert normalize_endpoint("/shipments/sync/4000123") == "/shipments/sync/{id}"
        assert (normalize_endpoint("/sync/3eb1c21d-3538-4cab-a98a-9894460e2c4d/status")
                == "/sync/{uuid}/status")

    def test_track_sync(self):
        metrics = PrometheusMetrics()
        metrics.track_sync("orders", "completed", 1.5)

        value = metrics.registry.get_sample_value(
            "painel_sync_operations_total", {"scope": "orders", "status": "completed"}
        )
        assert value == 1.0


class TestErrorHandling:
    """Test error handling and correlation ids"""

    def test_404_route(self, client):
        response = client.get("/nonexistent-endpoint")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert "detail" in response.json()

    def test_not_found_error_mapping(self, client):
        response = client.get("/shipments/00000000-0000-0000-0000-000000000000")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        data = response.json()
        assert data["error"] == "Not Found"
        assert data["message"] == "Shipment not found"

    def test_correlation_id_generated(self, client):
        response = client.get("/health")
        assert response.headers["x-correlation-id"]

    @patch("painel_ml.api.routes.items_management.ListingManagementService")
    def test_unexpected_error_is_500(self, mock_service_cls, client, account):
        mock_service_cls.side_effect = RuntimeError("boom")

        response = client.get("/items-management/item/MLB1", params={"accountId": str(account.id)})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["message"] == "An unexpected error occurred"
