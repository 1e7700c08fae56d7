"""Tests for health, root, middleware and rate limiting."""

from fastapi import status
from fastapi.testclient import TestClient

from app.core.config import settings
from tests.conftest import FakeProvider


def parse_rate_limit(limit_str: str) -> int:
    """Parse the request count of a rate limit string like "30/minute"."""
    return int(limit_str.split("/")[0])


class TestHealth:
    def test_health(self, client: TestClient):
        """Test the unversioned health endpoint returns healthy."""
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
        assert response.json()["azureConnectivity"] is True

    def test_versioned_health_reports_connectivity(self, client: TestClient, fake_provider: FakeProvider):
        """Test the versioned health endpoint includes Azure connectivity."""
        fake_provider.connected = False

        response = client.get("/api/v1/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["azureConnectivity"] is False

    def test_root(self, client: TestClient):
        """Test the root endpoint links to docs and health."""
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["analyze"] == "/api/v1/energy/analyze/platform"


class TestRequestLogging:
    def test_process_time_header(self, client: TestClient):
        """Test responses carry the processing time header."""
        response = client.get("/api/v1/energy/grid-intensity")

        assert "X-Process-Time-Ms" in response.headers
        assert float(response.headers["X-Process-Time-Ms"]) >= 0


class TestAnalysisRateLimiting:
    """Test rate limiting of the analysis endpoint."""

    def test_analysis_rate_limit(self, client: TestClient):
        """
        Requests beyond RATE_LIMIT_ANALYSIS within the window get 429.
        """
        max_requests = parse_rate_limit(settings.RATE_LIMIT_ANALYSIS)

        for i in range(max_requests):
            response = client.post("/api/v1/energy/analyze/platform", json={})
            assert response.status_code == status.HTTP_200_OK, f"Request {i+1}/{max_requests} failed"

        response = client.post("/api/v1/energy/analyze/platform", json={})

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
