"""
Tests for the assembled application: health, root and request tracing
"""
import pytest
from fastapi.testclient import TestClient

from designchain import __version__
from designchain.main import app


@pytest.fixture
def client():
    return TestClient(app)


class TestAppEndpoints:
    @pytest.mark.integration
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert "model_configured" in body

    @pytest.mark.integration
    def test_root_lists_endpoints(self, client):
        body = client.get("/").json()
        assert body["endpoints"]["chain"] == "/api/generation/chain"

    @pytest.mark.integration
    def test_request_id_generated(self, client):
        response = client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.integration
    def test_request_id_propagated(self, client):
        response = client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"
