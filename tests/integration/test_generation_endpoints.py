"""
Tests for the generation and image API endpoints.

The routers are mounted on a bare app; settings and the model gateway are
replaced through FastAPI dependency overrides. The chain route builds its own
gateway, so it is patched where the chain module imports it.
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from designchain.core.config import get_settings
from designchain.core.exceptions import ErrorKind
from designchain.core.result import Err, Ok
from designchain.engines.generation.schemas import ImageBlob
from designchain.routers import generation, images
from designchain.routers.generation import get_gateway, status_for
from designchain.services.model_gateway import GROUNDED_MODE, GenerationResult

app = FastAPI()
app.include_router(generation.router, prefix="/api")
app.include_router(images.router, prefix="/api")


@pytest.fixture
def client(test_settings, mock_gateway):
    """TestClient with scripted gateway and test settings"""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_gateway] = lambda: mock_gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_client(test_settings):
    """TestClient whose settings carry no credentials"""
    settings = test_settings.model_copy(update={"gemini_api_key": "", "search_api_key": "", "cx_key": ""})
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestStatusMapping:
    @pytest.mark.unit
    def test_status_for_kinds(self):
        assert status_for(ErrorKind.CONFIGURATION) == 503
        assert status_for(ErrorKind.INVALID_INPUT) == 400
        assert status_for(ErrorKind.TIMEOUT) == 504
        assert status_for(ErrorKind.UPSTREAM) == 502
        assert status_for(ErrorKind.PARSE) == 502


class TestChainEndpoint:
    """Tests for POST /api/generation/chain"""

    @pytest.fixture
    def chain_gateway(self, mock_gateway):
        """The chain builds its own gateway from settings; hand it the scripted one"""
        with patch("designchain.engines.generation.chain.GeminiModelGateway", return_value=mock_gateway) as gateway_cls:
            yield gateway_cls

    @pytest.mark.integration
    def test_chain_success(self, client, chain_gateway, mock_gateway, test_settings, sample_image_blob, sample_png_bytes):
        mock_gateway.generate.return_value = GenerationResult(image_data=sample_png_bytes, image_mime_type="image/png")

        response = client.post(
            "/api/generation/chain",
            json={
                "base_image": sample_image_blob.model_dump(),
                "requested_items": ["plant", "lamp"],
                "resolve_products": False,
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "succeeded"
        assert body["image"]["mime_type"] == "image/png"
        assert "Additionally, add the following items to the space: plant, lamp." in body["prompt"]
        chain_gateway.assert_called_once_with(test_settings)

    @pytest.mark.integration
    def test_chain_failure_maps_to_bad_gateway(self, client, chain_gateway, mock_gateway, sample_image_blob):
        mock_gateway.generate.return_value = GenerationResult.failure("model overloaded", ErrorKind.UPSTREAM)

        response = client.post("/api/generation/chain", json={"base_image": sample_image_blob.model_dump()})

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["status"] == "failed"
        assert detail["stage"] == "image_transformation"
        assert detail["kind"] == "upstream"

    @pytest.mark.integration
    def test_chain_timeout_maps_to_gateway_timeout(self, client, chain_gateway, mock_gateway, sample_image_blob):
        mock_gateway.generate.return_value = GenerationResult.failure("timed out", ErrorKind.TIMEOUT)

        response = client.post("/api/generation/chain", json={"base_image": sample_image_blob.model_dump()})

        assert response.status_code == 504

    @pytest.mark.integration
    def test_missing_base_image_rejected(self, client):
        response = client.post("/api/generation/chain", json={"requested_items": ["rug"]})
        assert response.status_code == 422

    @pytest.mark.integration
    def test_unconfigured_returns_503(self, unconfigured_client, sample_image_blob):
        response = unconfigured_client.post(
            "/api/generation/chain", json={"base_image": sample_image_blob.model_dump()}
        )

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["kind"] == "configuration"
        assert detail["stage"] == "configuration"
        assert "GEMINI_API_KEY" in detail["error"]


class TestProductsEndpoint:
    """Tests for POST /api/generation/products"""

    @pytest.mark.integration
    def test_unconfigured_returns_503(self, unconfigured_client):
        response = unconfigured_client.post("/api/generation/products", json={"items": [{"name": "Rug"}]})

        assert response.status_code == 503
        assert "GEMINI_API_KEY" in response.json()["detail"]

    @pytest.mark.integration
    def test_products_with_budget(self, client, mock_gateway, sample_products_json):
        mock_gateway.generate.return_value = GenerationResult(text=json.dumps(sample_products_json))

        response = client.post(
            "/api/generation/products",
            json={
                "items": [{"name": "Monstera plant", "quantity": 2, "description": "Large potted monstera"}],
                "budget": 150,
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["results"]["total_cost"] == 199.98
        assert body["budget"]["over_budget"] is True
        assert body["budget"]["remaining"] == -49.98
        assert mock_gateway.generate.call_args.args[1] == GROUNDED_MODE

    @pytest.mark.integration
    def test_products_parse_failure(self, client, mock_gateway):
        mock_gateway.generate.return_value = GenerationResult(text="nothing useful")

        response = client.post("/api/generation/products", json={"items": [{"name": "Rug"}]})

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to parse product search results"


class TestSceneEndpoint:
    """Tests for POST /api/generation/scene"""

    @pytest.mark.integration
    def test_scene_assembled(self, client, mock_gateway, sample_image_blob):
        mock_gateway.generate.return_value = GenerationResult(text="```javascript\nscene.add(bed);\n```")

        response = client.post("/api/generation/scene", json={"image": sample_image_blob.model_dump()})

        assert response.status_code == 200
        body = response.json()
        assert body["kind"] == "assembled"
        assert "scene.add(bed);" in body["html"]

    @pytest.mark.integration
    def test_scene_empty_response(self, client, mock_gateway, sample_image_blob):
        mock_gateway.generate.return_value = GenerationResult()

        response = client.post("/api/generation/scene", json={"image": sample_image_blob.model_dump()})

        assert response.status_code == 502


class TestImageEndpoints:
    """Tests for /api/images"""

    @pytest.mark.integration
    def test_fetch_image(self, client, sample_image_blob):
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock(return_value=Ok(sample_image_blob))
        fetcher.close = AsyncMock()

        with patch("designchain.routers.images.ImageFetcher", return_value=fetcher):
            response = client.post("/api/images/fetch", json={"url": "https://images.example.com/room.png"})

        assert response.status_code == 200
        assert ImageBlob(**response.json()) == sample_image_blob
        fetcher.close.assert_awaited_once()

    @pytest.mark.integration
    def test_fetch_image_failure(self, client):
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock(return_value=Err(ErrorKind.NETWORK, "Failed to fetch image: 404 Not Found"))
        fetcher.close = AsyncMock()

        with patch("designchain.routers.images.ImageFetcher", return_value=fetcher):
            response = client.post("/api/images/fetch", json={"url": "https://images.example.com/missing.png"})

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to fetch image: 404 Not Found"

    @pytest.mark.integration
    def test_search_unconfigured(self, unconfigured_client):
        response = unconfigured_client.get("/api/images/search", params={"q": "sofa"})

        assert response.status_code == 503

    @pytest.mark.integration
    def test_search_requires_query(self, client):
        response = client.get("/api/images/search")
        assert response.status_code == 422
