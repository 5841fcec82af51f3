"""
Shared pytest fixtures and configuration for all tests
"""
import base64
import io
from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from PIL import Image

from designchain.core.config import Settings
from designchain.engines.generation.schemas import ImageBlob
from designchain.services.model_gateway import GeminiModelGateway, GenerationResult


def make_part(text: Optional[str] = None, image_bytes: Optional[bytes] = None, mime_type: str = "image/png"):
    """Fake google-genai response part"""
    inline_data = SimpleNamespace(data=image_bytes, mime_type=mime_type) if image_bytes is not None else None
    return SimpleNamespace(text=text, inline_data=inline_data)


def make_response(parts: Optional[List] = None, candidates: bool = True):
    """Fake google-genai GenerateContentResponse"""
    if not candidates:
        return SimpleNamespace(candidates=[])
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts or []))])


def png_bytes(color: str = "beige", size=(8, 8)) -> bytes:
    img = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_part():
    return make_part


@pytest.fixture
def fake_response():
    return make_response


@pytest.fixture
def test_settings():
    """Settings with fake credentials and no .env lookup"""
    return Settings(
        _env_file=None,
        gemini_api_key="test-gemini-key",
        search_api_key="test-search-key",
        cx_key="test-cx",
        model_timeout_seconds=5.0,
        pipeline_timeout_seconds=None,
        structured_reference_description=False,
        resolve_products=True,
        log_format="console",
    )


@pytest.fixture
def mock_genai_client():
    """Mock google-genai client for testing without API calls"""
    mock = Mock()
    mock.models = Mock()
    mock.models.generate_content = Mock(return_value=make_response([make_part(text="ok")]))
    return mock


@pytest.fixture
def gateway(test_settings, mock_genai_client):
    return GeminiModelGateway(test_settings, client=mock_genai_client)


@pytest.fixture
def mock_gateway(test_settings):
    """Gateway double whose ``generate`` results are scripted per test"""
    mock = MagicMock(spec=GeminiModelGateway)
    mock.settings = test_settings
    mock.generate = AsyncMock(return_value=GenerationResult(text="ok"))
    return mock


@pytest.fixture
def sample_png_bytes():
    return png_bytes()


@pytest.fixture
def sample_image_blob(sample_png_bytes):
    """Small PNG as an ImageBlob"""
    return ImageBlob(mime_type="image/png", data=base64.b64encode(sample_png_bytes).decode())


@pytest.fixture
def sample_inventory_json():
    """Structured description of a generated design"""
    return {
        "overview": "A bright workspace with plants and warm lighting",
        "items": [
            {
                "name": "Monstera plant",
                "quantity": 2,
                "description": "Large potted monstera",
                "longDescription": "Two large monstera plants in terracotta pots flanking the desk",
            },
            {
                "name": "Floor lamp",
                "quantity": 1,
                "description": "Brass arc floor lamp",
                "longDescription": "A brass arc lamp arching over the reading chair",
            },
        ],
    }


@pytest.fixture
def sample_products_json():
    """Raw product search answer as the model returns it"""
    return {
        "items": [
            {
                "item_name": "Monstera Deliciosa 10in",
                "description": "Live plant in nursery pot",
                "quantity": 2,
                "unit_price": 39.99,
                "total_price": 79.98,
                "source_link": "https://shop.example.com/monstera",
            },
            {
                "item_name": "Arc Floor Lamp",
                "description": "Brass finish",
                "quantity": 1,
                "unit_price": 120.0,
                "total_price": 120.0,
                "source_link": "https://shop.example.com/arc-lamp",
            },
        ],
        "total_cost": 199.98,
    }


async def _iter_chunks(body: bytes, size: int):
    for offset in range(0, len(body), size):
        yield body[offset : offset + size]


def make_http_response(
    status=200, body: bytes = b"", headers=None, payload=None, reason="OK", content_length="auto"
):
    """Fake aiohttp response usable as ``async with session.get(...)``"""
    response = MagicMock()
    response.status = status
    response.ok = status < 400
    response.reason = reason
    response.headers = headers or {}
    response.content_length = len(body) if content_length == "auto" else content_length
    response.content.iter_chunked = lambda size: _iter_chunks(body, size)
    response.read = AsyncMock(return_value=body)
    response.json = AsyncMock(return_value=payload)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=False)
    return response


@pytest.fixture
def mock_http_session():
    """Mock aiohttp session; set ``session.get.return_value`` or ``side_effect`` per test"""
    session = MagicMock()
    session.closed = False
    session.get = MagicMock(return_value=make_http_response())
    session.close = AsyncMock()
    return session


@pytest.fixture
def http_response():
    return make_http_response
