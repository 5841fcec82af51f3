"""
Unit tests for the custom search image service
"""
import asyncio

import aiohttp
import pytest

from designchain.core.exceptions import ConfigurationError, ErrorKind
from designchain.core.result import Err, Ok
from designchain.services.image_search import ImageSearchService, parse_search_items


@pytest.fixture
def search_payload():
    return {
        "items": [
            {
                "title": "Scandinavian living room",
                "link": "https://images.example.com/living.jpg",
                "mime": "image/jpeg",
                "image": {
                    "thumbnailLink": "https://images.example.com/living_thumb.jpg",
                    "contextLink": "https://blog.example.com/living",
                    "width": 1200,
                    "height": 800,
                },
            },
            {"title": "No link, dropped"},
        ]
    }


@pytest.fixture
def service(test_settings, mock_http_session):
    return ImageSearchService(test_settings, session=mock_http_session)


class TestConfiguration:
    """Tests for credential validation"""

    @pytest.mark.unit
    @pytest.mark.parametrize("missing", ["search_api_key", "cx_key"])
    def test_missing_credentials(self, test_settings, missing):
        settings = test_settings.model_copy(update={missing: ""})
        with pytest.raises(ConfigurationError) as exc_info:
            ImageSearchService(settings)
        assert exc_info.value.kind == ErrorKind.CONFIGURATION


class TestParseSearchItems:
    """Tests for result mapping"""

    @pytest.mark.unit
    def test_maps_fields_and_drops_linkless(self, search_payload):
        hits = parse_search_items(search_payload)

        assert len(hits) == 1
        assert hits[0].link == "https://images.example.com/living.jpg"
        assert hits[0].thumbnail_link == "https://images.example.com/living_thumb.jpg"
        assert hits[0].width == 1200

    @pytest.mark.unit
    def test_no_items(self):
        assert parse_search_items({}) == []


class TestSearch:
    """Tests for search()"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_search_success(self, service, mock_http_session, http_response, search_payload, test_settings):
        mock_http_session.get.return_value = http_response(payload=search_payload)

        result = await service.search("  scandinavian living room ")

        assert isinstance(result, Ok)
        assert len(result.value) == 1
        call = mock_http_session.get.call_args
        assert call.args[0] == test_settings.search_base_url
        assert call.kwargs["params"] == {
            "key": "test-search-key",
            "cx": "test-cx",
            "q": "scandinavian living room",
            "searchType": "image",
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blank_query(self, service, mock_http_session):
        result = await service.search("   ")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.INVALID_INPUT
        mock_http_session.get.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_error_message(self, service, mock_http_session, http_response):
        mock_http_session.get.return_value = http_response(
            status=403, reason="Forbidden", payload={"error": {"message": "Daily limit exceeded"}}
        )

        result = await service.search("sofa")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.UPSTREAM
        assert result.message == "API error: Daily limit exceeded"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_error_without_body(self, service, mock_http_session, http_response):
        mock_http_session.get.return_value = http_response(status=500, reason="Internal Server Error", payload=None)

        result = await service.search("sofa")

        assert result.message == "API error: Internal Server Error"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self, service, mock_http_session):
        mock_http_session.get.side_effect = asyncio.TimeoutError()

        result = await service.search("sofa")

        assert result.kind == ErrorKind.TIMEOUT

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_error(self, service, mock_http_session):
        mock_http_session.get.side_effect = aiohttp.ClientConnectionError("dns failure")

        result = await service.search("sofa")

        assert result.kind == ErrorKind.NETWORK
