"""
Image search through the Google Custom Search JSON API
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from designchain.core.config import Settings
from designchain.core.exceptions import ConfigurationError, ErrorKind
from designchain.core.result import Err, Ok, Result
from designchain.engines.generation.schemas import ImageSearchHit

logger = logging.getLogger(__name__)


def parse_search_items(payload: Dict[str, Any]) -> List[ImageSearchHit]:
    hits = []
    for item in payload.get("items") or []:
        link = item.get("link")
        if not link:
            continue
        image_info = item.get("image") or {}
        hits.append(
            ImageSearchHit(
                title=item.get("title") or "",
                link=link,
                mime=item.get("mime") or "",
                thumbnail_link=image_info.get("thumbnailLink") or "",
                context_link=image_info.get("contextLink") or "",
                width=image_info.get("width") or 0,
                height=image_info.get("height") or 0,
            )
        )
    return hits


class ImageSearchService:
    """Searches images by text query"""

    def __init__(self, settings: Settings, session: Optional[aiohttp.ClientSession] = None):
        if not settings.search_api_key or not settings.cx_key:
            raise ConfigurationError(
                "search_api_key", "SEARCH_API_KEY or CX_KEY not found in environment variables"
            )
        self.settings = settings
        self.session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.settings.http_timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def search(self, query: str) -> Result[List[ImageSearchHit]]:
        if not query or not query.strip():
            return Err(ErrorKind.INVALID_INPUT, "Search query is required")

        params = {
            "key": self.settings.search_api_key,
            "cx": self.settings.cx_key,
            "q": query.strip(),
            "searchType": "image",
        }
        try:
            session = await self._get_session()
            async with session.get(self.settings.search_base_url, params=params) as response:
                payload = await response.json(content_type=None)
                if response.status != 200:
                    error = payload.get("error") if isinstance(payload, dict) else None
                    message = (error.get("message") if isinstance(error, dict) else None) or response.reason
                    logger.error(f"Image search API error {response.status}: {message}")
                    return Err(ErrorKind.UPSTREAM, f"API error: {message}")
        except asyncio.TimeoutError:
            logger.warning(f"Image search timed out for query '{query}'")
            return Err(ErrorKind.TIMEOUT, "Image search timed out")
        except (aiohttp.ClientError, ValueError) as e:
            logger.error(f"Image search request failed: {e}")
            return Err(ErrorKind.NETWORK, f"Image search request failed: {e}")

        hits = parse_search_items(payload if isinstance(payload, dict) else {})
        logger.info(f"Image search for '{query}' returned {len(hits)} results")
        return Ok(hits)

    async def close(self):
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
