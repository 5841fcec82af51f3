"""
Download an external image and return it as an inline ImageBlob
"""
import asyncio
import io
import logging
from typing import Optional

import aiohttp
from PIL import Image, UnidentifiedImageError

from designchain.core.config import Settings
from designchain.core.exceptions import ErrorKind
from designchain.core.result import Err, Ok, Result
from designchain.engines.generation.schemas import ImageBlob

logger = logging.getLogger(__name__)


def detect_mime_type(image_bytes: bytes) -> Optional[str]:
    """Mime type from the decoded image format, or None when Pillow cannot read it"""
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError):
        return None
    if not image_format:
        return None
    return Image.MIME.get(image_format, f"image/{image_format.lower()}")


class ImageFetcher:
    """Single-attempt image download over aiohttp"""

    def __init__(self, settings: Settings, session: Optional[aiohttp.ClientSession] = None):
        self.settings = settings
        self.session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.settings.http_timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def fetch(self, image_url: str) -> Result[ImageBlob]:
        if not image_url:
            return Err(ErrorKind.INVALID_INPUT, "Image URL is required")

        headers = {"User-Agent": self.settings.fetch_user_agent}
        max_bytes = self.settings.max_fetch_bytes
        try:
            session = await self._get_session()
            async with session.get(image_url, headers=headers) as response:
                if not response.ok:
                    logger.warning(f"Failed to fetch image from {image_url}: {response.status}")
                    return Err(ErrorKind.NETWORK, f"Failed to fetch image: {response.status} {response.reason or ''}".strip())

                if response.content_length is not None and response.content_length > max_bytes:
                    logger.warning(f"Image at {image_url} declares {response.content_length} bytes, limit is {max_bytes}")
                    return Err(ErrorKind.NETWORK, f"Image is larger than {max_bytes} bytes")

                buffer = bytearray()
                async for chunk in response.content.iter_chunked(64 * 1024):
                    buffer.extend(chunk)
                    if len(buffer) > max_bytes:
                        logger.warning(f"Image at {image_url} exceeded {max_bytes} bytes while streaming")
                        return Err(ErrorKind.NETWORK, f"Image is larger than {max_bytes} bytes")
                image_bytes = bytes(buffer)
                content_type = (response.headers.get("Content-Type") or "").split(";")[0].strip()
        except asyncio.TimeoutError:
            logger.warning(f"Timeout fetching image: {image_url}")
            return Err(ErrorKind.NETWORK, f"Timed out fetching image after {self.settings.http_timeout_seconds:.0f} seconds")
        except (aiohttp.ClientError, OSError) as e:
            logger.warning(f"Network error fetching image {image_url}: {e}")
            return Err(ErrorKind.NETWORK, f"Failed to fetch image: {e}")

        detected = detect_mime_type(image_bytes)
        if detected is None:
            logger.warning(f"Fetched content from {image_url} is not a decodable image ({content_type or 'unknown type'})")
            return Err(ErrorKind.NETWORK, "Fetched content is not a valid image")

        mime_type = content_type if content_type.startswith("image/") else detected
        logger.info(f"Fetched image from {image_url} ({len(image_bytes)} bytes, {mime_type})")
        return Ok(ImageBlob.from_bytes(image_bytes, mime_type=mime_type))

    async def close(self):
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
