"""
Image API routes: fetch an external image, search images by text
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from designchain.core.config import Settings, get_settings
from designchain.core.exceptions import ConfigurationError
from designchain.core.result import Err
from designchain.engines.generation.schemas import ImageBlob, ImageSearchHit
from designchain.middleware import get_logger
from designchain.routers.generation import status_for
from designchain.services.image_fetcher import ImageFetcher
from designchain.services.image_search import ImageSearchService

logger = get_logger(__name__)
router = APIRouter(prefix="/images", tags=["images"])


class FetchImageRequest(BaseModel):
    """Request model for image fetch"""

    url: str


class ImageSearchResponse(BaseModel):
    """Response model for image search"""

    query: str
    items: List[ImageSearchHit]


@router.post("/fetch", response_model=ImageBlob)
async def fetch_image(request: FetchImageRequest, settings: Settings = Depends(get_settings)):
    """Download an image by URL and return it as base64"""
    fetcher = ImageFetcher(settings)
    try:
        fetched = await fetcher.fetch(request.url)
    finally:
        await fetcher.close()

    if isinstance(fetched, Err):
        logger.warning(f"Image fetch failed: {fetched.message}")
        raise HTTPException(status_code=status_for(fetched.kind), detail=fetched.message)
    return fetched.value


@router.get("/search", response_model=ImageSearchResponse)
async def search_images(q: str = Query(..., min_length=1), settings: Settings = Depends(get_settings)):
    """Search images through the custom search API"""
    try:
        service = ImageSearchService(settings)
    except ConfigurationError as e:
        logger.error(f"Image search not configured: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    try:
        found = await service.search(q)
    finally:
        await service.close()

    if isinstance(found, Err):
        raise HTTPException(status_code=status_for(found.kind), detail=found.message)
    return ImageSearchResponse(query=q, items=found.value)
