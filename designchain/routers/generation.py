"""
Generation API routes: the full chain, product search and 3-D scenes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from designchain.core.config import Settings, get_settings
from designchain.core.exceptions import ConfigurationError, ErrorKind
from designchain.core.result import Deadline, Err
from designchain.engines.generation.chain import run_chain
from designchain.engines.generation.schemas import (
    BudgetStatus,
    ChainFailed,
    ChainRequest,
    ChainSucceeded,
    ImageBlob,
    ProductQuery,
    ProductSearchResult,
    SceneArtifact,
)
from designchain.middleware import get_logger
from designchain.services.model_gateway import GeminiModelGateway
from designchain.services.product_resolver import ProductResolver
from designchain.services.scene_assembler import SceneGenerator

logger = get_logger(__name__)
router = APIRouter(prefix="/generation", tags=["generation"])

STATUS_BY_KIND = {
    ErrorKind.CONFIGURATION: 503,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.TIMEOUT: 504,
}


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, 502)


class ProductSearchRequest(BaseModel):
    """Request model for product search"""

    items: List[ProductQuery]
    budget: Optional[float] = Field(default=None, ge=0.0)


class ProductSearchResponse(BaseModel):
    """Response model for product search"""

    results: ProductSearchResult
    budget: Optional[BudgetStatus] = None


class SceneRequest(BaseModel):
    """Request model for 3-D scene generation"""

    image: ImageBlob


def get_gateway(settings: Settings = Depends(get_settings)) -> GeminiModelGateway:
    try:
        return GeminiModelGateway(settings)
    except ConfigurationError as e:
        logger.error(f"Model gateway not configured: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/chain", response_model=ChainSucceeded)
async def run_generation_chain(request: ChainRequest, settings: Settings = Depends(get_settings)):
    """
    Generate a redesigned image from the base image, optionally guided by a
    reference image and extra items, and resolve the products it contains
    """
    logger.info(
        f"Chain request: reference_image={request.reference_image is not None}, "
        f"requested_items={len(request.requested_items)}"
    )
    result = await run_chain(request, settings)

    if isinstance(result, ChainFailed):
        logger.error(f"Chain failed at {result.stage}: {result.error}")
        raise HTTPException(status_code=status_for(result.kind), detail=result.model_dump(mode="json"))

    return result


@router.post("/products", response_model=ProductSearchResponse)
async def search_products(
    request: ProductSearchRequest,
    gateway: GeminiModelGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Find purchasable products for a list of items"""
    resolved = await ProductResolver(gateway).resolve(
        request.items, deadline=Deadline.after(settings.pipeline_timeout_seconds)
    )
    if isinstance(resolved, Err):
        logger.error(f"Product search failed: {resolved.message}")
        raise HTTPException(status_code=status_for(resolved.kind), detail=resolved.message)

    budget = resolved.value.budget_status(request.budget) if request.budget is not None else None
    return ProductSearchResponse(results=resolved.value, budget=budget)


@router.post("/scene", response_model=SceneArtifact)
async def generate_scene(
    request: SceneRequest,
    gateway: GeminiModelGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Build a navigable 3-D scene document from an interior image"""
    scene = await SceneGenerator(gateway).generate(
        request.image, deadline=Deadline.after(settings.pipeline_timeout_seconds)
    )
    if isinstance(scene, Err):
        logger.error(f"Scene generation failed: {scene.message}")
        raise HTTPException(status_code=status_for(scene.kind), detail=scene.message)

    logger.info(f"Scene generated ({scene.value.kind}, {len(scene.value.html)} chars)")
    return scene.value
