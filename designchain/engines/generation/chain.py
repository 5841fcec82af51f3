"""
Generation chain: reference description -> prompt -> image -> inventory -> products.

Stages run strictly in order. Only the image transformation is required;
every other stage degrades to a fallback and the chain continues:

    1. reference description   optional   default description on failure
    2. prompt composition      required   pure, cannot fail
    3. image transformation    required   Failed(...) on error
    4. generated-image inventory optional  products skipped on failure
    5. product resolution      optional   Succeeded without products on failure
"""
from typing import List, Optional, Union

from designchain.core.config import Settings
from designchain.core.exceptions import ConfigurationError, ErrorKind
from designchain.core.logging import get_structlog_logger
from designchain.core.result import Deadline, Err
from designchain.engines.generation.schemas import (
    ChainFailed,
    ChainRequest,
    ChainSucceeded,
    ImageBlob,
    InteriorDescription,
    PipelineResult,
    ProductQuery,
    Turn,
)
from designchain.services.description_extractor import DescriptionExtractor
from designchain.services.model_gateway import IMAGE_MODE, GeminiModelGateway
from designchain.services.product_resolver import ProductResolver
from designchain.services.prompt_composer import DEFAULT_REFERENCE_DESCRIPTION, compose_transformation_prompt

logger = get_structlog_logger(__name__)

STAGE_REFERENCE = "reference_description"
STAGE_PROMPT = "prompt_composition"
STAGE_IMAGE = "image_transformation"
STAGE_INVENTORY = "generated_image_description"
STAGE_PRODUCTS = "product_resolution"


class GenerationChain:
    """Sequences the generation stages for one request at a time"""

    def __init__(
        self,
        gateway: GeminiModelGateway,
        settings: Settings,
        extractor: Optional[DescriptionExtractor] = None,
        resolver: Optional[ProductResolver] = None,
    ):
        self.gateway = gateway
        self.settings = settings
        self.extractor = extractor or DescriptionExtractor(gateway)
        self.resolver = resolver or ProductResolver(gateway)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationChain":
        """Build the chain; raises ConfigurationError when credentials are missing"""
        return cls(GeminiModelGateway(settings), settings)

    async def describe_reference(
        self, reference_image: Optional[ImageBlob], structured: bool, deadline: Optional[Deadline]
    ) -> Union[InteriorDescription, str]:
        if reference_image is None:
            return DEFAULT_REFERENCE_DESCRIPTION
        return await self.extractor.describe(reference_image, structured=structured, deadline=deadline)

    async def run(self, request: ChainRequest) -> PipelineResult:
        deadline = Deadline.after(self.settings.pipeline_timeout_seconds)
        structured_reference = (
            request.structured_reference
            if request.structured_reference is not None
            else self.settings.structured_reference_description
        )
        resolve_products = (
            request.resolve_products if request.resolve_products is not None else self.settings.resolve_products
        )
        warnings: List[str] = []

        # Stage 1: reference description (optional)
        reference_description = await self.describe_reference(request.reference_image, structured_reference, deadline)
        logger.info(
            "stage_completed",
            stage=STAGE_REFERENCE,
            has_reference_image=request.reference_image is not None,
            structured=isinstance(reference_description, InteriorDescription),
        )

        # Stage 2: prompt composition (required, pure)
        prompt = compose_transformation_prompt(reference_description, request.requested_items)
        logger.info("stage_completed", stage=STAGE_PROMPT, prompt_chars=len(prompt), items=len(request.requested_items))

        # Stage 3: image transformation (required)
        generation = await self.gateway.generate(
            [Turn(text=prompt, image=request.base_image)], IMAGE_MODE, deadline=deadline
        )
        if generation.error or generation.image_data is None:
            message = generation.error or "No image was generated in the response"
            kind = generation.error_kind or ErrorKind.UPSTREAM_EMPTY
            logger.error("stage_failed", stage=STAGE_IMAGE, kind=kind.value, error=message)
            return ChainFailed(error=message, kind=kind, stage=STAGE_IMAGE)

        image = ImageBlob.from_bytes(generation.image_data, mime_type=generation.image_mime_type or "image/png")
        logger.info("stage_completed", stage=STAGE_IMAGE, image_bytes=len(generation.image_data))

        succeeded = ChainSucceeded(image=image, prompt=prompt, reference_description=reference_description)
        if not resolve_products:
            return succeeded

        # Stage 4: generated-image description (optional)
        inventory = await self.extractor.describe_inventory(image, deadline=deadline)
        if isinstance(inventory, Err):
            logger.warning("stage_skipped", stage=STAGE_INVENTORY, kind=inventory.kind.value, error=inventory.message)
            succeeded.warnings.append(f"Product resolution skipped: {inventory.message}")
            return succeeded

        succeeded.inventory = inventory.value
        logger.info("stage_completed", stage=STAGE_INVENTORY, items=len(inventory.value.items))
        if not inventory.value.items:
            return succeeded

        # Stage 5: product resolution (optional)
        queries = [
            ProductQuery(name=item.name, quantity=item.quantity, description=item.description)
            for item in inventory.value.items
        ]
        products = await self.resolver.resolve(queries, deadline=deadline)
        if isinstance(products, Err):
            logger.warning("stage_skipped", stage=STAGE_PRODUCTS, kind=products.kind.value, error=products.message)
            succeeded.warnings.append(f"Product search failed: {products.message}")
            return succeeded

        succeeded.products = products.value
        if request.budget is not None:
            succeeded.budget = products.value.budget_status(request.budget)
        logger.info(
            "stage_completed",
            stage=STAGE_PRODUCTS,
            products=len(products.value.items),
            total_cost=products.value.total_cost,
        )
        return succeeded


async def run_chain(request: ChainRequest, settings: Settings) -> PipelineResult:
    """Build a chain from ``settings`` and run it; missing credentials become Failed"""
    try:
        chain = GenerationChain.from_settings(settings)
    except ConfigurationError as e:
        logger.error("chain_not_configured", setting=e.setting_name, error=str(e))
        return ChainFailed(error=str(e), kind=ErrorKind.CONFIGURATION, stage="configuration")
    return await chain.run(request)
