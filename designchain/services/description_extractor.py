"""
Describe an interior image, as free text or as a structured item inventory
"""
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from designchain.core.exceptions import ErrorKind
from designchain.core.result import Deadline, Err, Ok, Result
from designchain.engines.generation.schemas import ImageBlob, InteriorDescription, Turn
from designchain.services.model_gateway import STRUCTURED_MODE, TEXT_MODE, GeminiModelGateway, GenerationResult
from designchain.services.product_resolver import normalize_quantity
from designchain.services.prompt_composer import DEFAULT_REFERENCE_DESCRIPTION, DESCRIBE_INTERIOR_PROMPT
from designchain.services.response_parser import extract_json

logger = logging.getLogger(__name__)


def _normalize_inventory_item(raw: Any) -> Optional[Dict[str, Any]]:
    """Item with a usable quantity and text fields, or None when it has no name"""
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    return {
        "name": name.strip(),
        "quantity": normalize_quantity(raw.get("quantity")),
        "description": raw.get("description") if isinstance(raw.get("description"), str) else "",
        "longDescription": raw.get("longDescription") if isinstance(raw.get("longDescription"), str) else "",
    }


def to_interior_description(data: Optional[Dict[str, Any]]) -> Optional[InteriorDescription]:
    """Validate a parsed object as an InteriorDescription, or None.

    Items are normalized one by one: a bad quantity becomes 1 and an item
    without a name is dropped, so one malformed entry does not discard the
    whole inventory.
    """
    if not data or not isinstance(data, dict):
        return None

    raw_items = data.get("items")
    if isinstance(raw_items, list):
        items = [item for item in (_normalize_inventory_item(raw) for raw in raw_items) if item is not None]
        if len(items) < len(raw_items):
            logger.warning(f"Dropped {len(raw_items) - len(items)} inventory items without a name")
        data = {**data, "items": items}

    try:
        return InteriorDescription.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Structured description did not match the inventory schema: {e.error_count()} errors")
        return None


class DescriptionExtractor:
    """Obtains a description of an image through the model gateway"""

    def __init__(self, gateway: GeminiModelGateway, default_description: str = DEFAULT_REFERENCE_DESCRIPTION):
        self.gateway = gateway
        self.default_description = default_description

    async def _request(self, image: ImageBlob, structured: bool, deadline: Optional[Deadline]) -> GenerationResult:
        turns = [Turn(text=DESCRIBE_INTERIOR_PROMPT, image=image)]
        mode = STRUCTURED_MODE if structured else TEXT_MODE
        return await self.gateway.generate(turns, mode, deadline=deadline)

    def _structured_from(self, result: GenerationResult) -> Optional[InteriorDescription]:
        description = to_interior_description(result.structured_output)
        if description is None and result.text:
            # Structured call whose text did not parse strictly
            description = to_interior_description(extract_json(result.text))
        return description

    async def describe(
        self,
        image: ImageBlob,
        structured: bool = False,
        deadline: Optional[Deadline] = None,
    ) -> Union[InteriorDescription, str]:
        """Structured inventory, free text, or the default description, in that order of preference"""
        result = await self._request(image, structured, deadline)

        if result.error:
            logger.warning(f"Description request failed ({result.error_kind}): {result.error}, using default")
            return self.default_description

        if structured:
            description = self._structured_from(result)
            if description is not None:
                return description

        if result.text and result.text.strip():
            return result.text

        logger.info("Description response had no usable content, using default")
        return self.default_description

    async def describe_inventory(
        self, image: ImageBlob, deadline: Optional[Deadline] = None
    ) -> Result[InteriorDescription]:
        """Structured inventory only; free text is not an inventory"""
        result = await self._request(image, True, deadline)

        if result.error:
            return Err(result.error_kind or ErrorKind.UPSTREAM, result.error)

        description = self._structured_from(result)
        if description is None:
            return Err(ErrorKind.PARSE, "Generated image description was not a structured inventory")
        return Ok(description)
