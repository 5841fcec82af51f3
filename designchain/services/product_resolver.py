"""
Resolve an item inventory into priced, sourced products with a grounded search call
"""
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from designchain.core.exceptions import ErrorKind
from designchain.core.result import Deadline, Err, Ok, Result
from designchain.engines.generation.schemas import ProductItem, ProductQuery, ProductSearchResult, Turn
from designchain.services.model_gateway import GROUNDED_MODE, GeminiModelGateway
from designchain.services.response_parser import extract_json

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT_NAME = "Unknown Product"

PRODUCT_SEARCH_PROMPT = """
You are a helpful interior design shopping assistant. I have a list of interior design items that I need to purchase.
For each item in the list, use your web search capabilities to find actual products that match the description.

To complete this task, you MUST use the Google Search grounding tool to find real, available products that match each item's description.

Here are the items I need:
{items_text}

Using your Google Search grounding tool, search for real, available products for each item. Return the results in a valid JSON format with this exact structure:
```json
{{
  "items": [
    {{
      "item_name": "Product name",
      "description": "Brief product description",
      "quantity": 2,
      "unit_price": 149.99,
      "total_price": 299.98,
      "source_link": "Direct link to the product page from your Google Search results"
    }}
  ],
  "total_cost": 299.98
}}
```

CRITICAL REQUIREMENTS:
1. You MUST use the Google Search grounding tool to find real products from reputable retailers
2. Include all requested fields in your response
3. The source_link MUST be a direct link to the product page from your Google Search results
4. Each product must have exactly ONE source_link that leads to where the product can be purchased
5. Calculate the total_price (unit_price * quantity) accurately for each item
6. Sum all total_price values to calculate the total_cost field
7. ONLY PROVIDE VALID JSON STRUCTURE - DO NOT include any explanatory text, comments, or anything outside of the JSON structure
8. Your response must strictly follow the JSON format shown above - no extra text before or after the JSON

Your entire response must be a single, parseable JSON object.
"""


def _as_number(value: Any) -> Optional[float]:
    """Finite number from an int/float or numeric string, else None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().lstrip("$").replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_quantity(value: Any) -> int:
    number = _as_number(value)
    if number is None or number < 1:
        return 1
    return int(number)


def normalize_price(value: Any) -> float:
    number = _as_number(value)
    if number is None or number < 0:
        return 0.0
    return number


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_product_item(raw: Any) -> ProductItem:
    """Coerce one parsed item into a fully typed ProductItem"""
    if not isinstance(raw, dict):
        raw = {}
    return ProductItem(
        item_name=_as_text(raw.get("item_name")) or UNKNOWN_PRODUCT_NAME,
        description=_as_text(raw.get("description")),
        quantity=normalize_quantity(raw.get("quantity")),
        unit_price=normalize_price(raw.get("unit_price")),
        total_price=normalize_price(raw.get("total_price")),
        source_link=_as_text(raw.get("source_link")),
    )


def normalize_search_result(data: Dict[str, Any]) -> Result[ProductSearchResult]:
    """Normalize every item and reconcile total_cost"""
    raw_items = data.get("items")
    if not isinstance(raw_items, list):
        return Err(ErrorKind.PARSE, "Invalid product search results format")

    items = [normalize_product_item(raw) for raw in raw_items]
    items_total = round(sum(item.total_price for item in items), 2)

    total_cost = _as_number(data.get("total_cost"))
    if total_cost is None or total_cost < 0:
        total_cost = items_total
    elif not math.isclose(total_cost, items_total, abs_tol=0.01):
        logger.warning(f"Reported total_cost {total_cost} differs from item total {items_total}")

    return Ok(ProductSearchResult(items=items, total_cost=total_cost))


def format_items(items: Sequence[ProductQuery]) -> str:
    return "\n".join(f"- {item.name} ({item.quantity}): {item.description}" for item in items)


class ProductResolver:
    """Turns items into purchasable products through the grounded gateway mode"""

    def __init__(self, gateway: GeminiModelGateway):
        self.gateway = gateway

    def build_prompt(self, items: Sequence[ProductQuery]) -> str:
        return PRODUCT_SEARCH_PROMPT.format(items_text=format_items(items))

    async def resolve(
        self, items: List[ProductQuery], deadline: Optional[Deadline] = None
    ) -> Result[ProductSearchResult]:
        if not items:
            logger.info("No items to resolve, returning empty product list")
            return Ok(ProductSearchResult(items=[], total_cost=0.0))

        logger.info(f"Resolving {len(items)} items into products with grounded search")
        result = await self.gateway.generate([Turn(text=self.build_prompt(items))], GROUNDED_MODE, deadline=deadline)

        if result.error:
            return Err(result.error_kind or ErrorKind.UPSTREAM, result.error)
        if not result.text:
            return Err(ErrorKind.UPSTREAM_EMPTY, "No response from Gemini API")

        data = extract_json(result.text)
        if data is None:
            logger.error(f"Failed to parse product search response (first 300 chars): {result.text[:300]}")
            return Err(ErrorKind.PARSE, "Failed to parse product search results")

        normalized = normalize_search_result(data)
        if isinstance(normalized, Ok):
            logger.info(
                f"Resolved {len(normalized.value.items)} products, total cost {normalized.value.total_cost:.2f}"
            )
        return normalized
