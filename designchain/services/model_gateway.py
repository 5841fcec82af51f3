"""
Gemini model gateway: one remote generate call per invocation of ``generate``.

The gateway never raises for upstream problems. Empty responses, SDK errors
and deadline expiry all come back as a ``GenerationResult`` with ``error`` set.
The only exception is ``ConfigurationError`` from the constructor when the
model API key is missing.
"""
import asyncio
import base64
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from designchain.core.config import Settings
from designchain.core.exceptions import ConfigurationError, ErrorKind
from designchain.core.result import Deadline
from designchain.engines.generation.schemas import Turn

logger = logging.getLogger(__name__)


INTERIOR_DESCRIPTION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "overview": types.Schema(
            type=types.Type.STRING,
            description="General description of the design",
            nullable=False,
        ),
        "items": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "name": types.Schema(
                        type=types.Type.STRING,
                        description="Name of the product or item",
                        nullable=False,
                    ),
                    "quantity": types.Schema(
                        type=types.Type.NUMBER,
                        description="Number of this item present",
                        nullable=False,
                    ),
                    "description": types.Schema(
                        type=types.Type.STRING,
                        description="Short descriptive details about the item",
                        nullable=False,
                    ),
                    "longDescription": types.Schema(
                        type=types.Type.STRING,
                        description=(
                            "Detailed description of the item including its style, materials, placement, "
                            "and how it contributes to the overall design"
                        ),
                        nullable=False,
                    ),
                },
                required=["name", "quantity", "description", "longDescription"],
            ),
        ),
    },
    required=["overview", "items"],
)


@dataclass(frozen=True)
class GenerationMode:
    """Response mode for one gateway call"""

    image: bool = False
    structured: bool = False
    grounded: bool = False


IMAGE_MODE = GenerationMode(image=True)
TEXT_MODE = GenerationMode()
STRUCTURED_MODE = GenerationMode(structured=True)
GROUNDED_MODE = GenerationMode(grounded=True)


@dataclass
class GenerationResult:
    """Outcome of one gateway call"""

    image_data: Optional[bytes] = None
    image_mime_type: Optional[str] = None
    text: Optional[str] = None
    structured_output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def failure(cls, message: str, kind: ErrorKind) -> "GenerationResult":
        return cls(error=message, error_kind=kind)

    @property
    def ok(self) -> bool:
        return self.error is None and (
            self.image_data is not None or bool(self.text) or self.structured_output is not None
        )


class GeminiModelGateway:
    """Thin contract over ``genai.Client.models.generate_content``"""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        if not settings.gemini_api_key:
            raise ConfigurationError("gemini_api_key", "GEMINI_API_KEY not found in environment variables")

        self.settings = settings
        self.client = client or genai.Client(api_key=settings.gemini_api_key)
        logger.info(
            f"Gemini gateway initialized (image model: {settings.gemini_image_model}, "
            f"text model: {settings.gemini_text_model})"
        )

    def build_parts(self, turns: List[Turn]) -> List[types.Part]:
        """Text then optional inline image for each turn, in turn order"""
        parts = []
        for turn in turns:
            parts.append(types.Part.from_text(text=turn.text))
            if turn.image is not None:
                parts.append(
                    types.Part(inline_data=types.Blob(mime_type=turn.image.mime_type, data=turn.image.to_bytes()))
                )
        return parts

    def build_config(self, mode: GenerationMode) -> types.GenerateContentConfig:
        config_kwargs: Dict[str, Any] = {
            "response_modalities": ["IMAGE", "TEXT"] if mode.image else ["TEXT"],
        }
        if self.settings.gemini_temperature is not None:
            config_kwargs["temperature"] = self.settings.gemini_temperature

        if mode.structured:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = INTERIOR_DESCRIPTION_SCHEMA

        if mode.grounded:
            # The search tool cannot be combined with a JSON response mime type
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
            config_kwargs["temperature"] = self.settings.product_search_temperature
            config_kwargs["top_p"] = self.settings.product_search_top_p
            config_kwargs["top_k"] = self.settings.product_search_top_k

        return types.GenerateContentConfig(**config_kwargs)

    def model_for(self, mode: GenerationMode, model: Optional[str] = None) -> str:
        if model:
            return model
        return self.settings.gemini_image_model if mode.image else self.settings.gemini_text_model

    async def generate(
        self,
        turns: List[Turn],
        mode: GenerationMode = TEXT_MODE,
        deadline: Optional[Deadline] = None,
        model: Optional[str] = None,
    ) -> GenerationResult:
        """Send ``turns`` to the model and normalize the first candidate"""
        if deadline is not None and deadline.expired:
            logger.warning("Deadline expired before model call, skipping request")
            return GenerationResult.failure("Deadline expired before the model call", ErrorKind.TIMEOUT)

        model_name = self.model_for(mode, model)
        contents = [types.Content(role="user", parts=self.build_parts(turns))]
        config = self.build_config(mode)
        timeout = self.settings.model_timeout_seconds
        if deadline is not None:
            timeout = deadline.bound(timeout)

        def _run_generate():
            """Run the blocking generate_content call in a separate thread"""
            return self.client.models.generate_content(model=model_name, contents=contents, config=config)

        start_time = time.time()
        try:
            loop = asyncio.get_running_loop()
            response = await asyncio.wait_for(loop.run_in_executor(None, _run_generate), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Gemini call to {model_name} timed out after {timeout:.1f}s")
            return GenerationResult.failure(f"Model call timed out after {timeout:.0f} seconds", ErrorKind.TIMEOUT)
        except Exception as e:
            logger.error(f"Gemini call to {model_name} failed: {e}", exc_info=True)
            return GenerationResult.failure(str(e) or "Unknown error occurred", ErrorKind.UPSTREAM)

        logger.info(f"Gemini call to {model_name} completed in {time.time() - start_time:.2f}s")
        return self.parse_response(response, mode)

    def parse_response(self, response: Any, mode: GenerationMode) -> GenerationResult:
        candidates = getattr(response, "candidates", None)
        if not candidates:
            return GenerationResult.failure("No candidates in the response", ErrorKind.UPSTREAM_EMPTY)

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) if content is not None else None
        if not parts:
            return GenerationResult.failure("No parts in the candidate response", ErrorKind.UPSTREAM_EMPTY)

        text_chunks = []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is not None and inline_data.data:
                image_bytes = inline_data.data
                if isinstance(image_bytes, str):
                    image_bytes = base64.b64decode(image_bytes)
                logger.info(f"Model returned image ({len(image_bytes)} bytes)")
                return GenerationResult(
                    image_data=image_bytes,
                    image_mime_type=getattr(inline_data, "mime_type", None) or "image/png",
                )
            part_text = getattr(part, "text", None)
            if part_text:
                text_chunks.append(part_text)

        if not text_chunks:
            message = "No image was generated in the response" if mode.image else "No text in the response"
            return GenerationResult.failure(message, ErrorKind.UPSTREAM_EMPTY)

        text = "".join(text_chunks)
        if mode.structured:
            try:
                structured_output = json.loads(text)
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to parse structured output as JSON: {e}")
                return GenerationResult(text=text)
            if isinstance(structured_output, dict):
                return GenerationResult(structured_output=structured_output, text=text)
            logger.warning(f"Structured output was {type(structured_output).__name__}, not an object")

        return GenerationResult(text=text)
