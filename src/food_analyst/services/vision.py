"""Vision nutrition estimation using LLMs."""

import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from food_analyst.domain.vision import NutritionEstimate
from food_analyst.errors import VisionAnalysisError

_logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")

NUTRITION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "food_name": {"type": "string"},
        "calories": {"type": "number", "minimum": 0},
        "protein": {"type": "number", "minimum": 0},
        "carbs": {"type": "number", "minimum": 0},
        "fat": {"type": "number", "minimum": 0},
        "fiber": {"type": "number", "minimum": 0},
        "hydration": {"type": "number", "minimum": 0},
        "serving_size": {"type": "string"},
        "confidence": {"type": "string", "enum": ["high", "medium", "low"]},
    },
    "required": [
        "food_name",
        "calories",
        "protein",
        "carbs",
        "fat",
        "fiber",
        "hydration",
        "serving_size",
        "confidence",
    ],
    "additionalProperties": False,
}

PROMPT = (
    "Analyze this food image and provide nutritional estimates for the whole "
    "dish. Give calories in kcal, protein, carbs, fat and fiber in grams, and "
    "hydration as the millilitres of water the item provides. Base estimates "
    "on typical serving sizes, describe the serving, and be specific about the "
    "food identified. Rate your confidence as high, medium or low."
)


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> str:
        """Return the model's raw JSON text."""


@dataclass
class VisionService:
    """Service that prepares vision prompts and validates results."""

    client: VisionClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze(
        self, image_bytes: bytes, caption: str | None = None
    ) -> NutritionEstimate:
        """Estimate nutrition for a food photo, optionally hinted by a caption."""
        prompt = PROMPT
        if caption and caption.strip():
            prompt = f'{PROMPT} The sender described it as: "{caption.strip()}".'
        try:
            raw = await self.client.extract(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_data_url=_to_data_url(image_bytes),
                schema=NUTRITION_SCHEMA,
                prompt=prompt,
            )
        except Exception as exc:
            raise VisionAnalysisError("Vision request failed") from exc
        return parse_estimate(raw)


def parse_estimate(raw: str) -> NutritionEstimate:
    """Parse model output, tolerating markdown code fences."""
    cleaned = _CODE_FENCE.sub("", raw or "").strip()
    if not cleaned:
        raise VisionAnalysisError("Vision model returned an empty response")
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        _logger.warning("Vision model returned malformed JSON: %.200s", cleaned)
        raise VisionAnalysisError("Vision model returned malformed JSON") from exc
    try:
        return NutritionEstimate.model_validate(payload)
    except ValidationError as exc:
        raise VisionAnalysisError("Vision response failed validation") from exc


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
