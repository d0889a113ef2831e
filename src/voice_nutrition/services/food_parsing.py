"""Food extraction from meal transcripts using an LLM."""

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from voice_nutrition.domain.errors import AIServiceError
from voice_nutrition.domain.foods import RawFoodItem
from voice_nutrition.domain.parsing import (
    NoFoodDetected,
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    TokenUsage,
)
from voice_nutrition.services.retry import call_with_retry
from voice_nutrition.services.tracking import SessionTracker

_NULLABLE_STRING = {"anyOf": [{"type": "string"}, {"type": "null"}]}

FOOD_PARSE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "foods": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "quantity": {"type": "number", "minimum": 0},
                    "unit": {"type": "string"},
                    "calories": {"type": "number", "minimum": 0},
                    "protein": {"type": "number", "minimum": 0},
                    "carbs": {"type": "number", "minimum": 0},
                    "fat": {"type": "number", "minimum": 0},
                    "cookingMethod": _NULLABLE_STRING,
                    "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
                    "needsQuantity": {"type": "boolean"},
                    "needsCookingMethod": {"type": "boolean"},
                    "suggestedQuantity": {"type": "array", "items": {"type": "string"}},
                    "suggestedCookingMethods": {
                        "type": "array",
                        "items": {"type": "string"},
                    },
                    "nutritionNotes": _NULLABLE_STRING,
                },
                "required": [
                    "name",
                    "quantity",
                    "unit",
                    "calories",
                    "protein",
                    "carbs",
                    "fat",
                    "cookingMethod",
                    "confidence",
                    "needsQuantity",
                    "needsCookingMethod",
                    "suggestedQuantity",
                    "suggestedCookingMethods",
                    "nutritionNotes",
                ],
                "additionalProperties": False,
            },
        }
    },
    "required": ["foods"],
    "additionalProperties": False,
}

FOOD_PARSE_PROMPT = (
    "You are a nutrition normalizer for Arabic and Egyptian Arabic voice logs. "
    "Extract every food or drink mentioned in the text with its quantity, unit "
    "and the calories, protein, carbs and fat for that quantity.\n"
    "Rules:\n"
    "- Map dialect numerals and measures (نص=0.5, ربع=0.25, "
    "نص كيلو=500 grams, ربع كيلو=250 grams).\n"
    "- Use units from: grams, milliliters, pieces, cups, tablespoons, "
    "teaspoons, slices, bowls, servings.\n"
    "- Use edible cooked grams for bone-in items and record the assumption in "
    "nutritionNotes.\n"
    "- Extract the cooking method if present, else null.\n"
    "- Set needsQuantity when the amount is vague or missing and "
    "needsCookingMethod when the method changes calories and was not stated.\n"
    "- Return an empty foods array if no food is mentioned."
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParserReply:
    """Structured payload and token counts from the parsing model."""

    payload: dict[str, object]
    input_tokens: int = 0
    output_tokens: int = 0


class FoodParserClient(Protocol):
    """Interface for structured food extraction calls."""

    async def parse(
        self,
        *,
        model: str,
        prompt: str,
        transcript: str,
        schema: dict[str, object],
    ) -> ParserReply:
        """Return the model's structured reply for a transcript."""


@dataclass
class FoodParsingService:
    """Turns a transcript into a tagged parse outcome."""

    client: FoodParserClient
    model: str
    tracker: SessionTracker | None = None
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def parse(self, transcript: str) -> ParseOutcome:
        """Extract food items; failures are returned, never raised."""
        text = transcript.strip()
        if not text:
            return NoFoodDetected(transcript=transcript)

        started = time.perf_counter()
        try:
            reply = await call_with_retry(
                lambda: self.client.parse(
                    model=self.model,
                    prompt=FOOD_PARSE_PROMPT,
                    transcript=text,
                    schema=FOOD_PARSE_SCHEMA,
                ),
                action="parse_foods",
                retry_attempts=self.retry_attempts,
                retry_delay_seconds=self.retry_delay_seconds,
            )
        except AIServiceError as exc:
            self._track(started, success=False)
            _logger.warning("Food parsing failed (%s): %s", exc.kind, exc)
            return ParseFailure(error_kind=exc.kind, message=str(exc))

        usage = TokenUsage(
            input_tokens=reply.input_tokens, output_tokens=reply.output_tokens
        )
        self._track(started, success=True, usage=usage)
        try:
            items = _items_from_payload(reply.payload)
        except (ValidationError, TypeError) as exc:
            _logger.warning("Food parsing returned an invalid payload: %s", exc)
            return ParseFailure(
                error_kind="invalid_response",
                message="The nutrition service returned an unreadable response",
            )

        if not items:
            _logger.info("No food detected in transcript")
            return NoFoodDetected(transcript=text)
        _logger.info("Parsed %s food items", len(items))
        return ParseSuccess(items=items, usage=usage)

    def _track(
        self, started: float, *, success: bool, usage: TokenUsage | None = None
    ) -> None:
        if self.tracker is None:
            return
        latency_ms = (time.perf_counter() - started) * 1000
        usage = usage or TokenUsage()
        self.tracker.track_model_call(
            self.model,
            latency_ms,
            usage.total,
            success,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )


def _items_from_payload(payload: dict[str, object]) -> list[RawFoodItem]:
    foods = payload.get("foods")
    if foods is None:
        return []
    if not isinstance(foods, list):
        raise TypeError("foods must be a list")
    items = [RawFoodItem.model_validate(food) for food in foods]
    return [item for item in items if item.name.strip()]
