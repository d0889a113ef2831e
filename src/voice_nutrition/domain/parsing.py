"""Tagged outcomes of the food parsing call."""

from dataclasses import dataclass, field
from typing import Literal

from voice_nutrition.domain.errors import (
    AIServiceError,
    NoFoodDetectedError,
    error_for_kind,
)
from voice_nutrition.domain.foods import RawFoodItem


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by the model provider."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class ParseSuccess:
    """The parser returned at least one food item."""

    items: list[RawFoodItem]
    usage: TokenUsage = field(default_factory=TokenUsage)
    kind: Literal["success"] = "success"


@dataclass(frozen=True)
class NoFoodDetected:
    """The parser ran but found nothing that looks like food."""

    transcript: str
    kind: Literal["no_food"] = "no_food"

    def to_error(self) -> NoFoodDetectedError:
        return NoFoodDetectedError(
            "No food items detected in the description. "
            "Please try describing your meal again."
        )


@dataclass(frozen=True)
class ParseFailure:
    """The parser call failed."""

    error_kind: str
    message: str
    kind: Literal["failure"] = "failure"

    def to_error(self) -> AIServiceError:
        return error_for_kind(self.error_kind, self.message)


ParseOutcome = ParseSuccess | NoFoodDetected | ParseFailure
