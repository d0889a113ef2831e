"""Food item models for parsed and reconciled AI output."""

from dataclasses import dataclass, field
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from voice_nutrition.domain.nutrition import MacroProfile

_UNKNOWN_METHODS = {"", "unknown", "none", "null", "n/a"}


class RawFoodItem(BaseModel):
    """Single food item as returned by the parsing model."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    quantity: float | None = None
    unit: str | None = None
    cooking_method: str | None = Field(default=None, alias="cookingMethod")
    confidence: float | None = None
    needs_quantity: bool = Field(default=False, alias="needsQuantity")
    needs_cooking_method: bool = Field(default=False, alias="needsCookingMethod")
    suggested_quantity: list[str] = Field(
        default_factory=list, alias="suggestedQuantity"
    )
    suggested_cooking_methods: list[str] = Field(
        default_factory=list, alias="suggestedCookingMethods"
    )
    nutrition_notes: str | None = Field(default=None, alias="nutritionNotes")

    @field_validator("calories", "protein", "carbs", "fat", mode="before")
    @classmethod
    def _default_missing_macro(cls, value: object) -> object:
        return 0.0 if value is None else value

    @field_validator("needs_quantity", "needs_cooking_method", mode="before")
    @classmethod
    def _default_missing_flag(cls, value: object) -> object:
        return False if value is None else value

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float | None) -> float | None:
        if value is None:
            return None
        return min(max(value, 0.0), 1.0)

    @field_validator("cooking_method")
    @classmethod
    def _drop_unknown_method(cls, value: str | None) -> str | None:
        if value is None or value.strip().lower() in _UNKNOWN_METHODS:
            return None
        return value.strip()

    @field_validator("suggested_quantity", "suggested_cooking_methods", mode="before")
    @classmethod
    def _stringify_suggestions(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(entry) for entry in value]
        return value

    @property
    def macros(self) -> MacroProfile:
        """Macros reported for the parsed quantity."""
        return MacroProfile(
            calories=self.calories,
            protein_g=self.protein,
            fat_g=self.fat,
            carbs_g=self.carbs,
        )


@dataclass(frozen=True)
class UnitOption:
    """A unit the user may pick for a food, with its gram weight."""

    unit: str
    label: str
    grams_per_unit: float
    is_recommended: bool = False


@dataclass(frozen=True)
class ModalFlags:
    """Clarification flags after keyword overrides were applied."""

    needs_quantity_modal: bool
    needs_cooking_modal: bool
    quantity_reason: str = "ai"
    cooking_reason: str = "ai"


@dataclass
class ReconciledFoodItem:
    """Food item ready for review, edited in place by the user."""

    name: str
    nutrition: MacroProfile
    quantity: float
    unit: str
    cooking_method: str | None
    gram_equivalent: float
    needs_quantity_modal: bool
    needs_cooking_modal: bool
    overall_confidence: float
    quantity_confidence: float
    cooking_confidence: float
    original_ai_estimate: RawFoodItem
    original_grams: float
    ai_model: str
    suggested_units: list[UnitOption] = field(default_factory=list)
    suggested_cooking_methods: list[str] = field(default_factory=list)
    assumptions: list[str] = field(default_factory=list)
    user_modified: bool = False
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if self.gram_equivalent < 0:
            raise ValueError("gram_equivalent must be non-negative")

    @property
    def needs_clarification(self) -> bool:
        """True when either clarification modal should be shown."""
        return self.needs_quantity_modal or self.needs_cooking_modal
