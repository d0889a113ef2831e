"""Pydantic models for HTTP request and response payloads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from voice_nutrition.domain.foods import ReconciledFoodItem, UnitOption
from voice_nutrition.domain.logs import DailyLog, LoggedFoodEntry, MealType
from voice_nutrition.domain.nutrition import MacroProfile, NutritionValidation
from voice_nutrition.services.entitlements import UsageStats
from voice_nutrition.services.rescaler import confidence_description


class MacroPayload(BaseModel):
    """Calories and macronutrients."""

    calories: float = Field(ge=0.0)
    protein_g: float = Field(default=0.0, ge=0.0)
    fat_g: float = Field(default=0.0, ge=0.0)
    carbs_g: float = Field(default=0.0, ge=0.0)

    @classmethod
    def from_profile(cls, profile: MacroProfile) -> "MacroPayload":
        return cls(
            calories=profile.calories,
            protein_g=profile.protein_g,
            fat_g=profile.fat_g,
            carbs_g=profile.carbs_g,
        )

    def to_profile(self) -> MacroProfile:
        return MacroProfile(
            calories=self.calories,
            protein_g=self.protein_g,
            fat_g=self.fat_g,
            carbs_g=self.carbs_g,
        )


class UnitOptionPayload(BaseModel):
    """Unit choice offered for a food."""

    unit: str
    label: str
    grams_per_unit: float
    is_recommended: bool

    @classmethod
    def from_option(cls, option: UnitOption) -> "UnitOptionPayload":
        return cls(
            unit=option.unit,
            label=option.label,
            grams_per_unit=option.grams_per_unit,
            is_recommended=option.is_recommended,
        )


class FoodItemPayload(BaseModel):
    """Reconciled food item returned for review."""

    id: UUID
    name: str
    quantity: float
    unit: str
    cooking_method: str | None
    gram_equivalent: float
    nutrition: MacroPayload
    needs_quantity_modal: bool
    needs_cooking_modal: bool
    overall_confidence: float
    confidence_label: str
    quantity_confidence: float
    cooking_confidence: float
    suggested_units: list[UnitOptionPayload]
    suggested_cooking_methods: list[str]
    assumptions: list[str]
    ai_model: str
    user_modified: bool

    @classmethod
    def from_item(cls, item: ReconciledFoodItem) -> "FoodItemPayload":
        return cls(
            id=item.id,
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            cooking_method=item.cooking_method,
            gram_equivalent=item.gram_equivalent,
            nutrition=MacroPayload.from_profile(item.nutrition),
            needs_quantity_modal=item.needs_quantity_modal,
            needs_cooking_modal=item.needs_cooking_modal,
            overall_confidence=item.overall_confidence,
            confidence_label=confidence_description(item.overall_confidence),
            quantity_confidence=item.quantity_confidence,
            cooking_confidence=item.cooking_confidence,
            suggested_units=[
                UnitOptionPayload.from_option(option)
                for option in item.suggested_units
            ],
            suggested_cooking_methods=item.suggested_cooking_methods,
            assumptions=item.assumptions,
            ai_model=item.ai_model,
            user_modified=item.user_modified,
        )


class ProcessingResponse(BaseModel):
    """Result of processing a recording or typed description."""

    session_id: str
    transcript: str
    needs_review: bool
    items: list[FoodItemPayload]


class TranscriptRequest(BaseModel):
    """Typed meal description."""

    transcript: str = Field(min_length=1)


class RescaleRequest(BaseModel):
    """Edit of an item's quantity, unit or cooking method."""

    food_name: str
    nutrition: MacroPayload
    base_grams: float
    quantity: float = Field(ge=0.0)
    unit: str
    original_quantity: float | None = Field(default=None, ge=0.0)
    original_unit: str | None = None
    original_cooking_method: str | None = None
    cooking_method: str | None = None


class ValidationPayload(BaseModel):
    """Plausibility checks for computed nutrition."""

    is_valid: bool
    warnings: list[str]
    errors: list[str]
    confidence: float

    @classmethod
    def from_validation(cls, validation: NutritionValidation) -> "ValidationPayload":
        return cls(
            is_valid=validation.is_valid,
            warnings=validation.warnings,
            errors=validation.errors,
            confidence=validation.confidence,
        )


class RescaleResponse(BaseModel):
    """Recomputed nutrition for an edited item."""

    nutrition: MacroPayload
    gram_equivalent: float
    weight_label: str
    validation: ValidationPayload


class LogEntryRequest(BaseModel):
    """Confirmed food to add to a daily log."""

    name: str = Field(min_length=1)
    nutrition: MacroPayload
    serving_size: float = Field(default=100.0, gt=0.0)
    serving_unit: str = "grams"
    quantity: float = Field(default=1.0, ge=0.0)
    meal_type: MealType = "snacks"


class QuantityUpdateRequest(BaseModel):
    """New serving multiple for a logged entry."""

    quantity: float = Field(ge=0.0)


class CalorieGoalRequest(BaseModel):
    """New daily calorie goal."""

    calorie_goal: float = Field(gt=0.0)


class TierRequest(BaseModel):
    """Subscription tier assignment."""

    tier: str


class LoggedEntryPayload(BaseModel):
    """Logged food entry."""

    id: UUID
    name: str
    serving_size: float
    serving_unit: str
    quantity: float
    nutrition: MacroPayload
    logged_at: datetime
    meal_type: str

    @classmethod
    def from_entry(cls, entry: LoggedFoodEntry) -> "LoggedEntryPayload":
        return cls(
            id=entry.id,
            name=entry.food.name,
            serving_size=entry.food.serving_size,
            serving_unit=entry.food.serving_unit,
            quantity=entry.quantity,
            nutrition=MacroPayload.from_profile(entry.nutrition),
            logged_at=entry.logged_at,
            meal_type=entry.meal_type,
        )


class DailyLogPayload(BaseModel):
    """Daily log with totals."""

    date: str
    entries: list[LoggedEntryPayload]
    total_nutrition: MacroPayload
    calorie_goal: float

    @classmethod
    def from_log(cls, log: DailyLog) -> "DailyLogPayload":
        return cls(
            date=log.day.isoformat(),
            entries=[LoggedEntryPayload.from_entry(entry) for entry in log.entries],
            total_nutrition=MacroPayload.from_profile(log.total_nutrition),
            calorie_goal=log.calorie_goal,
        )


class UsagePayload(BaseModel):
    """Recording usage for the current month."""

    tier: str
    used: int
    limit: int | None
    remaining: int | None
    period: str

    @classmethod
    def from_usage(cls, usage: UsageStats) -> "UsagePayload":
        return cls(
            tier=usage.tier,
            used=usage.used,
            limit=usage.limit,
            remaining=usage.remaining,
            period=usage.period,
        )
