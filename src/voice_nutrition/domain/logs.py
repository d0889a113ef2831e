"""Domain models for daily food logs."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal
from uuid import UUID

from voice_nutrition.domain.nutrition import MacroProfile

MealType = Literal["breakfast", "lunch", "dinner", "snacks"]
MEAL_TYPES: tuple[str, ...] = ("breakfast", "lunch", "dinner", "snacks")


@dataclass(frozen=True)
class FoodSnapshot:
    """Food name and nutrition per serving captured when logging."""

    name: str
    nutrition: MacroProfile
    serving_size: float
    serving_unit: str


@dataclass(frozen=True)
class LoggedFoodEntry:
    """A confirmed food entry."""

    id: UUID
    food: FoodSnapshot
    quantity: float
    nutrition: MacroProfile
    logged_at: datetime
    meal_type: MealType


@dataclass(frozen=True)
class DailyLog:
    """All entries logged on a single day."""

    day: date
    entries: list[LoggedFoodEntry]
    total_nutrition: MacroProfile
    calorie_goal: float
