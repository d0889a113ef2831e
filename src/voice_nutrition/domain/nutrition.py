"""Nutrition domain models."""

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class MacroProfile:
    """Calories and macronutrients for a food portion."""

    calories: float
    protein_g: float
    fat_g: float
    carbs_g: float


ZERO_MACROS = MacroProfile(0.0, 0.0, 0.0, 0.0)


def sum_macros(profiles: Iterable[MacroProfile]) -> MacroProfile:
    """Fold macro profiles into a single total."""
    total = ZERO_MACROS
    for profile in profiles:
        total = MacroProfile(
            calories=total.calories + profile.calories,
            protein_g=total.protein_g + profile.protein_g,
            fat_g=total.fat_g + profile.fat_g,
            carbs_g=total.carbs_g + profile.carbs_g,
        )
    return total


def round_macros(profile: MacroProfile) -> MacroProfile:
    """Round calories to whole numbers and macros to one decimal."""
    return MacroProfile(
        calories=float(round(profile.calories)),
        protein_g=round(profile.protein_g, 1),
        fat_g=round(profile.fat_g, 1),
        carbs_g=round(profile.carbs_g, 1),
    )


@dataclass(frozen=True)
class NutritionValidation:
    """Plausibility checks on computed nutrition."""

    is_valid: bool
    warnings: list[str]
    errors: list[str]
    confidence: float
