"""Nutrition rescaling for quantity, unit and cooking method edits."""

import logging
from dataclasses import dataclass

from voice_nutrition.domain.errors import InvalidBaseQuantityError
from voice_nutrition.domain.foods import ReconciledFoodItem
from voice_nutrition.domain.nutrition import (
    MacroProfile,
    NutritionValidation,
    round_macros,
)
from voice_nutrition.services.units import UnitConverter

COOKING_MULTIPLIERS: dict[str, float] = {
    "raw": 1.0,
    "boiled": 1.0,
    "steamed": 1.0,
    "baked": 1.05,
    "grilled": 1.1,
    "roasted": 1.1,
    "braised": 1.15,
    "sautéed": 1.2,
    "sauteed": 1.2,
    "stir-fried": 1.25,
    "stir fried": 1.25,
    "fried": 1.4,
    "deep fried": 1.8,
    "deep-fried": 1.8,
}

_ARABIC_METHODS: dict[str, str] = {
    "نيء": "raw",
    "مسلوق": "boiled",
    "مسلوقة": "boiled",
    "على البخار": "steamed",
    "في الفرن": "baked",
    "بالفرن": "baked",
    "مشوي": "grilled",
    "مشوية": "grilled",
    "محمر": "roasted",
    "محمرة": "roasted",
    "مطهي": "braised",
    "سوتيه": "sautéed",
    "مقلي": "fried",
    "مقلية": "fried",
    "مقلي غرق": "deep fried",
}

# Checked in order; the first fragment found in the method name wins. Deep and
# stir variants only apply alongside a frying fragment.
_PARTIAL_METHODS: list[tuple[str, str]] = [
    ("fry", "fried"),
    ("fried", "fried"),
    ("grill", "grilled"),
    ("bake", "baked"),
    ("roast", "roasted"),
    ("steam", "steamed"),
    ("boil", "boiled"),
    ("saut", "sautéed"),
    ("brais", "braised"),
]

HIGH_CALORIE_THRESHOLD = 2000
LOW_CALORIE_THRESHOLD = 5
MACRO_MISMATCH_RATIO = 0.2
HEAVY_FAT_MULTIPLIER = 1.3
_COUNT_FOODS = (
    "chicken",
    "beef",
    "fish",
    "meat",
    "egg",
    "apple",
    "banana",
    "orange",
    "دجاج",
    "فراخ",
    "لحم",
    "سمك",
    "بيض",
    "تفاح",
    "موز",
    "برتقال",
)

_logger = logging.getLogger(__name__)


@dataclass
class NutritionRescaler:
    """Recomputes nutrition when the user edits an item."""

    unit_converter: UnitConverter
    strict: bool = False

    def rescale(
        self, base: MacroProfile, base_grams: float, new_grams: float
    ) -> MacroProfile:
        """Scale nutrition linearly from one gram weight to another."""
        if base_grams <= 0:
            if self.strict:
                raise InvalidBaseQuantityError(
                    f"Cannot rescale from a base weight of {base_grams}g"
                )
            _logger.warning(
                "Rescale from non-positive base weight %sg, keeping nutrition",
                base_grams,
            )
            factor = 1.0
        else:
            factor = new_grams / base_grams
        return round_macros(
            MacroProfile(
                calories=base.calories * factor,
                protein_g=base.protein_g * factor,
                fat_g=base.fat_g * factor,
                carbs_g=base.carbs_g * factor,
            )
        )

    def multiplier_for(self, method: str | None) -> float:
        """Return the calorie multiplier for a cooking method, 1.0 if unknown."""
        if not method:
            return 1.0
        normalized = " ".join(method.strip().lower().replace("_", " ").split())
        if normalized in COOKING_MULTIPLIERS:
            return COOKING_MULTIPLIERS[normalized]
        if normalized in _ARABIC_METHODS:
            return COOKING_MULTIPLIERS[_ARABIC_METHODS[normalized]]
        for fragment, canonical in _PARTIAL_METHODS:
            if fragment in normalized:
                if canonical == "fried" and "deep" in normalized:
                    return COOKING_MULTIPLIERS["deep fried"]
                if canonical == "fried" and "stir" in normalized:
                    return COOKING_MULTIPLIERS["stir-fried"]
                return COOKING_MULTIPLIERS[canonical]
        return 1.0

    def apply_cooking_multiplier(
        self, nutrition: MacroProfile, method: str | None
    ) -> MacroProfile:
        """Adjust calories and fat for oil absorbed while cooking."""
        return _apply_cooking_factor(nutrition, self.multiplier_for(method))

    def change_cooking_method(
        self,
        nutrition: MacroProfile,
        from_method: str | None,
        to_method: str | None,
    ) -> MacroProfile:
        """Swap the cooking adjustment baked into nutrition for another one."""
        factor = self.multiplier_for(to_method) / self.multiplier_for(from_method)
        if factor == 1.0:
            return nutrition
        return _apply_cooking_factor(nutrition, factor)

    def update_item(
        self,
        item: ReconciledFoodItem,
        *,
        quantity: float | None = None,
        unit: str | None = None,
        cooking_method: str | None = None,
    ) -> ReconciledFoodItem:
        """Apply a user edit and recompute the item's nutrition in place."""
        if quantity is not None and quantity < 0:
            raise ValueError("quantity must be non-negative")
        new_quantity = item.quantity if quantity is None else quantity
        new_unit = item.unit if unit is None else unit
        grams = self.unit_converter.to_grams(item.name, new_quantity, new_unit)

        original = item.original_ai_estimate
        nutrition = self.rescale(original.macros, item.original_grams, grams)
        method = item.cooking_method if cooking_method is None else cooking_method
        nutrition = self.change_cooking_method(
            nutrition, original.cooking_method, method
        )

        item.quantity = new_quantity
        item.unit = new_unit
        item.gram_equivalent = grams
        item.cooking_method = method
        item.nutrition = nutrition
        if quantity is not None or unit is not None:
            item.needs_quantity_modal = False
        if cooking_method is not None:
            item.needs_cooking_modal = False
        item.user_modified = True
        return item

    def validate(
        self,
        nutrition: MacroProfile,
        *,
        food_name: str,
        quantity: float,
        unit: str,
        cooking_method: str | None = None,
    ) -> NutritionValidation:
        """Check computed nutrition for implausible values."""
        warnings: list[str] = []
        errors: list[str] = []
        confidence = 0.8

        values = (
            nutrition.calories,
            nutrition.protein_g,
            nutrition.fat_g,
            nutrition.carbs_g,
        )
        if any(value < 0 for value in values):
            errors.append("Nutrition values cannot be negative")

        if nutrition.calories > HIGH_CALORIE_THRESHOLD:
            warnings.append("Very high calorie content - please verify portion size")
            confidence -= 0.1
        if nutrition.calories < LOW_CALORIE_THRESHOLD and quantity > 0:
            warnings.append("Very low calorie content - may be inaccurate")
            confidence -= 0.2

        macro_calories = (
            nutrition.protein_g * 4 + nutrition.carbs_g * 4 + nutrition.fat_g * 9
        )
        if abs(nutrition.calories - macro_calories) > (
            nutrition.calories * MACRO_MISMATCH_RATIO
        ):
            warnings.append("Macronutrient calories don't match total calories")
            confidence -= 0.1

        if self.unit_converter.normalize_unit(unit) == "cups" and any(
            food in food_name.lower() for food in _COUNT_FOODS
        ):
            warnings.append(f'"{unit}" may not be accurate for {food_name}')
            confidence -= 0.1

        heavy_fat = self.multiplier_for(cooking_method) > HEAVY_FAT_MULTIPLIER
        if cooking_method and heavy_fat:
            warnings.append(
                f"{cooking_method} cooking adds significant calories from added fats"
            )

        return NutritionValidation(
            is_valid=not errors,
            warnings=warnings,
            errors=errors,
            confidence=round(max(0.1, min(1.0, confidence)), 2),
        )


def confidence_description(confidence: float) -> str:
    """Describe a confidence score for display."""
    if confidence >= 0.8:  # noqa: PLR2004
        return "High accuracy"
    if confidence >= 0.6:  # noqa: PLR2004
        return "Good estimate"
    if confidence >= 0.4:  # noqa: PLR2004
        return "Rough estimate"
    return "Low accuracy - verify manually"


def _apply_cooking_factor(nutrition: MacroProfile, factor: float) -> MacroProfile:
    return MacroProfile(
        calories=float(round(nutrition.calories * factor)),
        protein_g=nutrition.protein_g,
        fat_g=round(nutrition.fat_g * factor, 1),
        carbs_g=nutrition.carbs_g,
    )
