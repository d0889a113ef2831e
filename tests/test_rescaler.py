"""Tests for nutrition rescaling."""

import pytest

from tests.conftest import raw_item
from voice_nutrition.domain.errors import InvalidBaseQuantityError
from voice_nutrition.domain.nutrition import MacroProfile
from voice_nutrition.services.reconciler import ConfidenceReconciler
from voice_nutrition.services.rescaler import NutritionRescaler
from voice_nutrition.services.units import UnitConverter

BASE = MacroProfile(calories=200, protein_g=20, fat_g=10, carbs_g=5)


def test_fried_multiplier(rescaler: NutritionRescaler) -> None:
    result = rescaler.apply_cooking_multiplier(BASE, "Fried")

    assert result.calories == 280
    assert result.fat_g == 14
    assert result.protein_g == 20
    assert result.carbs_g == 5


@pytest.mark.parametrize(
    ("method", "expected"),
    [
        ("grilled", 1.1),
        ("مقلي", 1.4),
        ("Deep-Fried", 1.8),
        ("pan fried", 1.4),
        ("stir_fried", 1.25),
        ("deep fry", 1.8),
        ("stir-frying", 1.25),
        ("deep dish", 1.0),
        ("stirred", 1.0),
        ("fresh", 1.0),
        (None, 1.0),
    ],
)
def test_multiplier_lookup(
    rescaler: NutritionRescaler, method: str | None, expected: float
) -> None:
    assert rescaler.multiplier_for(method) == expected


def test_rescale_same_weight_is_identity(rescaler: NutritionRescaler) -> None:
    assert rescaler.rescale(BASE, 150, 150) == BASE


def test_rescale_there_and_back_within_rounding(rescaler: NutritionRescaler) -> None:
    base = MacroProfile(calories=333, protein_g=12.3, fat_g=7.7, carbs_g=41.9)

    there = rescaler.rescale(base, 120, 170)
    back = rescaler.rescale(there, 170, 120)

    assert abs(back.calories - base.calories) <= 1
    assert abs(back.protein_g - base.protein_g) <= 1
    assert abs(back.fat_g - base.fat_g) <= 1
    assert abs(back.carbs_g - base.carbs_g) <= 1


def test_rescale_rounds_results(rescaler: NutritionRescaler) -> None:
    result = rescaler.rescale(BASE, 300, 100)

    assert result == MacroProfile(calories=67, protein_g=6.7, fat_g=3.3, carbs_g=1.7)


def test_rescale_zero_base_keeps_nutrition(rescaler: NutritionRescaler) -> None:
    assert rescaler.rescale(BASE, 0, 250) == BASE


def test_strict_rescale_rejects_zero_base(unit_converter: UnitConverter) -> None:
    strict = NutritionRescaler(unit_converter=unit_converter, strict=True)

    with pytest.raises(InvalidBaseQuantityError):
        strict.rescale(BASE, 0, 250)


def test_update_item_rescales_from_original_estimate(
    reconciler: ConfidenceReconciler, rescaler: NutritionRescaler
) -> None:
    item = reconciler.build_item(
        raw_item(needsQuantity=True, calories=370, protein=7.4, fat=0.7, carbs=81.4),
        ai_model="gpt-4o",
    )

    rescaler.update_item(item, quantity=1)
    rescaler.update_item(item, quantity=2)

    assert item.gram_equivalent == 370
    assert item.nutrition.calories == 370
    assert item.needs_quantity_modal is False
    assert item.user_modified is True
    assert item.original_ai_estimate.calories == 370


def test_update_item_changes_cooking_method(
    reconciler: ConfidenceReconciler, rescaler: NutritionRescaler
) -> None:
    item = reconciler.build_item(
        raw_item(
            name="فراخ",
            quantity=100,
            unit="grams",
            calories=200,
            fat=10,
            protein=20,
            carbs=0,
            needsCookingMethod=True,
        ),
        ai_model="gpt-4o",
    )

    rescaler.update_item(item, cooking_method="fried")

    assert item.nutrition.calories == 280
    assert item.nutrition.fat_g == 14
    assert item.cooking_method == "fried"
    assert item.needs_cooking_modal is False


def test_update_item_rejects_negative_quantity(
    reconciler: ConfidenceReconciler, rescaler: NutritionRescaler
) -> None:
    item = reconciler.build_item(raw_item(), ai_model="gpt-4o")

    with pytest.raises(ValueError, match="non-negative"):
        rescaler.update_item(item, quantity=-1)


def test_validate_flags_implausible_values(rescaler: NutritionRescaler) -> None:
    validation = rescaler.validate(
        MacroProfile(calories=2500, protein_g=10, fat_g=10, carbs_g=10),
        food_name="chicken",
        quantity=3,
        unit="cup",
        cooking_method="deep fried",
    )

    assert validation.is_valid
    assert len(validation.warnings) == 4
    assert validation.confidence == 0.5


def test_validate_rejects_negative_values(rescaler: NutritionRescaler) -> None:
    validation = rescaler.validate(
        MacroProfile(calories=-1, protein_g=0, fat_g=0, carbs_g=0),
        food_name="water",
        quantity=0,
        unit="grams",
    )

    assert not validation.is_valid
    assert validation.errors
