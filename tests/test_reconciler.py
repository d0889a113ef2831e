"""Tests for confidence reconciliation."""

import pytest

from tests.conftest import raw_item
from voice_nutrition.services.reconciler import ConfidenceReconciler
from voice_nutrition.services.rules import load_override_rules

RULES = load_override_rules()


def test_tea_cup_clears_both_modals(reconciler: ConfidenceReconciler) -> None:
    flags = reconciler.reconcile(
        raw_item(name="كوب شاي", needsQuantity=True, needsCookingMethod=True)
    )

    assert flags.needs_quantity_modal is False
    assert flags.quantity_reason == "clear_portion"
    assert flags.needs_cooking_modal is False
    assert flags.cooking_reason == "no_cooking_needed"


def test_plain_chicken_keeps_ai_flags(reconciler: ConfidenceReconciler) -> None:
    flags = reconciler.reconcile(
        raw_item(name="دجاج", needsQuantity=False, needsCookingMethod=False)
    )

    assert flags.needs_cooking_modal is False
    assert flags.cooking_reason == "ai"
    assert flags.needs_quantity_modal is False
    assert flags.quantity_reason == "ai"


@pytest.mark.parametrize("name", ["ساندوتش فول", "Big Mac meal", "half pizza", "رغيف عيش"])
@pytest.mark.parametrize("ai_flag", [True, False])
def test_clear_portion_never_needs_quantity(
    reconciler: ConfidenceReconciler, name: str, ai_flag: bool
) -> None:
    flags = reconciler.reconcile(raw_item(name=name, needsQuantity=ai_flag))

    assert flags.needs_quantity_modal is False


@pytest.mark.parametrize("name", ["شوية رز", "some rice", "a little pasta"])
def test_vague_quantity_always_needs_quantity(
    reconciler: ConfidenceReconciler, name: str
) -> None:
    flags = reconciler.reconcile(raw_item(name=name, needsQuantity=False))

    assert flags.needs_quantity_modal is True
    assert flags.quantity_reason == "vague_quantity"


@pytest.mark.parametrize("keyword", RULES.clear_portion)
@pytest.mark.parametrize("ai_flag", [True, False])
def test_every_clear_portion_keyword_clears_quantity(
    reconciler: ConfidenceReconciler, keyword: str, ai_flag: bool
) -> None:
    flags = reconciler.reconcile(raw_item(name=keyword.strip(), needsQuantity=ai_flag))

    assert flags.needs_quantity_modal is False


@pytest.mark.parametrize("keyword", RULES.vague_quantity)
def test_every_vague_keyword_needs_quantity(
    reconciler: ConfidenceReconciler, keyword: str
) -> None:
    flags = reconciler.reconcile(raw_item(name=keyword.strip(), needsQuantity=False))

    assert flags.needs_quantity_modal is True


@pytest.mark.parametrize("ai_flag", [True, False])
def test_unmatched_name_passes_ai_flag_through(
    reconciler: ConfidenceReconciler, ai_flag: bool
) -> None:
    flags = reconciler.reconcile(
        raw_item(name="مكرونة", needsQuantity=ai_flag, needsCookingMethod=ai_flag)
    )

    assert flags.needs_quantity_modal is ai_flag
    assert flags.needs_cooking_modal is ai_flag


def test_method_in_name_clears_cooking_modal(
    reconciler: ConfidenceReconciler,
) -> None:
    flags = reconciler.reconcile(
        raw_item(name="Grilled chicken", needsCookingMethod=True)
    )

    assert flags.needs_cooking_modal is False
    assert flags.cooking_reason == "method_in_name"


def test_keywords_match_word_starts_only(reconciler: ConfidenceReconciler) -> None:
    steak = reconciler.reconcile(raw_item(name="steak", needsCookingMethod=True))
    oatmeal = reconciler.reconcile(raw_item(name="oatmeal", needsQuantity=True))

    assert steak.needs_cooking_modal is True
    assert oatmeal.needs_quantity_modal is True


def test_build_item_fills_defaults(reconciler: ConfidenceReconciler) -> None:
    item = reconciler.build_item(
        raw_item(name="فول", quantity=None, unit=None, confidence=None),
        ai_model="gpt-4o",
    )

    assert item.quantity == 100
    assert item.unit == "grams"
    assert item.gram_equivalent == 100
    assert item.original_grams == 100
    assert item.overall_confidence == 0.85
    assert item.cooking_confidence == 0.3
    assert item.user_modified is False
    assert item.ai_model == "gpt-4o"


def test_build_item_converts_units_and_keeps_snapshot(
    reconciler: ConfidenceReconciler,
) -> None:
    raw = raw_item(cookingMethod="boiled", nutritionNotes="cooked white rice")

    item = reconciler.build_item(raw, ai_model="gpt-4o")

    assert item.gram_equivalent == 370
    assert item.cooking_confidence == 0.9
    assert item.original_ai_estimate is raw
    assert item.assumptions == ["cooked white rice"]
    assert any(option.is_recommended for option in item.suggested_units)


def test_build_item_clamps_negative_grams(reconciler: ConfidenceReconciler) -> None:
    item = reconciler.build_item(raw_item(quantity=-2), ai_model="gpt-4o")

    assert item.gram_equivalent == 0
