"""Confidence reconciliation of parsed food items."""

from dataclasses import dataclass

from voice_nutrition.domain.foods import ModalFlags, RawFoodItem, ReconciledFoodItem
from voice_nutrition.domain.rules import OverrideRules
from voice_nutrition.services.units import GRAMS, UnitConverter

DEFAULT_CONFIDENCE = 0.85
DEFAULT_QUANTITY = 100.0
COOKING_CONFIDENCE_KNOWN = 0.9
COOKING_CONFIDENCE_UNKNOWN = 0.3


@dataclass
class ConfidenceReconciler:
    """Corrects the parser's clarification flags with keyword rules."""

    rules: OverrideRules
    unit_converter: UnitConverter

    def reconcile(self, item: RawFoodItem) -> ModalFlags:
        """Apply override rules to the AI flags.

        Quantity and cooking flags are decided independently; for each, the
        first matching rule wins and no match keeps the AI's value.
        """
        name = _normalize_name(item.name)

        if _matches(name, self.rules.clear_portion):
            needs_quantity, quantity_reason = False, "clear_portion"
        elif _matches(name, self.rules.vague_quantity):
            needs_quantity, quantity_reason = True, "vague_quantity"
        else:
            needs_quantity, quantity_reason = item.needs_quantity, "ai"

        if _matches(name, self.rules.no_cooking_needed):
            needs_cooking, cooking_reason = False, "no_cooking_needed"
        elif _matches(name, self.rules.explicit_cooking_method):
            needs_cooking, cooking_reason = False, "method_in_name"
        else:
            needs_cooking, cooking_reason = item.needs_cooking_method, "ai"

        return ModalFlags(
            needs_quantity_modal=needs_quantity,
            needs_cooking_modal=needs_cooking,
            quantity_reason=quantity_reason,
            cooking_reason=cooking_reason,
        )

    def build_item(self, raw: RawFoodItem, ai_model: str) -> ReconciledFoodItem:
        """Create a reviewable item with flags, confidences and grams."""
        flags = self.reconcile(raw)
        quantity = raw.quantity if raw.quantity is not None else DEFAULT_QUANTITY
        unit = raw.unit or GRAMS
        grams = max(self.unit_converter.to_grams(raw.name, quantity, unit), 0.0)
        confidence = (
            raw.confidence if raw.confidence is not None else DEFAULT_CONFIDENCE
        )
        return ReconciledFoodItem(
            name=raw.name,
            nutrition=raw.macros,
            quantity=quantity,
            unit=unit,
            cooking_method=raw.cooking_method,
            gram_equivalent=grams,
            needs_quantity_modal=flags.needs_quantity_modal,
            needs_cooking_modal=flags.needs_cooking_modal,
            overall_confidence=confidence,
            quantity_confidence=confidence,
            cooking_confidence=(
                COOKING_CONFIDENCE_KNOWN
                if raw.cooking_method
                else COOKING_CONFIDENCE_UNKNOWN
            ),
            original_ai_estimate=raw,
            original_grams=grams,
            ai_model=ai_model,
            suggested_units=self.unit_converter.suggest_units(raw.name),
            suggested_cooking_methods=list(raw.suggested_cooking_methods),
            assumptions=[raw.nutrition_notes] if raw.nutrition_notes else [],
        )

    def build_items(
        self, raw_items: list[RawFoodItem], ai_model: str
    ) -> list[ReconciledFoodItem]:
        """Reconcile every parsed item."""
        return [self.build_item(raw, ai_model) for raw in raw_items]


def _normalize_name(name: str) -> str:
    return f" {' '.join(name.lower().split())} "


def _matches(name: str, keywords: list[str]) -> bool:
    return any(keyword in name for keyword in keywords)
