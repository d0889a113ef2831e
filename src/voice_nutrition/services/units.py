"""Unit conversion from spoken quantities to gram equivalents."""

import logging
from dataclasses import dataclass, field

from voice_nutrition.domain.foods import UnitOption
from voice_nutrition.domain.rules import UnitCategory, UnitDefinition, UnitTable

GRAMS = "grams"
KILOGRAM_THRESHOLD = 1000

_logger = logging.getLogger(__name__)


@dataclass
class UnitConverter:
    """Maps food names and units to gram weights using category heuristics."""

    table: UnitTable
    _generic: dict[str, UnitDefinition] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._generic = {
            definition.unit: definition for definition in self.table.generic
        }

    def category_for(self, food_name: str) -> UnitCategory:
        """Return the first category whose keywords appear in the food name."""
        name = food_name.lower()
        for category in self.table.categories:
            if any(keyword in name for keyword in category.keywords):
                return category
        return self.table.default_units

    def suggest_units(self, food_name: str) -> list[UnitOption]:
        """Return the ordered unit options for a food, one of them recommended."""
        category = self.category_for(food_name)
        options: list[UnitOption] = []
        for entry in category.units:
            definition = self._generic[entry.unit]
            grams_per_unit = (
                entry.grams_per_unit
                if entry.grams_per_unit is not None
                else definition.grams_per_unit
            )
            options.append(
                UnitOption(
                    unit=definition.unit,
                    label=definition.label,
                    grams_per_unit=grams_per_unit,
                    is_recommended=entry.recommended,
                )
            )
        return options

    def normalize_unit(self, unit: str | None) -> str:
        """Map free-form unit strings to canonical unit names."""
        if not unit:
            return GRAMS
        cleaned = unit.strip().lower()
        if cleaned in self._generic:
            return cleaned
        return self.table.aliases.get(cleaned, cleaned)

    def grams_per_unit(self, food_name: str, unit: str | None) -> float:
        """Return the gram weight of one unit for this food."""
        canonical = self.normalize_unit(unit)
        for option in self.suggest_units(food_name):
            if option.unit == canonical:
                return option.grams_per_unit
        definition = self._generic.get(canonical)
        if definition is not None:
            return definition.grams_per_unit
        _logger.warning(
            "Unknown unit %r for %r, treating quantity as grams", unit, food_name
        )
        return self._generic[GRAMS].grams_per_unit

    def to_grams(self, food_name: str, quantity: float, unit: str | None) -> float:
        """Convert a quantity to grams without rounding."""
        return quantity * self.grams_per_unit(food_name, unit)

    def format_weight(self, food_name: str, quantity: float, unit: str | None) -> str:
        """Format the estimated weight for display."""
        grams = round(self.to_grams(food_name, quantity, unit))
        if grams >= KILOGRAM_THRESHOLD:
            return f"{grams / 1000:.1f}kg"
        return f"{grams}g"
