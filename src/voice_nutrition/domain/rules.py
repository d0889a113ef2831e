"""Data-driven keyword rules for unit conversion and modal overrides."""

from pydantic import BaseModel, Field, field_validator, model_validator


def _normalize_keywords(values: list[str]) -> list[str]:
    return [value.lower() for value in values if value.strip()]


class OverrideRules(BaseModel):
    """Keyword lists used to correct the parser's clarification flags.

    Keywords are matched as case-insensitive substrings against the food name
    padded with one space on each side, so a keyword such as ``" tea"`` only
    matches at the start of a word.
    """

    clear_portion: list[str]
    vague_quantity: list[str]
    no_cooking_needed: list[str]
    explicit_cooking_method: list[str]

    @field_validator(
        "clear_portion",
        "vague_quantity",
        "no_cooking_needed",
        "explicit_cooking_method",
    )
    @classmethod
    def _lowercase(cls, values: list[str]) -> list[str]:
        return _normalize_keywords(values)


class UnitDefinition(BaseModel):
    """Generic unit with its default gram weight."""

    unit: str
    label: str
    grams_per_unit: float = Field(ge=0.0)


class CategoryUnit(BaseModel):
    """Unit offered for a category, optionally overriding the generic weight."""

    unit: str
    grams_per_unit: float | None = Field(default=None, ge=0.0)
    recommended: bool = False


class UnitCategory(BaseModel):
    """Food category selected by keyword with its own unit list."""

    name: str
    keywords: list[str]
    units: list[CategoryUnit]

    @field_validator("keywords")
    @classmethod
    def _lowercase(cls, values: list[str]) -> list[str]:
        return _normalize_keywords(values)

    @model_validator(mode="after")
    def _single_recommendation(self) -> "UnitCategory":
        recommended = [unit for unit in self.units if unit.recommended]
        if len(recommended) != 1:
            raise ValueError(
                f"category {self.name!r} must recommend exactly one unit"
            )
        return self


class UnitTable(BaseModel):
    """Complete unit conversion table."""

    generic: list[UnitDefinition]
    default_units: UnitCategory
    aliases: dict[str, str] = Field(default_factory=dict)
    categories: list[UnitCategory] = Field(default_factory=list)

    @field_validator("aliases")
    @classmethod
    def _lowercase_aliases(cls, values: dict[str, str]) -> dict[str, str]:
        return {key.strip().lower(): value for key, value in values.items()}

    @model_validator(mode="after")
    def _known_units(self) -> "UnitTable":
        known = {definition.unit for definition in self.generic}
        for category in [self.default_units, *self.categories]:
            for unit in category.units:
                if unit.unit not in known:
                    raise ValueError(
                        f"category {category.name!r} uses unknown unit {unit.unit!r}"
                    )
        return self
