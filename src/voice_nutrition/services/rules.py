"""Loading of keyword rule tables."""

import json
import logging
from pathlib import Path

from voice_nutrition.domain.rules import OverrideRules, UnitTable

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_OVERRIDE_RULES_PATH = _DATA_DIR / "override_rules.json"
DEFAULT_UNIT_TABLE_PATH = _DATA_DIR / "unit_categories.json"

_logger = logging.getLogger(__name__)


def load_override_rules(path: str | Path | None = None) -> OverrideRules:
    """Load modal override keywords from JSON."""
    path = Path(path or DEFAULT_OVERRIDE_RULES_PATH)
    rules = OverrideRules.model_validate(_read_json(path))
    _logger.info(
        "Loaded override rules from %s: clear=%s vague=%s no_cooking=%s methods=%s",
        path.name,
        len(rules.clear_portion),
        len(rules.vague_quantity),
        len(rules.no_cooking_needed),
        len(rules.explicit_cooking_method),
    )
    return rules


def load_unit_table(path: str | Path | None = None) -> UnitTable:
    """Load the unit conversion table from JSON."""
    path = Path(path or DEFAULT_UNIT_TABLE_PATH)
    table = UnitTable.model_validate(_read_json(path))
    _logger.info(
        "Loaded unit table from %s: categories=%s",
        path.name,
        len(table.categories),
    )
    return table


def _read_json(path: Path) -> dict[str, object]:
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)
