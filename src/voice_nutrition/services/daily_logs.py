"""Daily food log service."""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

from voice_nutrition.domain.foods import ReconciledFoodItem
from voice_nutrition.domain.logs import (
    MEAL_TYPES,
    DailyLog,
    FoodSnapshot,
    LoggedFoodEntry,
    MealType,
)
from voice_nutrition.domain.nutrition import MacroProfile, sum_macros
from voice_nutrition.services.store import KeyValueStore

LOG_KEY_PREFIX = "daily_log:"
_INDEX_KEY = "daily_log:index"
DEFAULT_CALORIE_GOAL = 2000.0
SERVING_GRAMS = 100.0

_logger = logging.getLogger(__name__)


@dataclass
class DailyLogService:
    """Persists confirmed food entries grouped by calendar day."""

    store: KeyValueStore
    default_calorie_goal: float = DEFAULT_CALORIE_GOAL
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def get_daily_log(self, day: date) -> DailyLog | None:
        """Return the log for a day if anything was logged."""
        raw = self.store.get(_log_key(day))
        if raw is None:
            return None
        return _log_from_row(raw)

    def log_food(
        self,
        day: date,
        food: FoodSnapshot,
        quantity: float,
        meal_type: MealType = "snacks",
    ) -> LoggedFoodEntry:
        """Append an entry for a food eaten in the given serving multiple."""
        if quantity < 0:
            raise ValueError("quantity must be non-negative")
        if meal_type not in MEAL_TYPES:
            raise ValueError(f"Unsupported meal type: {meal_type}")
        entry = LoggedFoodEntry(
            id=uuid4(),
            food=food,
            quantity=quantity,
            nutrition=calculate_nutrition_for_quantity(food.nutrition, quantity),
            logged_at=datetime.now(tz=UTC),
            meal_type=meal_type,
        )
        with self._lock:
            log = self.get_daily_log(day)
            if log is None:
                _logger.info("Creating daily log for %s", day.isoformat())
                log = DailyLog(
                    day=day,
                    entries=[],
                    total_nutrition=sum_macros([]),
                    calorie_goal=self.default_calorie_goal,
                )
            self._save(log, [*log.entries, entry])
        _logger.info("Logged %s x%s on %s", food.name, quantity, day.isoformat())
        return entry

    def log_reconciled_items(
        self,
        day: date,
        items: list[ReconciledFoodItem],
        meal_type: MealType = "snacks",
    ) -> list[LoggedFoodEntry]:
        """Log reviewed items, storing nutrition per 100 g of each food."""
        entries: list[LoggedFoodEntry] = []
        for item in items:
            if not item.name.strip() or item.nutrition.calories <= 0:
                _logger.warning("Skipping invalid food item %r", item.name)
                continue
            snapshot, quantity = snapshot_for_item(item)
            entries.append(self.log_food(day, snapshot, quantity, meal_type))
        return entries

    def remove_entry(self, day: date, entry_id: UUID) -> DailyLog | None:
        """Delete an entry; returns None when the day has no log."""
        with self._lock:
            log = self.get_daily_log(day)
            if log is None:
                return None
            remaining = [entry for entry in log.entries if entry.id != entry_id]
            if len(remaining) == len(log.entries):
                _logger.warning(
                    "Entry %s not found in log for %s", entry_id, day.isoformat()
                )
            return self._save(log, remaining)

    def update_entry_quantity(
        self, day: date, entry_id: UUID, quantity: float
    ) -> DailyLog | None:
        """Change an entry's serving multiple and recompute its nutrition."""
        if quantity < 0:
            raise ValueError("quantity must be non-negative")
        with self._lock:
            log = self.get_daily_log(day)
            if log is None:
                return None
            entries = [
                replace(
                    entry,
                    quantity=quantity,
                    nutrition=calculate_nutrition_for_quantity(
                        entry.food.nutrition, quantity
                    ),
                )
                if entry.id == entry_id
                else entry
                for entry in log.entries
            ]
            return self._save(log, entries)

    def update_calorie_goal(self, calorie_goal: float) -> int:
        """Apply a new calorie goal to every stored log; returns the count."""
        if calorie_goal <= 0:
            raise ValueError("calorie_goal must be positive")
        updated = 0
        with self._lock:
            for day in self.list_dates():
                log = self.get_daily_log(day)
                if log is None:
                    continue
                self._write(replace(log, calorie_goal=calorie_goal))
                updated += 1
        self.default_calorie_goal = calorie_goal
        _logger.info("Updated calorie goal to %s for %s logs", calorie_goal, updated)
        return updated

    def list_dates(self) -> list[date]:
        """Return the days with a stored log, oldest first."""
        raw = self.store.get(_INDEX_KEY)
        if not raw:
            return []
        return sorted(date.fromisoformat(str(value)) for value in raw)

    def _save(self, log: DailyLog, entries: list[LoggedFoodEntry]) -> DailyLog:
        updated = replace(
            log,
            entries=entries,
            total_nutrition=sum_macros(entry.nutrition for entry in entries),
        )
        self._write(updated)
        return updated

    def _write(self, log: DailyLog) -> None:
        self.store.set(_log_key(log.day), _log_to_row(log))
        dates = {day.isoformat() for day in self.list_dates()}
        if log.day.isoformat() not in dates:
            dates.add(log.day.isoformat())
            self.store.set(_INDEX_KEY, sorted(dates))


def calculate_nutrition_for_quantity(
    nutrition: MacroProfile, quantity: float
) -> MacroProfile:
    """Multiply per-serving nutrition; calories whole, macros to one decimal."""
    return MacroProfile(
        calories=float(round(nutrition.calories * quantity)),
        protein_g=round(nutrition.protein_g * quantity, 1),
        fat_g=round(nutrition.fat_g * quantity, 1),
        carbs_g=round(nutrition.carbs_g * quantity, 1),
    )


def snapshot_for_item(item: ReconciledFoodItem) -> tuple[FoodSnapshot, float]:
    """Return a per-100 g snapshot of an item and its serving multiple."""
    grams = item.gram_equivalent
    if grams <= 0:
        return (
            FoodSnapshot(
                name=item.name,
                nutrition=item.nutrition,
                serving_size=item.quantity,
                serving_unit=item.unit,
            ),
            1.0,
        )
    per_gram = 1 / grams
    nutrition = item.nutrition
    return (
        FoodSnapshot(
            name=item.name,
            nutrition=MacroProfile(
                calories=nutrition.calories * per_gram * SERVING_GRAMS,
                protein_g=nutrition.protein_g * per_gram * SERVING_GRAMS,
                fat_g=nutrition.fat_g * per_gram * SERVING_GRAMS,
                carbs_g=nutrition.carbs_g * per_gram * SERVING_GRAMS,
            ),
            serving_size=SERVING_GRAMS,
            serving_unit="grams",
        ),
        grams / SERVING_GRAMS,
    )


def _log_key(day: date) -> str:
    return f"{LOG_KEY_PREFIX}{day.isoformat()}"


def _macros_to_row(macros: MacroProfile) -> dict[str, float]:
    return {
        "calories": macros.calories,
        "protein_g": macros.protein_g,
        "fat_g": macros.fat_g,
        "carbs_g": macros.carbs_g,
    }


def _macros_from_row(row: dict[str, object]) -> MacroProfile:
    return MacroProfile(
        calories=float(row.get("calories") or 0.0),
        protein_g=float(row.get("protein_g") or 0.0),
        fat_g=float(row.get("fat_g") or 0.0),
        carbs_g=float(row.get("carbs_g") or 0.0),
    )


def _entry_to_row(entry: LoggedFoodEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "food": {
            "name": entry.food.name,
            "nutrition": _macros_to_row(entry.food.nutrition),
            "serving_size": entry.food.serving_size,
            "serving_unit": entry.food.serving_unit,
        },
        "quantity": entry.quantity,
        "nutrition": _macros_to_row(entry.nutrition),
        "logged_at": entry.logged_at.isoformat(),
        "meal_type": entry.meal_type,
    }


def _entry_from_row(row: dict[str, object]) -> LoggedFoodEntry:
    food = row["food"]
    return LoggedFoodEntry(
        id=UUID(str(row["id"])),
        food=FoodSnapshot(
            name=str(food["name"]),
            nutrition=_macros_from_row(food["nutrition"]),
            serving_size=float(food["serving_size"]),
            serving_unit=str(food["serving_unit"]),
        ),
        quantity=float(row["quantity"]),
        nutrition=_macros_from_row(row["nutrition"]),
        logged_at=datetime.fromisoformat(str(row["logged_at"])),
        meal_type=str(row["meal_type"]),
    )


def _log_to_row(log: DailyLog) -> dict[str, object]:
    return {
        "date": log.day.isoformat(),
        "entries": [_entry_to_row(entry) for entry in log.entries],
        "total_nutrition": _macros_to_row(log.total_nutrition),
        "calorie_goal": log.calorie_goal,
    }


def _log_from_row(row: dict[str, object]) -> DailyLog:
    entries = [_entry_from_row(entry) for entry in row.get("entries") or []]
    return DailyLog(
        day=date.fromisoformat(str(row["date"])),
        entries=entries,
        total_nutrition=sum_macros(entry.nutrition for entry in entries),
        calorie_goal=float(row.get("calorie_goal") or DEFAULT_CALORIE_GOAL),
    )
