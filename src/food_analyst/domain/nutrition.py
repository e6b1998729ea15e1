"""Nutrition domain models."""

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum

NUTRIENT_FIELDS: tuple[str, ...] = (
    "calories",
    "protein",
    "carbs",
    "fat",
    "fiber",
    "hydration",
)


class Confidence(str, Enum):
    """Confidence labels attached to a logged entry."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MANUALLY_CORRECTED = "manually corrected"


@dataclass(frozen=True)
class FoodEntry:
    """One logged food occurrence within a scope/date partition."""

    food_name: str
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float = 0.0
    hydration: float = 0.0
    serving_size: str = "Standard serving"
    confidence: str = Confidence.MEDIUM.value
    created_at: str | None = None
    entry_id: str | None = None
    corrected_at: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "FoodEntry":
        """Build an entry from stored data, tolerating missing optional keys."""
        return cls(
            food_name=str(data.get("food_name") or "Unknown food"),
            calories=_to_float(data.get("calories")),
            protein=_to_float(data.get("protein")),
            carbs=_to_float(data.get("carbs")),
            fat=_to_float(data.get("fat")),
            fiber=_to_float(data.get("fiber")),
            hydration=_to_float(data.get("hydration")),
            serving_size=str(data.get("serving_size") or "Standard serving"),
            confidence=str(data.get("confidence") or Confidence.MEDIUM.value),
            created_at=_optional_str(data.get("created_at")),
            entry_id=_optional_str(data.get("entry_id")),
            corrected_at=_optional_str(data.get("corrected_at")),
        )

    def fingerprint(self) -> tuple[object, ...]:
        """Composite value key used when no stable id is available."""
        return (
            self.food_name,
            self.calories,
            self.protein,
            self.carbs,
            self.fat,
        )

    def identifies(self, stored: "FoodEntry") -> bool:
        """Return True when this snapshot describes the stored row.

        Stable ids win. Rows written without one fall back to the value
        fingerprint, narrowed by creation time when the snapshot has it.
        """
        if self.entry_id and stored.entry_id:
            return self.entry_id == stored.entry_id
        if self.created_at and stored.created_at != self.created_at:
            return False
        return self.fingerprint() == stored.fingerprint()

    def with_patch(self, patch: "EntryPatch", corrected_at: str) -> "FoodEntry":
        """Merge patch values in place of the current ones."""
        changes: dict[str, object] = {
            key: value
            for key, value in asdict(patch).items()
            if value is not None
        }
        changes["confidence"] = Confidence.MANUALLY_CORRECTED.value
        changes["corrected_at"] = corrected_at
        return replace(self, **changes)


@dataclass(frozen=True)
class EntryPatch:
    """Partial entry produced by a manual correction."""

    food_name: str | None = None
    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    serving_size: str | None = None


@dataclass(frozen=True)
class NutrientTotals:
    """Field-wise sum of entries for a day."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    hydration: float = 0.0

    @classmethod
    def from_entries(cls, entries: Iterable[FoodEntry]) -> "NutrientTotals":
        """Sum every nutrient field across entries."""
        sums = dict.fromkeys(NUTRIENT_FIELDS, 0.0)
        for entry in entries:
            for name in NUTRIENT_FIELDS:
                sums[name] += getattr(entry, name)
        return cls(**sums)

    def as_dict(self) -> dict[str, float]:
        """Return totals keyed by nutrient category."""
        return {name: getattr(self, name) for name in NUTRIENT_FIELDS}


@dataclass(frozen=True)
class NutritionGoals:
    """Daily target values for each tracked nutrient category."""

    calories: float = 2000
    protein: float = 150
    carbs: float = 250
    fat: float = 70
    fiber: float = 25
    hydration: float = 2000

    def as_dict(self) -> dict[str, float]:
        """Return goals keyed by nutrient category."""
        return {name: getattr(self, name) for name in NUTRIENT_FIELDS}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "NutritionGoals":
        """Merge stored (possibly partial) goals over the defaults."""
        known = {item.name for item in fields(cls)}
        values = {
            key: float(value)
            for key, value in data.items()
            if key in known and isinstance(value, int | float)
        }
        return cls(**values)


def _to_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)
