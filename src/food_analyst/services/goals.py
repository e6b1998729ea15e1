"""Goal storage with a global default and optional per-scope overrides."""

import logging
import math
from dataclasses import dataclass

from food_analyst.domain.nutrition import NUTRIENT_FIELDS, NutritionGoals
from food_analyst.errors import StorageUnavailableError
from food_analyst.services.storage import KeyValueStore

GLOBAL_GOALS_KEY = "goals:global"

_logger = logging.getLogger(__name__)


def scope_goals_key(scope_id: str) -> str:
    """Storage key for a scope's goal override."""
    return f"goals:{scope_id}"


@dataclass
class GoalStore:
    """Reads and writes nutrition goals."""

    store: KeyValueStore
    per_scope: bool = False

    async def get(self, scope_id: str | None = None) -> NutritionGoals:
        """Return the scope override (when enabled), else global, else defaults."""
        keys = [GLOBAL_GOALS_KEY]
        if self.per_scope and scope_id is not None:
            keys.insert(0, scope_goals_key(scope_id))
        try:
            for key in keys:
                raw = await self.store.get(key)
                if isinstance(raw, dict):
                    return NutritionGoals.from_dict(raw)
        except StorageUnavailableError:
            _logger.warning("Goal storage unavailable, using default goals")
        return NutritionGoals()

    async def set(self, scope_id: str | None, goals: NutritionGoals) -> None:
        """Persist goals as a scope override or as the global record."""
        if self.per_scope and scope_id is not None:
            key = scope_goals_key(scope_id)
        else:
            key = GLOBAL_GOALS_KEY
        await self.store.set(key, goals.as_dict())


def parse_goals_text(text: str, current: NutritionGoals) -> NutritionGoals | None:
    """Parse "calories protein carbs fat [fiber hydration]" into goals.

    Four numbers keep the current fiber and hydration targets. Any other count
    is rejected. Zero is accepted.
    """
    numbers: list[float] = []
    for token in text.replace(",", " ").split():
        try:
            numbers.append(float(token))
        except ValueError:
            continue
    if len(numbers) not in {4, len(NUTRIENT_FIELDS)}:
        return None
    if any(value < 0 or not math.isfinite(value) for value in numbers):
        return None
    values = current.as_dict()
    values.update(zip(NUTRIENT_FIELDS, numbers, strict=False))
    return NutritionGoals(**values)
