"""Free-text correction parsing with a static food table."""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from food_analyst.domain.nutrition import EntryPatch

DEFAULT_SERVING = "Standard serving"
UNKNOWN_FOOD = "Unknown food"

_QUANTITY_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(ml|kg|cups|cup|tbsp|tsp|oz|l|g)\b"
)
_EDGE_PUNCTUATION = re.compile(r"^\W+|\W+$")


@dataclass(frozen=True)
class BaseNutrition:
    """Nutrition for one standard serving."""

    calories: float
    protein: float
    carbs: float
    fat: float


DEFAULT_NUTRITION = BaseNutrition(calories=100, protein=5, carbs=15, fat=3)

# Checked in order; the first key contained in the food name wins.
COMMON_FOODS: dict[str, BaseNutrition] = {
    "coffee": BaseNutrition(5, 0.3, 0, 0),
    "coke": BaseNutrition(140, 0, 39, 0),
    "cola": BaseNutrition(140, 0, 39, 0),
    "apple": BaseNutrition(95, 0.5, 25, 0.3),
    "banana": BaseNutrition(105, 1.3, 27, 0.4),
    "orange": BaseNutrition(62, 1.2, 15, 0.2),
    "bread": BaseNutrition(80, 3, 15, 1),
    "rice": BaseNutrition(205, 4, 45, 0.4),
    "chicken": BaseNutrition(165, 31, 0, 3.6),
    "beef": BaseNutrition(250, 26, 0, 15),
    "fish": BaseNutrition(120, 22, 0, 3),
    "salad": BaseNutrition(15, 1, 3, 0.2),
    "pasta": BaseNutrition(200, 7, 43, 1),
    "pizza": BaseNutrition(285, 12, 36, 10),
    "burger": BaseNutrition(295, 15, 30, 12),
    "sandwich": BaseNutrition(220, 9, 25, 9),
    "milk": BaseNutrition(103, 8, 12, 2.4),
    "cheese": BaseNutrition(113, 7, 1, 9),
    "yogurt": BaseNutrition(59, 10, 3.6, 0.4),
    "ice cream": BaseNutrition(207, 3.5, 24, 11),
    "cake": BaseNutrition(237, 2.3, 33, 10),
    "cookie": BaseNutrition(78, 0.9, 10, 4),
    "chocolate": BaseNutrition(155, 1.5, 15, 9),
    "water": BaseNutrition(0, 0, 0, 0),
    "tea": BaseNutrition(2, 0, 0.5, 0),
    "juice": BaseNutrition(110, 0.5, 26, 0.3),
    "soda": BaseNutrition(140, 0, 39, 0),
    "beer": BaseNutrition(153, 1.6, 13, 0),
    "wine": BaseNutrition(125, 0.1, 3.8, 0),
}


class FoodLookup(Protocol):
    """Source of base nutrition per standard serving."""

    def lookup(self, food_name: str) -> BaseNutrition:
        """Return base nutrition for a food name."""


@dataclass
class StaticFoodLookup(FoodLookup):
    """Case-insensitive substring lookup over an in-code table."""

    foods: Mapping[str, BaseNutrition] = field(default_factory=lambda: COMMON_FOODS)
    default: BaseNutrition = DEFAULT_NUTRITION

    def lookup(self, food_name: str) -> BaseNutrition:
        """Return the first table row whose key occurs in the name."""
        name = food_name.lower()
        for key, nutrition in self.foods.items():
            if key.lower() in name:
                return nutrition
        return self.default


def serving_multiplier(quantity: float, unit: str) -> float:
    """Return how many standard servings a quantity represents."""
    multipliers = {
        "ml": quantity / 250,
        "l": quantity * 4,
        "g": quantity / 100,
        "kg": quantity * 10,
        "oz": quantity / 4,
        "cup": quantity,
        "cups": quantity,
        "tbsp": quantity / 16,
        "tsp": quantity / 48,
        "serving": 1,
    }
    return multipliers.get(unit, 1)


@dataclass
class CorrectionInterpreter:
    """Turns text such as "500ml coke" into a structured entry patch.

    Parsing is best effort: a missing quantity means one standard serving and
    an empty name becomes "Unknown food".
    """

    food_lookup: FoodLookup = field(default_factory=StaticFoodLookup)

    def parse(self, text: str) -> EntryPatch:
        """Parse a correction into a patch without fiber or hydration."""
        lowered = text.lower().strip()
        match = _QUANTITY_PATTERN.search(lowered)
        quantity = 1.0
        unit = "serving"
        serving_size = DEFAULT_SERVING
        name = lowered
        if match:
            quantity = float(match.group(1))
            unit = match.group(2)
            serving_size = f"{quantity:g}{unit}"
            name = (lowered[: match.start()] + lowered[match.end() :]).strip()

        name = _EDGE_PUNCTUATION.sub("", name) or UNKNOWN_FOOD
        food_name = name[0].upper() + name[1:]

        base = self.food_lookup.lookup(food_name)
        multiplier = serving_multiplier(quantity, unit)
        return EntryPatch(
            food_name=food_name,
            calories=_round_half_up(base.calories * multiplier),
            protein=round(base.protein * multiplier, 1),
            carbs=round(base.carbs * multiplier, 1),
            fat=round(base.fat * multiplier, 1),
            serving_size=serving_size,
        )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
