"""Models for vision nutrition estimates."""

from pydantic import BaseModel, Field, field_validator

from food_analyst.domain.nutrition import Confidence, FoodEntry

_AI_CONFIDENCE = {Confidence.HIGH.value, Confidence.MEDIUM.value, Confidence.LOW.value}


class NutritionEstimate(BaseModel):
    """Structured nutrition estimate for a photographed dish."""

    food_name: str = Field(min_length=1)
    calories: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    carbs: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    fiber: float = Field(default=0.0, ge=0.0)
    hydration: float = Field(default=0.0, ge=0.0)
    serving_size: str = "Standard serving"
    confidence: str = Confidence.MEDIUM.value

    @field_validator("fiber", "hydration", mode="before")
    @classmethod
    def _none_as_zero(cls, value: object) -> object:
        return 0.0 if value is None else value

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value: object) -> str:
        label = str(value or "").strip().lower()
        return label if label in _AI_CONFIDENCE else Confidence.MEDIUM.value

    def to_entry(self, *, created_at: str, entry_id: str) -> FoodEntry:
        """Convert the estimate into a ledger entry."""
        return FoodEntry(
            food_name=self.food_name.strip(),
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            fiber=self.fiber,
            hydration=self.hydration,
            serving_size=self.serving_size,
            confidence=self.confidence,
            created_at=created_at,
            entry_id=entry_id,
        )
