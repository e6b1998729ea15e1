"""Photo analysis flow: vision estimate, ledger append, message association."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from food_analyst.domain.associations import MessageAssociation
from food_analyst.domain.nutrition import FoodEntry, NutrientTotals, NutritionGoals
from food_analyst.services.associations import MessageAssociationIndex
from food_analyst.services.goals import GoalStore
from food_analyst.services.ledger import NutritionLedger
from food_analyst.services.vision import VisionService


@dataclass(frozen=True)
class AnalysisResult:
    """A logged estimate with the day's totals after logging it."""

    scope_id: str
    day: str
    entry: FoodEntry
    totals: NutrientTotals
    goals: NutritionGoals


@dataclass
class PhotoAnalysisService:
    """Logs vision estimates and links them to the reply message."""

    vision_service: VisionService
    ledger: NutritionLedger
    goal_store: GoalStore
    associations: MessageAssociationIndex

    async def analyze_and_log(
        self, scope_id: str, image_bytes: bytes, caption: str | None = None
    ) -> AnalysisResult:
        """Estimate nutrition for a photo and append it to today's ledger.

        Raises VisionAnalysisError when the estimate cannot be produced; nothing
        is logged in that case.
        """
        estimate = await self.vision_service.analyze(image_bytes, caption)
        day = self.ledger.today()
        entry = await self.ledger.append(
            scope_id,
            estimate.to_entry(
                created_at=datetime.now(tz=UTC).isoformat(), entry_id=uuid4().hex
            ),
            day=day,
        )
        return AnalysisResult(
            scope_id=scope_id,
            day=day,
            entry=entry,
            totals=await self.ledger.aggregate(scope_id, day),
            goals=await self.goal_store.get(scope_id),
        )

    async def remember_message(
        self, message_id: int, result: AnalysisResult
    ) -> MessageAssociation:
        """Associate the sent analysis message with the logged entry."""
        return await self.associations.record(
            message_id, result.scope_id, result.day, result.entry
        )
