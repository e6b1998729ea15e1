"""Daily summaries and progress reports."""

import logging
from dataclasses import dataclass

from food_analyst.errors import StorageUnavailableError
from food_analyst.formatting import format_daily_summary, format_progress
from food_analyst.services.goals import GoalStore
from food_analyst.services.ledger import NutritionLedger

_logger = logging.getLogger(__name__)


@dataclass
class SummaryService:
    """Builds summary texts from the ledger and goals."""

    ledger: NutritionLedger
    goal_store: GoalStore

    async def daily_summary(self, scope_id: str, day: str | None = None) -> str | None:
        """Return the day's summary, or None when nothing was logged."""
        partition = day or self.ledger.today()
        entries = await self.ledger.list_entries(scope_id, partition)
        if not entries:
            return None
        totals = await self.ledger.aggregate(scope_id, partition)
        goals = await self.goal_store.get(scope_id)
        return format_daily_summary(partition, entries, totals, goals)

    async def progress_report(self, scope_id: str) -> str:
        """Return today's progress toward goals."""
        totals = await self.ledger.aggregate(scope_id)
        goals = await self.goal_store.get(scope_id)
        return format_progress(totals, goals)

    async def dispatch_daily_summaries(self, day: str | None = None) -> dict[str, str]:
        """Return a summary for every scope with entries on the day.

        A scope whose data cannot be read is skipped so the rest still go out.
        """
        partition = day or self.ledger.today()
        summaries: dict[str, str] = {}
        for scope_id in await self.ledger.list_scopes_with_entries_on(partition):
            try:
                summary = await self.daily_summary(scope_id, partition)
            except StorageUnavailableError:
                _logger.warning("Skipping daily summary for scope %s", scope_id)
                continue
            if summary:
                summaries[scope_id] = summary
        return summaries
