"""Leaderboard and stats for the web dashboard."""

from dataclasses import dataclass, field

from food_analyst.domain.leaderboard import DashboardStats, LeaderboardEntry, ScopeDay
from food_analyst.services.goals import GoalStore
from food_analyst.services.leaderboard import LeaderboardScorer
from food_analyst.services.ledger import NutritionLedger
from food_analyst.services.users import UserDirectory


@dataclass
class DashboardService:
    """Fans out over active scopes to build dashboard data."""

    ledger: NutritionLedger
    goal_store: GoalStore
    user_directory: UserDirectory
    scorer: LeaderboardScorer = field(default_factory=LeaderboardScorer)

    async def leaderboard(self, day: str | None = None) -> list[LeaderboardEntry]:
        """Rank every scope with entries on the day."""
        partition = day or self.ledger.today()
        scope_days = []
        for scope_id in await self.ledger.list_scopes_with_entries_on(partition):
            scope_days.append(
                ScopeDay(
                    scope_id=scope_id,
                    display_name=await self.user_directory.display_name(scope_id),
                    totals=await self.ledger.aggregate(scope_id, partition),
                    goals=await self.goal_store.get(scope_id),
                )
            )
        return self.scorer.score(scope_days)

    async def stats(self, day: str | None = None) -> DashboardStats:
        """Return scope and entry counts plus the global goals."""
        partition = day or self.ledger.today()
        entries_today = 0
        for scope_id in await self.ledger.list_scopes_with_entries_on(partition):
            entries_today += len(await self.ledger.list_entries(scope_id, partition))
        return DashboardStats(
            total_scopes_seen=len(await self.ledger.known_scopes()),
            entries_logged_today=entries_today,
            current_goals=await self.goal_store.get(),
        )
