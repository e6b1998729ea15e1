"""Domain models for the leaderboard and dashboard stats."""

from dataclasses import dataclass

from food_analyst.domain.nutrition import NutrientTotals, NutritionGoals


@dataclass(frozen=True)
class ScopeDay:
    """Today's totals and goals for one active scope."""

    scope_id: str
    display_name: str
    totals: NutrientTotals
    goals: NutritionGoals


@dataclass(frozen=True)
class LeaderboardEntry:
    """Ranked leaderboard row."""

    rank: int
    scope_id: str
    display_name: str
    score: int
    percentages: dict[str, float]
    details: str


@dataclass(frozen=True)
class DashboardStats:
    """Aggregate numbers for the dashboard."""

    total_scopes_seen: int
    entries_logged_today: int
    current_goals: NutritionGoals
