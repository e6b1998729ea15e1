"""Leaderboard scoring across active scopes."""

import math
from collections.abc import Iterable
from dataclasses import dataclass

from food_analyst.domain.leaderboard import LeaderboardEntry, ScopeDay
from food_analyst.domain.nutrition import NUTRIENT_FIELDS, NutrientTotals, NutritionGoals

MAX_SCORE = 1000

_DETAIL_LABELS = {
    "calories": "C",
    "protein": "P",
    "carbs": "C",
    "fat": "F",
    "fiber": "Fi",
    "hydration": "H",
}


def goal_percentages(totals: NutrientTotals, goals: NutritionGoals) -> dict[str, float]:
    """Return total/goal per category as a fraction.

    A zero goal yields 1.0 when nothing was eaten and infinity otherwise.
    """
    percentages = {}
    for name in NUTRIENT_FIELDS:
        total = getattr(totals, name)
        goal = getattr(goals, name)
        if goal > 0:
            percentages[name] = total / goal
        else:
            percentages[name] = 1.0 if total == 0 else math.inf
    return percentages


def score_percentages(percentages: dict[str, float]) -> int:
    """Convert the mean deviation from 100% into a 0-1000 score."""
    deviations = [abs(value - 1) for value in percentages.values()]
    average = sum(deviations) / len(deviations)
    if not math.isfinite(average):
        return 0
    return max(0, _round_half_up(MAX_SCORE - average * MAX_SCORE))


def format_details(percentages: dict[str, float]) -> str:
    """Compact per-category breakdown, e.g. "C:90% P:93% ..."."""
    parts = []
    for name in NUTRIENT_FIELDS:
        value = percentages[name]
        shown = f"{_round_half_up(value * 100)}%" if math.isfinite(value) else "∞"
        parts.append(f"{_DETAIL_LABELS[name]}:{shown}")
    return " ".join(parts)


def mask_display_name(name: str | None) -> str:
    """Keep the first and last character and star out the rest."""
    if not name:
        return "Anonymous"
    if len(name) <= 3:
        return name
    return f"{name[0]}{'*' * (len(name) - 2)}{name[-1]}"


@dataclass
class LeaderboardScorer:
    """Ranks scopes by how closely today's totals track their goals."""

    def score(self, scope_days: Iterable[ScopeDay]) -> list[LeaderboardEntry]:
        """Score, filter out zero scores, sort stably and assign ranks."""
        scored = []
        for scope_day in scope_days:
            percentages = goal_percentages(scope_day.totals, scope_day.goals)
            score = score_percentages(percentages)
            if score > 0:
                scored.append((scope_day, percentages, score))
        scored.sort(key=lambda item: item[2], reverse=True)
        return [
            LeaderboardEntry(
                rank=position + 1,
                scope_id=scope_day.scope_id,
                display_name=mask_display_name(scope_day.display_name),
                score=score,
                percentages=percentages,
                details=format_details(percentages),
            )
            for position, (scope_day, percentages, score) in enumerate(scored)
        ]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
