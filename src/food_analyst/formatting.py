"""Plain-text rendering of bot replies."""

import math

from food_analyst.domain.leaderboard import LeaderboardEntry
from food_analyst.domain.nutrition import FoodEntry, NutrientTotals, NutritionGoals
from food_analyst.domain.users import UserProfile
from food_analyst.services.leaderboard import goal_percentages

_UNITS = {
    "calories": " kcal",
    "protein": "g",
    "carbs": "g",
    "fat": "g",
    "fiber": "g",
    "hydration": "ml",
}

REPLY_HINT = (
    'Reply to this message to correct it (e.g. "500ml coke") '
    'or with "remove" to delete it.'
)


def format_number(value: float) -> str:
    """Render with at most one decimal and no trailing ".0"."""
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def format_entry_analysis(
    entry: FoodEntry,
    totals: NutrientTotals,
    goals: NutritionGoals,
    *,
    corrected: bool = False,
) -> str:
    """Render the analysis message users can reply to."""
    note = (
        "Note: Updated based on user correction."
        if corrected
        else "Note: These are estimates based on visual analysis."
    )
    lines = [
        f"🍽️ {entry.food_name}",
        "",
        "📊 Nutritional Information:",
        *_nutrient_lines(entry),
        "",
        f"📏 Serving: {entry.serving_size}",
        f"🎯 Confidence: {entry.confidence}",
        "",
        "📊 Today's Totals:",
        *_totals_lines(totals, goals),
        "",
        note,
        REPLY_HINT,
    ]
    return "\n".join(lines)


def format_correction_confirmation(entry: FoodEntry) -> str:
    """Confirmation sent after a successful correction."""
    return "\n".join(
        [
            "✅ Analysis updated successfully!",
            "",
            f"🍽️ Food: {entry.food_name}",
            f"📊 Calories: {format_number(entry.calories)} kcal",
            f"🥩 Protein: {format_number(entry.protein)}g",
            f"🍞 Carbs: {format_number(entry.carbs)}g",
            f"🧈 Fat: {format_number(entry.fat)}g",
            f"📏 Serving: {entry.serving_size}",
        ]
    )


def format_removal_confirmation(
    entry: FoodEntry, totals: NutrientTotals, goals: NutritionGoals
) -> str:
    """Confirmation sent after an entry is removed."""
    return "\n".join(
        [
            f"🗑️ Removed {entry.food_name} ({format_number(entry.calories)} kcal).",
            "",
            "📊 Updated Totals:",
            *_totals_lines(totals, goals),
        ]
    )


def format_daily_summary(
    day: str, entries: list[FoodEntry], totals: NutrientTotals, goals: NutritionGoals
) -> str:
    """Numbered entry list, totals against goals and capped progress."""
    lines = [f"🍽️ Daily Nutrition Summary ({day})", ""]
    for position, entry in enumerate(entries, start=1):
        lines.append(f"{position}. {entry.food_name} - {format_number(entry.calories)} kcal")
    lines += ["", "📊 Total Nutrition:", *_totals_lines(totals, goals), ""]
    lines.append("📈 Progress:")
    for name, percent in progress_percentages(totals, goals).items():
        lines.append(f"- {name.capitalize()}: {percent}%")
    return "\n".join(lines)


def format_progress(totals: NutrientTotals, goals: NutritionGoals) -> str:
    """Progress toward goals with a motivational line keyed on calories."""
    progress = progress_percentages(totals, goals)
    lines = ["📈 Nutrition Progress", ""]
    for name, total in totals.as_dict().items():
        goal = goals.as_dict()[name]
        lines.append(
            f"- {name.capitalize()}: {format_number(total)}/"
            f"{format_number(goal)}{_UNITS[name]} ({progress[name]}%)"
        )
    lines.append("")
    calories = progress["calories"]
    if calories >= 100:
        lines.append("🎉 You've reached your calorie goal!")
    elif calories >= 90:
        lines.append("🏃 Almost there! You're close to your calorie goal.")
    elif calories >= 50:
        lines.append("👍 Good progress on your calories!")
    else:
        lines.append("🚀 Keep going!")
    return "\n".join(lines)


def format_entries(day: str, entries: list[FoodEntry]) -> str:
    """Numbered list used with /remove."""
    if not entries:
        return "📭 No food entries recorded today."
    lines = [f"📋 Entries for {day}:"]
    for position, entry in enumerate(entries, start=1):
        lines.append(
            f"{position}. {entry.food_name} - {format_number(entry.calories)} kcal"
            f" ({entry.serving_size})"
        )
    lines += ["", "Use /remove <number> to delete an entry."]
    return "\n".join(lines)


def format_goals(goals: NutritionGoals) -> str:
    """Render the goal set."""
    lines = ["🎯 Daily Goals:"]
    for name, value in goals.as_dict().items():
        lines.append(f"- {name.capitalize()}: {format_number(value)}{_UNITS[name]}")
    return "\n".join(lines)


def format_leaderboard(entries: list[LeaderboardEntry], limit: int = 10) -> str:
    """Top ranks with scores and breakdowns."""
    if not entries:
        return "🏆 No one is on the leaderboard yet today."
    lines = ["🏆 Today's Leaderboard", ""]
    for entry in entries[:limit]:
        lines.append(f"{entry.rank}. {entry.display_name} - {entry.score} pts")
        lines.append(f"   {entry.details}")
    return "\n".join(lines)


def format_recent_users(profiles: list[UserProfile]) -> str:
    """Developer view of recently seen chats."""
    if not profiles:
        return "👥 Recent Users\n\nNo users found."
    lines = ["👥 Recent Users", ""]
    for profile in profiles:
        name = profile.display_name or profile.username or f"User {profile.scope_id}"
        lines.append(f"• {name} ({profile.scope_id}) - {profile.last_seen.date()}")
    return "\n".join(lines)


def progress_percentages(
    totals: NutrientTotals, goals: NutritionGoals
) -> dict[str, int]:
    """Whole percentages of each goal, capped at 100."""
    progress = {}
    for name, fraction in goal_percentages(totals, goals).items():
        if math.isfinite(fraction):
            progress[name] = min(100, math.floor(fraction * 100 + 0.5))
        else:
            progress[name] = 100
    return progress


def _nutrient_lines(entry: FoodEntry) -> list[str]:
    return [
        f"- {name.capitalize()}: {format_number(getattr(entry, name))}{_UNITS[name]}"
        for name in _UNITS
    ]


def _totals_lines(totals: NutrientTotals, goals: NutritionGoals) -> list[str]:
    goal_values = goals.as_dict()
    return [
        f"- {name.capitalize()}: {format_number(total)}/"
        f"{format_number(goal_values[name])}{_UNITS[name]}"
        for name, total in totals.as_dict().items()
    ]
