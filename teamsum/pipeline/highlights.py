from __future__ import annotations

from .constants import (
    FINANCE_TOP_CATEGORY_SHARE,
    HIGHLIGHT_CALORIE_DAYS_MIN,
    HIGHLIGHT_STREAK_MIN,
    HIGHLIGHT_WATER_DAYS_MIN,
    HIGHLIGHT_WORKOUTS_MIN,
    MAX_HIGHLIGHTS,
    MAX_TEAM_WINS,
    TEAM_ACTIVE_WORKOUTS_MIN,
    TEAM_BUDGET_DAYS_MIN,
    TEAM_CALORIE_DAYS_MIN,
    TEAM_SAVINGS_PROGRESS_MIN,
    TEAM_STRONG_STREAK_MIN,
    TEAM_STRONG_WORKOUTS_MIN,
    TEAM_WATER_DAYS_MIN,
)

INSIGHT_TEAMWORK = "Your agents worked great together this week. Keep up the momentum!"
INSIGHT_BALANCED = "Solid week balancing health and finances!"
INSIGHT_BOTH_ACTIVE = "Both agents active this week. Small wins add up!"
INSIGHT_FITNESS_ONLY = "Great fitness progress! Your finance buddy is ready when you are."
INSIGHT_FINANCE_ONLY = "Nice job tracking finances! Your fitness coach is ready to help."


def _int(summary: dict | None, key: str) -> int:
    val = (summary or {}).get(key)
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        return int(val)
    return 0


def _period_word(period_type: str) -> str:
    return "month" if period_type == "monthly" else "week"


def fitness_highlights(
    streak: int,
    calorie_goal_days: int,
    water_goal_days: int,
    workouts: int,
    period_days: int = 7,
    period_type: str = "weekly",
) -> list[str]:
    """Rules fire in a fixed priority order; only the first MAX_HIGHLIGHTS survive."""
    out = []
    # A streak covering the whole window is already told by the "every day" lines.
    if HIGHLIGHT_STREAK_MIN <= streak < period_days:
        out.append(f"{streak}-day logging streak")
    if calorie_goal_days >= HIGHLIGHT_CALORIE_DAYS_MIN:
        out.append(f"Hit calorie goal {calorie_goal_days} of {period_days} days")
    if water_goal_days >= period_days:
        out.append("Hit water goal every day")
    elif water_goal_days >= HIGHLIGHT_WATER_DAYS_MIN:
        out.append(f"Hit water goal {water_goal_days} of {period_days} days")
    if workouts >= HIGHLIGHT_WORKOUTS_MIN:
        out.append(f"{workouts} workouts this {_period_word(period_type)}")
    return out[:MAX_HIGHLIGHTS]


def finance_highlights(summary: dict, currency_symbol: str = "$") -> list[str]:
    if not summary or not summary.get("has_activity"):
        return []
    word = _period_word(summary.get("period_type", "weekly"))
    out = []
    budget = summary.get("budget") or 0
    diff = summary.get("budget_difference") or 0
    if budget > 0 and summary.get("budget_status") == "under":
        out.append(f"Stayed under budget by {currency_symbol}{diff:,.0f}")
    net = summary.get("net_savings") or 0
    if net > 0:
        out.append(f"Net savings of {currency_symbol}{net:,.0f} this {word}")
    if (summary.get("wants_percent_used") or 0) > 100:
        out.append(f"Wants spending exceeded the {word}ly target")
    top = summary.get("top_category") or {}
    total = summary.get("total_spent") or 0
    if top and total > 0 and (top.get("amount") or 0) > total * FINANCE_TOP_CATEGORY_SHARE:
        out.append(f"{str(top.get('name', 'other')).capitalize()} made up over half your spending")
    return out[:MAX_HIGHLIGHTS]


def is_active(summary: dict | None) -> bool:
    """A missing summary is inactive; a summary without the flag counts as active."""
    if summary is None:
        return False
    return bool(summary.get("has_activity", True))


def evaluate_team_wins(fitness: dict | None, finance: dict | None) -> list[str]:
    if not (is_active(fitness) and is_active(finance)):
        return []
    workouts = _int(fitness, "total_workouts")
    streak = _int(fitness, "longest_streak")
    calorie_days = _int(fitness, "days_at_calorie_goal")
    water_days = _int(fitness, "days_at_water_goal")
    under_budget = finance.get("budget_status") == "under"
    top = finance.get("top_category") or {}
    top_name = str(top.get("name") or "").lower()

    wins = []
    if workouts >= TEAM_ACTIVE_WORKOUTS_MIN and under_budget:
        wins.append("Stayed active AND under budget this week!")
    if calorie_days >= TEAM_CALORIE_DAYS_MIN and top_name != "food":
        wins.append("Great meal tracking and smart spending!")
    if workouts >= TEAM_STRONG_WORKOUTS_MIN or (
        streak >= TEAM_STRONG_STREAK_MIN and workouts >= TEAM_ACTIVE_WORKOUTS_MIN
    ):
        wins.append("Crushed your fitness goals!")
    if _int(finance, "days_under_budget") >= TEAM_BUDGET_DAYS_MIN and under_budget:
        wins.append("Budget master - under budget almost every day!")
    savings = _int(finance, "savings_progress_pct")
    if savings >= TEAM_SAVINGS_PROGRESS_MIN:
        wins.append(f"{savings}% progress on savings goals!")
    if water_days >= TEAM_WATER_DAYS_MIN and calorie_days >= TEAM_CALORIE_DAYS_MIN:
        wins.append("Nutrition and hydration on point!")
    return wins[:MAX_TEAM_WINS]


def generate_insight(fitness: dict | None, finance: dict | None, team_wins: list[str]) -> str | None:
    if len(team_wins) >= 2:
        return INSIGHT_TEAMWORK
    fitness_active = is_active(fitness)
    finance_active = is_active(finance)
    if fitness_active and finance_active:
        if _int(fitness, "total_workouts") >= TEAM_ACTIVE_WORKOUTS_MIN and finance.get("budget_status") != "over":
            return INSIGHT_BALANCED
        return INSIGHT_BOTH_ACTIVE
    if fitness_active:
        return INSIGHT_FITNESS_ONLY
    if finance_active:
        return INSIGHT_FINANCE_ONLY
    return None
