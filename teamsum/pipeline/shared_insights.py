from __future__ import annotations

import json
from datetime import datetime, timedelta
from enum import Enum

from ..utils import ensure_utc

STANDARD_EXPIRY_DAYS = 7
MILESTONE_EXPIRY_DAYS = 14


class InsightType(str, Enum):
    WORKOUT_LOGGED = "workout_logged"
    STREAK_ACHIEVED = "streak_achieved"
    MEAL_LOGGED = "meal_logged"
    GOAL_HIT = "goal_hit"
    ACTIVITY_DROP = "activity_drop"
    EXPENSE_LOGGED = "expense_logged"
    SAVINGS_PROGRESS = "savings_progress"
    GOAL_COMPLETED = "goal_completed"
    BUDGET_WARNING = "budget_warning"
    BUDGET_STREAK = "budget_streak"
    SUBSCRIPTION_DETECTED = "subscription_detected"


MILESTONE_TYPES = frozenset(
    {InsightType.STREAK_ACHIEVED, InsightType.GOAL_COMPLETED, InsightType.GOAL_HIT}
)


def parse_insight_type(value) -> InsightType | None:
    if isinstance(value, InsightType):
        return value
    try:
        return InsightType(str(value))
    except ValueError:
        return None


def expiry_days(insight_type) -> int:
    return MILESTONE_EXPIRY_DAYS if parse_insight_type(insight_type) in MILESTONE_TYPES else STANDARD_EXPIRY_DAYS


def expires_at(insight_type, created_at: datetime | None = None) -> datetime:
    return ensure_utc(created_at) + timedelta(days=expiry_days(insight_type))


def _text(val, default="?") -> str:
    if val is None or val == "":
        return default
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def _workout_logged(data: dict) -> str:
    msg = f"User did a {_text(data.get('duration'))} min {_text(data.get('type'), 'workout')}"
    streak = data.get("streak_count") or 0
    if isinstance(streak, (int, float)) and streak > 1:
        msg += f" ({_text(streak)} day streak!)"
    return msg


def _streak_achieved(data: dict) -> str:
    return f"User hit a {_text(data.get('count'))}-day {_text(data.get('activity'), 'workout')} streak!"


def _meal_logged(data: dict) -> str:
    if data.get("high_protein"):
        return "User logged a high-protein meal"
    return f"User logged a meal with {_text(data.get('calories'))} calories"


def _goal_hit(data: dict) -> str:
    msg = f"User hit their {_text(data.get('type'), 'daily')} goal"
    if data.get("days_in_row"):
        msg += f" ({_text(data['days_in_row'])} days in a row!)"
    return msg


def _activity_drop(data: dict) -> str:
    return f"User hasn't worked out in {_text(data.get('days_since_workout'))} days"


def _expense_logged(data: dict) -> str:
    amount = _text(data.get("amount"))
    category = _text(data.get("category"), "something")
    if data.get("is_high"):
        return f"User made a large expense: ${amount} on {category}"
    return f"User spent ${amount} on {category}"


def _savings_progress(data: dict) -> str:
    return (
        f"User is {_text(data.get('percentage'))}% towards their "
        f"\"{_text(data.get('goal_name'), 'savings')}\" savings goal (${_text(data.get('amount_left'))} left)"
    )


def _goal_completed(data: dict) -> str:
    return f"User completed their \"{_text(data.get('goal_name'), 'savings')}\" savings goal (${_text(data.get('amount'))})!"


def _budget_warning(data: dict) -> str:
    return f"User is over budget in {_text(data.get('category'), 'a category')} by ${_text(data.get('over_by'))}"


def _budget_streak(data: dict) -> str:
    return f"User has been under budget for {_text(data.get('days'))} days!"


def _subscription_detected(data: dict) -> str:
    return f"User has a {_text(data.get('name'), 'subscription')} costing ${_text(data.get('amount'))}/month"


def _default(data: dict) -> str:
    return json.dumps(data, sort_keys=True, default=str)


_FORMATTERS = {
    InsightType.WORKOUT_LOGGED: _workout_logged,
    InsightType.STREAK_ACHIEVED: _streak_achieved,
    InsightType.MEAL_LOGGED: _meal_logged,
    InsightType.GOAL_HIT: _goal_hit,
    InsightType.ACTIVITY_DROP: _activity_drop,
    InsightType.EXPENSE_LOGGED: _expense_logged,
    InsightType.SAVINGS_PROGRESS: _savings_progress,
    InsightType.GOAL_COMPLETED: _goal_completed,
    InsightType.BUDGET_WARNING: _budget_warning,
    InsightType.BUDGET_STREAK: _budget_streak,
    InsightType.SUBSCRIPTION_DETECTED: _subscription_detected,
}


def time_ago(created_at: datetime, now: datetime) -> str:
    diff = ensure_utc(now) - ensure_utc(created_at)
    mins = int(diff.total_seconds() // 60)
    hours = mins // 60
    days = hours // 24
    if mins < 60:
        return "just now" if mins <= 1 else f"{mins} mins ago"
    if hours < 24:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    if days == 1:
        return "yesterday"
    return f"{days} days ago"


def format_insight(insight: dict, now: datetime | None = None) -> str:
    """Render one shared insight as ``[source] message``.

    The relative age suffix is only added when ``now`` is given; stored summaries
    omit it so recomputation stays stable.
    """
    data = insight.get("data") or {}
    if not isinstance(data, dict):
        data = {"value": data}
    kind = parse_insight_type(insight.get("insight_type"))
    formatter = _FORMATTERS.get(kind, _default)
    label = insight.get("source_name") or insight.get("source_domain") or "agent"
    text = f"[{label}] {formatter(data)}"
    if now is not None and insight.get("created_at"):
        created = insight["created_at"]
        if isinstance(created, str):
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        text += f" ({time_ago(created, now)})"
    return text
