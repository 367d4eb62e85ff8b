from __future__ import annotations

from datetime import date, timedelta

from .calendar import parse_date
from .constants import CALORIE_TOLERANCE


def _num(row: dict | None, key: str) -> float:
    if not row:
        return 0.0
    val = row.get(key)
    if isinstance(val, bool):
        return float(val)
    if isinstance(val, (int, float)):
        return float(val)
    try:
        return float(val) if val is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def calorie_goal_hit(calories: float, target_calories: float, tolerance: float = CALORIE_TOLERANCE) -> bool:
    if calories <= 0 or not target_calories or target_calories <= 0:
        return False
    return abs(calories - target_calories) / target_calories <= tolerance


def water_goal_hit(water_ml: float, target_water_ml: float) -> bool:
    return water_ml > 0 and water_ml >= (target_water_ml or 0)


def index_by_date(rows) -> dict[str, dict]:
    out = {}
    for row in rows or []:
        d = parse_date(row.get("date"))
        if d is not None:
            out[d.isoformat()] = row
    return out


def build_daily_breakdown(
    metrics,
    start,
    days: int = 7,
    target_calories: float = 2000.0,
    target_water_ml: float = 2000.0,
    today: date | None = None,
) -> list[dict]:
    """One DailyGoalStatus per calendar day from ``start``; missing rows count as zero.

    Dates after ``today`` are flagged ``is_future`` and never count as a hit or a miss.
    """
    start_d = parse_date(start)
    if start_d is None:
        raise ValueError(f"bad start date {start!r}")
    by_date = index_by_date(metrics)
    breakdown = []
    for i in range(days):
        d = start_d + timedelta(days=i)
        key = d.isoformat()
        future = today is not None and d > today
        row = None if future else by_date.get(key)
        calories = _num(row, "total_calories")
        water_ml = _num(row, "total_water_ml")
        workout_count = int(_num(row, "workout_count"))
        workout_mins = _num(row, "workout_mins")
        breakdown.append(
            {
                "date": key,
                "day_of_week": d.weekday(),
                "is_future": future,
                "calories_hit": calorie_goal_hit(calories, target_calories),
                "water_hit": water_goal_hit(water_ml, target_water_ml),
                "workout_done": workout_count > 0 or workout_mins > 0,
                "total_calories": calories,
                "total_water_ml": water_ml,
                "workout_count": workout_count,
                "workout_mins": workout_mins,
            }
        )
    return breakdown


def count_days(breakdown: list[dict], key: str) -> int:
    return sum(1 for day in breakdown if day.get(key))
