from __future__ import annotations

from datetime import date

from .calendar import parse_date


class StreakInvariantError(RuntimeError):
    pass


def is_active_day(day: dict) -> bool:
    if day.get("is_future"):
        return False
    return (
        (day.get("total_calories") or 0) > 0
        or (day.get("total_water_ml") or 0) > 0
        or bool(day.get("workout_done"))
    )


def _checked(value: int, name: str) -> int:
    if value < 0:
        raise StreakInvariantError(f"{name} is negative: {value}")
    return value


def longest_run(flags) -> int:
    current_run = 0
    max_run = 0
    for flag in flags:
        if flag:
            current_run += 1
            max_run = max(max_run, current_run)
        else:
            current_run = 0
    return _checked(max_run, "longest_run")


def longest_streak(days: list[dict], predicate=is_active_day) -> int:
    """Longest contiguous run of active days anywhere in the window."""
    return longest_run(predicate(day) for day in days)


def current_streak(days: list[dict], today, predicate=is_active_day) -> int:
    """Consecutive active days ending on ``today`` (walking backward)."""
    today_d = parse_date(today)
    if today_d is None:
        return 0
    by_date: dict[date, dict] = {}
    for day in days:
        d = parse_date(day.get("date"))
        if d is not None:
            by_date[d] = day
    streak = 0
    cursor = today_d
    while cursor in by_date and predicate(by_date[cursor]):
        streak += 1
        cursor = date.fromordinal(cursor.toordinal() - 1)
    return _checked(streak, "current_streak")
