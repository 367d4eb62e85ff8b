from __future__ import annotations

from .constants import TREND_THRESHOLD

TREND_NEW = "new"
TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


def trend(current, previous, threshold: float = TREND_THRESHOLD) -> str:
    if previous is None or previous == 0:
        return TREND_NEW
    delta = ((current or 0) - previous) / previous
    # Boundary is inclusive: +10% counts as up.
    if delta >= threshold:
        return TREND_UP
    if delta <= -threshold:
        return TREND_DOWN
    return TREND_STABLE


def trend_from(current, previous_summary: dict | None, key: str, threshold: float = TREND_THRESHOLD) -> str:
    prev = (previous_summary or {}).get(key)
    if not isinstance(prev, (int, float)) or isinstance(prev, bool):
        prev = None
    return trend(current, prev, threshold)
