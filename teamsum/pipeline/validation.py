from typing import Tuple, List

PERIOD_CRITICAL_PATHS = [
    "domain",
    "period_type",
    "subject_id",
    "period_start",
    "period_end",
    "daily_breakdown",
    "highlights",
    "has_activity",
    "is_complete",
]

FITNESS_CRITICAL_PATHS = [
    "days_at_calorie_goal",
    "days_at_water_goal",
    "total_workouts",
    "longest_streak",
    "current_streak",
]

FINANCE_CRITICAL_PATHS = [
    "total_spent",
    "budget",
    "budget_status",
    "days_under_budget",
    "by_category",
]

COMBINED_CRITICAL_PATHS = [
    "subject_id",
    "period_start",
    "period_end",
    "team_wins",
    "teammate_notes",
    "is_complete",
]

MAX_LIST_ITEMS = 3

def _get(path: str, obj: dict):
    cur = obj
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur

def _missing(obj: dict, paths: List[str]) -> List[str]:
    return [f"missing {path}" for path in paths if _get(path, obj) is None]

def validate_period_summary(summary: dict, critical_paths: List[str] | None = None) -> Tuple[bool, List[str]]:
    if not isinstance(summary, dict):
        return False, ["summary is not a dict"]
    reasons = _missing(summary, critical_paths or PERIOD_CRITICAL_PATHS)
    domain = summary.get("domain")
    if domain == "fitness":
        reasons += _missing(summary, FITNESS_CRITICAL_PATHS)
    elif domain == "finance":
        reasons += _missing(summary, FINANCE_CRITICAL_PATHS)
        if summary.get("budget_status") not in (None, "under", "over", "at"):
            reasons.append(f"budget_status {summary.get('budget_status')!r} invalid")
    else:
        reasons.append(f"domain {domain!r} invalid")
    if summary.get("period_type") not in (None, "weekly", "monthly"):
        reasons.append(f"period_type {summary.get('period_type')!r} invalid")
    breakdown = summary.get("daily_breakdown")
    if not isinstance(breakdown, list):
        reasons.append("daily_breakdown is not a list")
    elif summary.get("days_in_period") is not None and len(breakdown) != summary["days_in_period"]:
        reasons.append("daily_breakdown length mismatch")
    highlights = summary.get("highlights")
    if isinstance(highlights, list) and len(highlights) > MAX_LIST_ITEMS:
        reasons.append("too many highlights")
    for key in ("longest_streak", "current_streak"):
        val = summary.get(key)
        if isinstance(val, int) and val < 0:
            reasons.append(f"{key} negative")
    return (len(reasons) == 0), reasons

def validate_combined_summary(combined: dict) -> Tuple[bool, List[str]]:
    if not isinstance(combined, dict):
        return False, ["combined summary is not a dict"]
    reasons = _missing(combined, COMBINED_CRITICAL_PATHS)
    wins = combined.get("team_wins")
    if not isinstance(wins, list):
        reasons.append("team_wins is not a list")
    elif len(wins) > MAX_LIST_ITEMS:
        reasons.append("too many team_wins")
    for key in ("fitness_summary", "finance_summary"):
        nested = combined.get(key)
        if nested is None:
            continue
        ok, nested_reasons = validate_period_summary(nested)
        if not ok:
            reasons += [f"{key}: {r}" for r in nested_reasons]
    if combined.get("fitness_summary") is None and combined.get("finance_summary") is None:
        reasons.append("no domain summaries")
    insight = combined.get("insight")
    if insight is not None and not isinstance(insight, str):
        reasons.append("insight is not a string")
    return (len(reasons) == 0), reasons
