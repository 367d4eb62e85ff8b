from __future__ import annotations

from datetime import datetime, timedelta

from .calendar import _as_date, is_complete, period_label
from .constants import MAX_TEAMMATE_NOTES, PUSH_DATA_TYPE, PUSH_TITLE
from .highlights import evaluate_team_wins, generate_insight
from .shared_insights import format_insight


def build_combined_summary(
    subject_id: str,
    week_start,
    fitness: dict | None,
    finance: dict | None,
    shared_insights: list[dict] | None = None,
    now_utc: datetime | None = None,
) -> dict:
    """Cross-domain weekly record; domain summaries are embedded verbatim."""
    start = _as_date(week_start)
    end = start + timedelta(days=6)
    team_wins = evaluate_team_wins(fitness, finance)
    notes = [format_insight(item) for item in (shared_insights or [])[:MAX_TEAMMATE_NOTES]]
    return {
        "subject_id": subject_id,
        "period_start": str(start),
        "period_end": str(end),
        "period_label": period_label("weekly", start),
        "fitness_summary": fitness,
        "finance_summary": finance,
        "team_wins": team_wins,
        "insight": generate_insight(fitness, finance, team_wins),
        "teammate_notes": notes,
        "is_complete": is_complete(end, now_utc),
    }


def push_message(combined: dict) -> tuple[str, str, dict]:
    wins = combined.get("team_wins") or []
    if wins:
        body = f"{len(wins)} team win{'s' if len(wins) != 1 else ''} this week! \U0001f389"
    else:
        body = "Your weekly summary is ready!"
    data = {"type": PUSH_DATA_TYPE, "week_start": combined.get("period_start")}
    return PUSH_TITLE, body, data
