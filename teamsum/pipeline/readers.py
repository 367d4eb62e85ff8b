from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime, timedelta

from ..utils import ensure_utc
from .calendar import _as_date, add_months

DOMAINS = ("fitness", "finance")


def _rows(cur: sqlite3.Cursor) -> list[dict]:
    cols = [c[0] for c in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


def _loads(text, default=None):
    if not text:
        return default
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return default


def get_daily_metrics(conn: sqlite3.Connection, subject_id: str, start, end) -> list[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT date, total_calories, total_protein_g, total_carbs_g, total_fat_g, meal_count,
               total_water_ml, workout_count, workout_mins, total_spent, total_income, expense_count
        FROM daily_metrics
        WHERE subject_id=? AND date>=? AND date<=?
        ORDER BY date
        """,
        (subject_id, str(_as_date(start)), str(_as_date(end))),
    )
    return _rows(cur)


def get_expenses(conn: sqlite3.Connection, subject_id: str, start, end) -> list[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, amount, category, description, expense_date AS date
        FROM expenses
        WHERE subject_id=? AND expense_date>=? AND expense_date<=?
        ORDER BY expense_date, id
        """,
        (subject_id, str(_as_date(start)), str(_as_date(end))),
    )
    return _rows(cur)


def get_income(conn: sqlite3.Connection, subject_id: str, start, end) -> list[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, amount, category, description, income_date AS date
        FROM income
        WHERE subject_id=? AND income_date>=? AND income_date<=?
        ORDER BY income_date, id
        """,
        (subject_id, str(_as_date(start)), str(_as_date(end))),
    )
    return _rows(cur)


def get_savings_goals(conn: sqlite3.Connection, subject_id: str) -> list[dict]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, name, target_amount, current_amount, target_date, created_at_utc, completed_at_utc
        FROM savings_goals
        WHERE subject_id=?
        ORDER BY created_at_utc, id
        """,
        (subject_id,),
    )
    return _rows(cur)


def get_shared_insights(
    conn: sqlite3.Connection,
    subject_id: str,
    since: datetime,
    now_utc: datetime | None = None,
    limit: int | None = None,
) -> list[dict]:
    """Non-expired insights created at or after ``since``, newest first."""
    cur = conn.cursor()
    sql = """
        SELECT id, source_domain, source_name, insight_type, data_json, created_at_utc, expires_at_utc
        FROM shared_insights
        WHERE subject_id=? AND created_at_utc>=? AND expires_at_utc>?
        ORDER BY created_at_utc DESC, id
    """
    params: list = [subject_id, ensure_utc(since).isoformat(), ensure_utc(now_utc).isoformat()]
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))
    cur.execute(sql, params)
    out = []
    for row in _rows(cur):
        out.append(
            {
                "id": row["id"],
                "source_domain": row["source_domain"],
                "source_name": row["source_name"],
                "insight_type": row["insight_type"],
                "data": _loads(row["data_json"], {}),
                "created_at": row["created_at_utc"],
                "expires_at": row["expires_at_utc"],
            }
        )
    return out


def previous_period_start(period_type: str, period_start) -> date:
    start = _as_date(period_start)
    if period_type == "weekly":
        return start - timedelta(days=7)
    if period_type == "monthly":
        return add_months(start.replace(day=1), -1)
    raise ValueError(f"unknown period_type {period_type}")


def get_previous_period_summary(
    conn: sqlite3.Connection,
    domain: str,
    period_type: str,
    subject_id: str,
    period_start,
) -> dict | None:
    prev_start = previous_period_start(period_type, period_start)
    cur = conn.cursor()
    row = cur.execute(
        """
        SELECT payload_json
        FROM period_summaries
        WHERE domain=? AND period_type=? AND subject_id=? AND period_start=?
        """,
        (domain, period_type, subject_id, str(prev_start)),
    ).fetchone()
    return _loads(row[0]) if row else None


def list_profiles(conn: sqlite3.Connection) -> dict[str, dict[str, dict]]:
    """All profiles grouped as ``{subject_id: {domain: profile}}``."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT subject_id, domain, profile_id, name, timezone, notifications_enabled, persona_json, settings_json
        FROM profiles
        ORDER BY subject_id, domain
        """
    )
    out: dict[str, dict[str, dict]] = {}
    for row in _rows(cur):
        if row["domain"] not in DOMAINS:
            continue
        out.setdefault(row["subject_id"], {})[row["domain"]] = {
            "subject_id": row["subject_id"],
            "domain": row["domain"],
            "profile_id": row["profile_id"],
            "name": row["name"],
            "timezone": row["timezone"],
            "notifications_enabled": bool(row["notifications_enabled"]),
            "persona": _loads(row["persona_json"], {}) or {},
            "settings": _loads(row["settings_json"], {}) or {},
        }
    return out


def get_push_tokens(conn: sqlite3.Connection, subject_id: str) -> list[str]:
    cur = conn.cursor()
    rows = cur.execute(
        "SELECT token FROM push_tokens WHERE subject_id=? ORDER BY token",
        (subject_id,),
    ).fetchall()
    return [r[0] for r in rows if r[0]]
