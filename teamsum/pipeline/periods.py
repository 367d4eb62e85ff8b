from __future__ import annotations

import sqlite3
from datetime import date, datetime

from .breakdown import _num, build_daily_breakdown, count_days, index_by_date
from .budget import (
    NEEDS,
    SAVINGS,
    WANTS,
    bucket_budgets,
    category_list,
    parse_budget_split,
    percent_used,
    savings_allocated,
    savings_progress_pct,
    spend_by_bucket,
    spend_by_day,
    _amount,
    _round_money,
    _round_pct,
)
from .calendar import _as_date, is_complete, parse_date, period_bounds, period_days, period_label
from .constants import FINANCE_TOP_CATEGORY_SHARE, WEEKS_PER_MONTH
from .highlights import finance_highlights, fitness_highlights
from .readers import (
    get_daily_metrics,
    get_expenses,
    get_income,
    get_previous_period_summary,
    get_savings_goals,
)
from .streaks import current_streak, is_active_day, longest_run, longest_streak
from .trends import trend_from

DEFAULT_TARGET_CALORIES = 2000.0
DEFAULT_TARGET_WATER_ML = 2000.0


def fitness_targets(persona: dict | None, default_calories: float = DEFAULT_TARGET_CALORIES, default_water_ml: float = DEFAULT_TARGET_WATER_ML):
    persona = persona or {}
    goals = persona.get("nutritionGoals") or persona.get("nutrition_goals") or {}
    calories = goals.get("calories") if isinstance(goals, dict) else None
    calories = calories or persona.get("target_calories") or default_calories
    water = persona.get("daily_water_goal_ml") or persona.get("target_water_ml") or default_water_ml
    return _amount(calories) or default_calories, _amount(water) or default_water_ml


def _period_header(domain: str, period_type: str, subject_id: str, start: date, end: date) -> dict:
    return {
        "domain": domain,
        "period_type": period_type,
        "subject_id": subject_id,
        "period_start": str(start),
        "period_end": str(end),
        "period_label": period_label(period_type, start),
        "days_in_period": (end - start).days + 1,
    }


def _elapsed_end(end: date, today: date | None) -> date:
    if today is None or today > end:
        return end
    return today


def compute_fitness_summary(
    subject_id: str,
    period_type: str,
    period_start,
    metrics: list[dict],
    previous: dict | None = None,
    target_calories: float = DEFAULT_TARGET_CALORIES,
    target_water_ml: float = DEFAULT_TARGET_WATER_ML,
    today: date | None = None,
    now_utc: datetime | None = None,
) -> dict:
    start, end = period_bounds(period_type, period_start)
    days = (end - start).days + 1
    breakdown = build_daily_breakdown(metrics, start, days, target_calories, target_water_ml, today=today)
    by_date = index_by_date(metrics)
    elapsed = [by_date.get(day["date"]) for day in breakdown if not day["is_future"]]

    days_with_data = sum(1 for day in breakdown if is_active_day(day))
    meals_logged = int(sum(_num(row, "meal_count") for row in elapsed))
    days_with_meals = sum(1 for row in elapsed if _num(row, "meal_count") > 0)

    def _avg(key):
        if days_with_data == 0:
            return 0.0
        return round(sum(_num(row, key) for row in elapsed) / days_with_data, 2)

    avg_calories = _avg("total_calories")
    avg_water = _avg("total_water_ml")
    total_workouts = sum(day["workout_count"] for day in breakdown)
    calorie_days = count_days(breakdown, "calories_hit")
    water_days = count_days(breakdown, "water_hit")
    streak = longest_streak(breakdown)

    summary = _period_header("fitness", period_type, subject_id, start, end)
    summary.update(
        {
            "target_calories": target_calories,
            "target_water_ml": target_water_ml,
            "meals_logged": meals_logged,
            "days_with_meals": days_with_meals,
            "days_with_data": days_with_data,
            "avg_daily_calories": avg_calories,
            "avg_daily_protein_g": _avg("total_protein_g"),
            "avg_daily_carbs_g": _avg("total_carbs_g"),
            "avg_daily_fat_g": _avg("total_fat_g"),
            "avg_daily_water_ml": avg_water,
            "days_at_calorie_goal": calorie_days,
            "days_at_water_goal": water_days,
            "days_with_workouts": count_days(breakdown, "workout_done"),
            "total_workouts": total_workouts,
            "total_workout_mins": round(sum(day["workout_mins"] for day in breakdown), 2),
            "calories_trend": trend_from(avg_calories, previous, "avg_daily_calories"),
            "workouts_trend": trend_from(total_workouts, previous, "total_workouts"),
            "water_trend": trend_from(avg_water, previous, "avg_daily_water_ml"),
            "longest_streak": streak,
            "current_streak": current_streak(breakdown, _elapsed_end(end, today)),
            "has_activity": total_workouts > 0 or calorie_days > 0,
            "daily_breakdown": breakdown,
            "highlights": fitness_highlights(streak, calorie_days, water_days, total_workouts, days, period_type),
            "is_complete": is_complete(end, now_utc),
        }
    )
    return summary


def _finance_breakdown(start: date, end: date, expenses, income, daily_budget: float, today: date | None) -> list[dict]:
    spent = spend_by_day(expenses)
    earned = spend_by_day(income)
    counts: dict[str, int] = {}
    for e in expenses or []:
        d = parse_date(e.get("date") or e.get("expense_date"))
        if d is not None:
            counts[d.isoformat()] = counts.get(d.isoformat(), 0) + 1
    out = []
    for d in period_days(start, end):
        key = d.isoformat()
        future = today is not None and d > today
        day_spent = 0.0 if future else spent.get(key, 0.0)
        out.append(
            {
                "date": key,
                "day_of_week": d.weekday(),
                "is_future": future,
                "spent": _round_money(day_spent),
                "income": _round_money(0.0 if future else earned.get(key, 0.0)),
                "expense_count": 0 if future else counts.get(key, 0),
                "under_budget": (not future) and day_spent <= daily_budget,
            }
        )
    return out


def weekly_budget_note(needs_pct: float, wants_pct: float, top: dict | None, total_spent: float) -> str | None:
    if wants_pct > 100:
        return "Your wants spending exceeded the weekly target. Consider cutting back next week."
    if wants_pct < 50 and needs_pct < 80:
        return "Great week! You stayed well under budget."
    if top and total_spent > 0 and top["amount"] > total_spent * FINANCE_TOP_CATEGORY_SHARE:
        return f"{top['name'].capitalize()} made up over half your spending this week."
    return None


def monthly_budget_notes(
    needs_pct: float,
    wants_pct: float,
    needs_remaining: float,
    wants_remaining: float,
    net_savings: float,
    top: dict | None,
    currency_symbol: str = "$",
) -> list[str]:
    notes = []
    if needs_pct <= 100:
        notes.append(f"Stayed within needs budget ({needs_pct:.0f}%)")
    else:
        notes.append(f"Needs spending over budget by {currency_symbol}{abs(needs_remaining):.0f}")
    if wants_pct <= 100:
        notes.append(f"Wants spending on track ({wants_pct:.0f}%)")
    else:
        notes.append(f"Wants spending over budget by {currency_symbol}{abs(wants_remaining):.0f}")
    if net_savings > 0:
        notes.append(f"Net savings of {currency_symbol}{net_savings:.0f} this month")
    if top:
        notes.append(f"Top spending: {top['name'].capitalize()} ({currency_symbol}{top['amount']:.0f})")
    return notes


def compute_finance_summary(
    subject_id: str,
    period_type: str,
    period_start,
    expenses: list[dict],
    income: list[dict],
    savings_goals: list[dict],
    monthly_income: float = 0.0,
    budget_split=None,
    previous: dict | None = None,
    today: date | None = None,
    now_utc: datetime | None = None,
    currency_symbol: str = "$",
    default_split=None,
) -> dict:
    """Weekly budget is a quarter of monthly income; monthly budget is the full income.

    Day-level budget checks compare each elapsed day against the period budget spread
    evenly (weekly) or the needs+wants budget spread over the month (monthly).
    """
    start, end = period_bounds(period_type, period_start)
    days = (end - start).days + 1
    split = parse_budget_split(budget_split, default_split)
    monthly_buckets = bucket_budgets(monthly_income, split)
    income_amount = max(0.0, _amount(monthly_income))
    if period_type == "weekly":
        scale = 1.0 / WEEKS_PER_MONTH
        budget = income_amount * scale
        daily_budget = budget / days
    else:
        scale = 1.0
        budget = income_amount
        daily_budget = (monthly_buckets[NEEDS] + monthly_buckets[WANTS]) / days

    total_spent = sum(_amount(e.get("amount")) for e in expenses or [])
    total_income = sum(_amount(i.get("amount")) for i in income or [])
    by_bucket = spend_by_bucket(expenses)
    categories = category_list(expenses)
    top = categories[0] if categories else None
    needs_budget = monthly_buckets[NEEDS] * scale
    wants_budget = monthly_buckets[WANTS] * scale
    needs_pct = percent_used(by_bucket[NEEDS], needs_budget)
    wants_pct = percent_used(by_bucket[WANTS], wants_budget)

    breakdown = _finance_breakdown(start, end, expenses, income, daily_budget, today)
    elapsed = [day for day in breakdown if not day["is_future"]]
    days_under = sum(1 for day in elapsed if day["under_budget"])
    spending_days = [day for day in elapsed if day["spent"] > 0]
    top_day = max(spending_days, key=lambda day: (day["spent"], day["date"]), default=None)
    best_day = min(spending_days, key=lambda day: (day["spent"], day["date"]), default=None)

    difference = budget - total_spent
    if difference > 0:
        status = "under"
    elif difference < 0:
        status = "over"
    else:
        status = "at"
    net_savings = total_income - total_spent
    expense_count = len(expenses or [])

    summary = _period_header("finance", period_type, subject_id, start, end)
    summary.update(
        {
            "currency_symbol": currency_symbol,
            "total_spent": _round_money(total_spent),
            "total_income": _round_money(total_income),
            "net_savings": _round_money(net_savings),
            "expense_count": expense_count,
            "by_category": categories,
            "top_category": top,
            "needs_spent": _round_money(by_bucket[NEEDS]),
            "wants_spent": _round_money(by_bucket[WANTS]),
            "savings_spent": _round_money(by_bucket[SAVINGS]),
            "needs_budget": _round_money(needs_budget),
            "wants_budget": _round_money(wants_budget),
            "needs_percent_used": _round_pct(needs_pct),
            "wants_percent_used": _round_pct(wants_pct),
            "budget": _round_money(budget),
            "budget_difference": _round_money(difference),
            "budget_status": status,
            "daily_budget": _round_money(daily_budget),
            "days_under_budget": days_under,
            "days_over_budget": len(elapsed) - days_under,
            "top_spending_day": {"date": top_day["date"], "amount": top_day["spent"]} if top_day else None,
            "savings_progress_pct": savings_progress_pct(savings_goals),
            "spent_trend": trend_from(total_spent, previous, "total_spent"),
            "longest_streak": longest_run(day["under_budget"] for day in breakdown),
            "has_activity": expense_count > 0,
            "daily_breakdown": breakdown,
        }
    )
    if period_type == "weekly":
        summary["average_daily_spend"] = _round_money(total_spent / days)
        note = weekly_budget_note(needs_pct, wants_pct, top, total_spent)
        summary["budget_notes"] = [note] if note else []
    else:
        savings_budget = monthly_buckets[SAVINGS]
        allocated = savings_allocated(savings_goals)
        summary.update(
            {
                "savings_budget": _round_money(savings_budget),
                "savings_allocated": _round_money(allocated),
                "savings_percent_used": _round_pct(percent_used(allocated, savings_budget)),
                "best_day": {"date": best_day["date"], "amount": best_day["spent"]} if best_day else None,
                "budget_notes": monthly_budget_notes(
                    needs_pct,
                    wants_pct,
                    needs_budget - by_bucket[NEEDS],
                    wants_budget - by_bucket[WANTS],
                    net_savings,
                    top,
                    currency_symbol,
                ),
            }
        )
    summary["highlights"] = finance_highlights(summary, currency_symbol)
    summary["is_complete"] = is_complete(end, now_utc)
    return summary


def build_fitness_period_summary(
    conn: sqlite3.Connection,
    subject_id: str,
    period_type: str,
    period_start,
    persona: dict | None = None,
    today: date | None = None,
    now_utc: datetime | None = None,
    default_calories: float = DEFAULT_TARGET_CALORIES,
    default_water_ml: float = DEFAULT_TARGET_WATER_ML,
) -> dict:
    start, end = period_bounds(period_type, period_start)
    target_calories, target_water = fitness_targets(persona, default_calories, default_water_ml)
    return compute_fitness_summary(
        subject_id,
        period_type,
        start,
        get_daily_metrics(conn, subject_id, start, end),
        previous=get_previous_period_summary(conn, "fitness", period_type, subject_id, start),
        target_calories=target_calories,
        target_water_ml=target_water,
        today=today,
        now_utc=now_utc,
    )


def build_finance_period_summary(
    conn: sqlite3.Connection,
    subject_id: str,
    period_type: str,
    period_start,
    persona: dict | None = None,
    today: date | None = None,
    now_utc: datetime | None = None,
    default_split=None,
) -> dict:
    persona = persona or {}
    start, end = period_bounds(period_type, period_start)
    return compute_finance_summary(
        subject_id,
        period_type,
        start,
        get_expenses(conn, subject_id, start, end),
        get_income(conn, subject_id, start, end),
        get_savings_goals(conn, subject_id),
        monthly_income=_amount(persona.get("monthly_income")),
        budget_split=persona.get("budget_split"),
        previous=get_previous_period_summary(conn, "finance", period_type, subject_id, start),
        today=today,
        now_utc=now_utc,
        currency_symbol=persona.get("currency_symbol") or "$",
        default_split=default_split,
    )


def month_starts_for_run(week_start, today) -> list[date]:
    """Month of ``today``, preceded by the week's first month when the week crosses into a new month."""
    current = _as_date(today).replace(day=1)
    first_of_week = _as_date(week_start).replace(day=1)
    if first_of_week < current:
        return [first_of_week, current]
    return [current]
