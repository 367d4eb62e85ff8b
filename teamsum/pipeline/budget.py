from __future__ import annotations

from collections import defaultdict
from datetime import date

from .calendar import days_left_in_month, month_bounds, month_end, parse_date
from .constants import BUDGET_DANGER_PCT, BUDGET_OVER_PCT, BUDGET_WARNING_PCT

NEEDS = "needs"
WANTS = "wants"
SAVINGS = "savings"
BUDGET_TYPES = (NEEDS, WANTS, SAVINGS)

ALERT_OK = "ok"
ALERT_WARNING = "warning"
ALERT_DANGER = "danger"
ALERT_OVER = "over"

CATEGORY_BUDGET_TYPE = {
    # needs
    "rent": NEEDS,
    "bills": NEEDS,
    "groceries": NEEDS,
    "transport": NEEDS,
    "health": NEEDS,
    # wants (food = eating out)
    "food": WANTS,
    "entertainment": WANTS,
    "shopping": WANTS,
    "subscriptions": WANTS,
    "travel": WANTS,
    "other": WANTS,
    # savings
    "savings": SAVINGS,
    "investment": SAVINGS,
}


def budget_type_for(category: str | None) -> str:
    if not category:
        return WANTS
    return CATEGORY_BUDGET_TYPE.get(str(category).strip().lower(), WANTS)


def _amount(val) -> float:
    try:
        return float(val) if val is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _round_money(val):
    return None if val is None else round(float(val), 2)


def _round_pct(val):
    return None if val is None else round(float(val), 2)


def _split_or_none(value) -> dict | None:
    if isinstance(value, str):
        parts = [p.strip() for p in value.split("/")]
        if len(parts) != 3:
            return None
        value = dict(zip(BUDGET_TYPES, parts))
    if not isinstance(value, dict):
        return None
    split = {}
    for key in BUDGET_TYPES:
        try:
            num = float(value.get(key, 0) or 0)
        except (TypeError, ValueError):
            return None
        if num < 0:
            return None
        split[key] = num
    total = sum(split.values())
    if total <= 0:
        return None
    # Ratios given as fractions (0.5/0.3/0.2)
    if total <= 1.0 + 1e-9:
        split = {k: v * 100.0 for k, v in split.items()}
    return split


def parse_budget_split(value, default=None) -> dict:
    """Accept {"needs": 50, ...} or "50/30/20" as percentages.

    An unusable ``value`` falls back to ``default`` (the configured split, same formats).
    Raises ValueError when neither is usable; there is no built-in split.
    """
    split = _split_or_none(value)
    if split is None:
        split = _split_or_none(default)
    if split is None:
        raise ValueError(f"no usable budget split: {value!r} (default {default!r})")
    return split


def percent_used(spent: float, budget: float) -> float:
    if not budget or budget <= 0:
        return 0.0
    return (spent or 0.0) / budget * 100.0


def alert_level(percent: float, collapse_danger: bool = False) -> str:
    """Map percent-used to ok/warning/danger/over.

    Consumers that only distinguish ok/warning/over pass ``collapse_danger=True``.
    """
    if percent >= BUDGET_OVER_PCT:
        return ALERT_OVER
    if percent >= BUDGET_DANGER_PCT:
        return ALERT_WARNING if collapse_danger else ALERT_DANGER
    if percent >= BUDGET_WARNING_PCT:
        return ALERT_WARNING
    return ALERT_OK


def daily_safe_spend(needs_remaining: float, wants_remaining: float, days_left: int) -> float:
    return max(0.0, ((needs_remaining or 0.0) + (wants_remaining or 0.0)) / max(1, int(days_left or 0)))


def spend_by_category(expenses) -> dict[str, float]:
    out: dict[str, float] = defaultdict(float)
    for e in expenses or []:
        cat = str(e.get("category") or "other").strip().lower() or "other"
        out[cat] += _amount(e.get("amount"))
    return dict(out)


def spend_by_bucket(expenses) -> dict[str, float]:
    out = {key: 0.0 for key in BUDGET_TYPES}
    for cat, amount in spend_by_category(expenses).items():
        out[budget_type_for(cat)] += amount
    return out


def spend_by_day(expenses) -> dict[str, float]:
    out: dict[str, float] = defaultdict(float)
    for e in expenses or []:
        d = parse_date(e.get("date") or e.get("expense_date"))
        if d is None:
            continue
        out[d.isoformat()] += _amount(e.get("amount"))
    return dict(out)


def category_list(expenses) -> list[dict]:
    """Categories with spend, largest first; ties broken by name for a stable order."""
    items = [
        {"name": name, "budget_type": budget_type_for(name), "amount": _round_money(amount)}
        for name, amount in spend_by_category(expenses).items()
    ]
    items.sort(key=lambda item: (-item["amount"], item["name"]))
    return items


def savings_allocated(goals) -> float:
    return sum(_amount(g.get("current_amount")) for g in goals or [] if not g.get("completed_at_utc"))


def savings_progress_pct(goals) -> int:
    open_goals = [g for g in goals or [] if not g.get("completed_at_utc")]
    total_target = sum(_amount(g.get("target_amount")) for g in open_goals)
    total_current = sum(_amount(g.get("current_amount")) for g in open_goals)
    if total_target <= 0:
        return 0
    return int(round(total_current / total_target * 100))


def bucket_budgets(monthly_income: float, split, default_split=None) -> dict[str, float]:
    income = max(0.0, _amount(monthly_income))
    ratios = parse_budget_split(split, default_split)
    return {key: income * ratios[key] / 100.0 for key in BUDGET_TYPES}


def build_budget_tracking(
    monthly_income: float,
    split,
    expenses,
    savings_goals,
    today: date,
    today_spent: float | None = None,
    default_split=None,
) -> dict:
    """Current-month needs/wants/savings snapshot.

    ``expenses`` should cover the month of ``today``; rows outside it are ignored.
    Savings progress counts savings-category expenses plus open goal balances.
    """
    first, month_key = month_bounds(today)
    last = month_end(first)
    month_expenses = []
    for e in expenses or []:
        d = parse_date(e.get("date") or e.get("expense_date"))
        if d is not None and first <= d <= last:
            month_expenses.append(e)

    ratios = parse_budget_split(split, default_split)
    budgets = bucket_budgets(monthly_income, ratios)
    spent = spend_by_bucket(month_expenses)
    spent[SAVINGS] += savings_allocated(savings_goals)

    buckets = {}
    for key in BUDGET_TYPES:
        pct = percent_used(spent[key], budgets[key])
        buckets[key] = {
            "budget": _round_money(budgets[key]),
            "spent": _round_money(spent[key]),
            "remaining": _round_money(budgets[key] - spent[key]),
            "percent_used": _round_pct(pct),
            "alert_level": alert_level(pct),
        }

    days_left = days_left_in_month(today)
    safe = daily_safe_spend(
        budgets[NEEDS] - spent[NEEDS],
        budgets[WANTS] - spent[WANTS],
        days_left,
    )
    if today_spent is None:
        today_spent = spend_by_day(month_expenses).get(today.isoformat(), 0.0)
    return {
        "month": month_key,
        "monthly_income": _round_money(max(0.0, _amount(monthly_income))),
        "budget_split": ratios,
        "buckets": buckets,
        "days_left_in_month": days_left,
        "daily_safe_spend": _round_money(safe),
        "today_spent": _round_money(today_spent),
        "today_remaining": _round_money(max(0.0, safe - (today_spent or 0.0))),
    }
