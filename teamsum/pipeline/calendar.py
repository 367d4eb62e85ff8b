from __future__ import annotations

import calendar as _calendar
from datetime import date, datetime, time, timedelta, tzinfo

from dateutil import tz

from ..utils import ensure_utc

SUNDAY = 6
DEFAULT_TRIGGER_HOUR = 19

PERIOD_TYPES = ("weekly", "monthly")


def parse_date(val) -> date | None:
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    text = str(val).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _as_date(val) -> date:
    d = parse_date(val)
    if d is None:
        raise ValueError(f"not a date: {val!r}")
    return d


def week_bounds(on, offset_weeks: int = 0) -> tuple[date, date]:
    """Monday..Sunday of the ISO week containing ``on``, shifted by ``offset_weeks``."""
    d = _as_date(on)
    monday = d - timedelta(days=d.weekday()) + timedelta(weeks=offset_weeks)
    return monday, monday + timedelta(days=6)


def add_months(d: date, months: int) -> date:
    year = d.year + (d.month - 1 + months) // 12
    month = (d.month - 1 + months) % 12 + 1
    day = min(d.day, _calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_bounds(on, offset_months: int = 0) -> tuple[date, str]:
    first = add_months(_as_date(on).replace(day=1), offset_months)
    return first, f"{first.year}-{first.month:02d}"


def month_end(on) -> date:
    d = _as_date(on)
    return date(d.year, d.month, _calendar.monthrange(d.year, d.month)[1])


def days_left_in_month(today) -> int:
    d = _as_date(today)
    return max(1, (month_end(d) - d).days + 1)


def period_bounds(period_type: str, on) -> tuple[date, date]:
    if period_type == "weekly":
        return week_bounds(on)
    if period_type == "monthly":
        first, _ = month_bounds(on)
        return first, month_end(first)
    raise ValueError(f"unknown period_type {period_type}")


def period_label(period_type: str, on) -> str:
    d = _as_date(on)
    if period_type == "weekly":
        iso = d.isocalendar()
        return f"{iso[0]}-W{iso[1]:02d}"
    if period_type == "monthly":
        return f"{d.year}-{d.month:02d}"
    return d.isoformat()


def period_days(start, end) -> list[date]:
    s, e = _as_date(start), _as_date(end)
    return [s + timedelta(days=i) for i in range((e - s).days + 1)]


def resolve_tz(tz_name: str | None) -> tzinfo:
    if not tz_name:
        return tz.UTC
    try:
        resolved = tz.gettz(str(tz_name))
    except (ValueError, TypeError, OSError):
        resolved = None
    return resolved or tz.UTC


def local_now(now_utc: datetime | None, tz_name: str | None) -> datetime:
    return ensure_utc(now_utc).astimezone(resolve_tz(tz_name))


def local_today(now_utc: datetime | None, tz_name: str | None) -> date:
    return local_now(now_utc, tz_name).date()


def is_today(on, now_utc: datetime | None = None, tz_name: str | None = None) -> bool:
    return _as_date(on) == local_today(now_utc, tz_name)


def trigger_window(
    now_utc: datetime | None,
    tz_name: str | None,
    weekday: int = SUNDAY,
    hour: int = DEFAULT_TRIGGER_HOUR,
) -> bool:
    """True inside the one-hour local wall-clock window (default Sunday 19:00-20:00)."""
    loc = local_now(now_utc, tz_name)
    return loc.weekday() == weekday and loc.hour == hour


def is_complete(period_end, now_utc: datetime | None = None) -> bool:
    end = datetime.combine(_as_date(period_end), time(23, 59, 59))
    return ensure_utc(now_utc).replace(tzinfo=None) > end
