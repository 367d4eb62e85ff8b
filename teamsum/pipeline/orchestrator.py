import sqlite3
import time
import uuid
from datetime import datetime, timedelta

import httpx
import structlog

from ..config import settings
from ..db import get_conn, migrate
from ..services.expo_push import ExpoPushClient
from ..utils import ensure_utc, retry_call
from .calendar import DEFAULT_TRIGGER_HOUR, SUNDAY, local_today, trigger_window, week_bounds
from .combined import build_combined_summary, push_message
from .periods import (
    DEFAULT_TARGET_CALORIES,
    DEFAULT_TARGET_WATER_ML,
    build_finance_period_summary,
    build_fitness_period_summary,
    month_starts_for_run,
)
from .persist import (
    finish_run_fail,
    finish_run_ok,
    get_run_status,
    start_run,
    upsert_combined_summary,
    upsert_period_summary,
)
from .readers import get_push_tokens, get_shared_insights, list_profiles

log = structlog.get_logger()

_BUILDERS = {
    "fitness": build_fitness_period_summary,
    "finance": build_finance_period_summary,
}


def subject_timezone(profiles: dict, default_tz: str = "UTC") -> str:
    for domain in ("fitness", "finance"):
        tz_name = (profiles.get(domain) or {}).get("timezone")
        if tz_name:
            return tz_name
    return default_tz


def _notifications_enabled(profiles: dict) -> bool:
    return all(p.get("notifications_enabled", True) for p in profiles.values())


def _process_subject(conn, notifier, subject_id: str, profiles: dict, now: datetime, opts: dict, deadline, notify: bool) -> dict:
    def _db(fn, label):
        return retry_call(
            fn,
            label=label,
            attempts=opts["retry_attempts"],
            base_delay=opts["retry_backoff_seconds"],
            deadline=deadline,
            retry_exceptions=(sqlite3.OperationalError,),
        )

    tz_name = subject_timezone(profiles, opts["default_tz"])
    today = local_today(now, tz_name)
    week_start, _ = week_bounds(today)
    written = 0
    weekly = {}
    for domain, profile in profiles.items():
        persona = profile.get("persona") or {}
        kwargs = {"persona": persona, "today": today, "now_utc": now}
        if domain == "fitness":
            kwargs.update(default_calories=opts["target_calories"], default_water_ml=opts["target_water_ml"])
        else:
            kwargs.update(default_split=opts["budget_split"])
        builder = _BUILDERS[domain]
        periods = [("weekly", week_start)] + [("monthly", first) for first in month_starts_for_run(week_start, today)]
        for period_type, start in periods:
            record = _db(lambda: builder(conn, subject_id, period_type, start, **kwargs), f"build_{domain}_{period_type}")
            if _db(lambda: upsert_period_summary(conn, domain, period_type, subject_id, str(start), record), "upsert_period_summary"):
                written += 1
            if period_type == "weekly":
                weekly[domain] = record

    result = {"summaries_written": written, "notifications_sent": 0}
    if "fitness" not in profiles or "finance" not in profiles:
        log.info("team_summary_single_domain", subject_id=subject_id, domains=sorted(profiles))
        return result

    since = now - timedelta(days=opts["shared_insights_lookback_days"])
    shared = _db(lambda: get_shared_insights(conn, subject_id, since, now), "get_shared_insights")
    combined = build_combined_summary(subject_id, week_start, weekly.get("fitness"), weekly.get("finance"), shared, now)
    if _db(lambda: upsert_combined_summary(conn, subject_id, str(week_start), combined), "upsert_combined_summary"):
        result["summaries_written"] += 1
    log.info(
        "combined_summary_built",
        subject_id=subject_id,
        week_start=str(week_start),
        team_wins=len(combined["team_wins"]),
        has_insight=combined["insight"] is not None,
    )

    if not notify or notifier is None or not _notifications_enabled(profiles):
        return result
    tokens = _db(lambda: get_push_tokens(conn, subject_id), "get_push_tokens")
    if not tokens:
        return result
    title, body, data = push_message(combined)
    # Fire-and-forget: the summaries are already stored, a lost push never fails the subject.
    try:
        sent = retry_call(
            lambda: notifier.send_sync(tokens, title, body, data),
            attempts=opts["retry_attempts"],
            base_delay=opts["retry_backoff_seconds"],
            deadline=deadline,
            retry_on_result=lambda ok: not ok,
            retry_exceptions=(httpx.HTTPError,),
            label="expo_push",
        )
    except Exception as exc:
        log.warning(
            "team_summary_push_failed",
            subject_id=subject_id,
            tokens=len(tokens),
            err=str(exc),
            err_type=type(exc).__name__,
        )
        return result
    if sent:
        result["notifications_sent"] = 1
    else:
        log.warning("team_summary_push_failed", subject_id=subject_id, tokens=len(tokens))
    return result


def run_team_summary(
    conn: sqlite3.Connection,
    notifier=None,
    now_utc: datetime | None = None,
    force: bool = False,
    *,
    run_id: str | None = None,
    notify: bool = True,
    trigger_weekday: int = SUNDAY,
    trigger_hour: int = DEFAULT_TRIGGER_HOUR,
    default_tz: str = "UTC",
    retry_attempts: int = 3,
    retry_backoff_seconds: float = 1.0,
    time_budget_seconds: float | None = None,
    target_calories: float = DEFAULT_TARGET_CALORIES,
    target_water_ml: float = DEFAULT_TARGET_WATER_ML,
    budget_split=None,
    shared_insights_lookback_days: int = 7,
) -> dict:
    """One pass over every subject; subjects outside their local trigger hour are skipped unless ``force``.

    Failures are isolated per subject and counted. When ``time_budget_seconds`` runs out the
    remaining subjects are skipped rather than failing the run. The run row records the totals.
    """
    run_id = run_id or str(uuid.uuid4())
    now = ensure_utc(now_utc)
    deadline = time.monotonic() + time_budget_seconds if time_budget_seconds else None
    opts = {
        "default_tz": default_tz,
        "retry_attempts": retry_attempts,
        "retry_backoff_seconds": retry_backoff_seconds,
        "target_calories": target_calories,
        "target_water_ml": target_water_ml,
        "budget_split": budget_split if budget_split is not None else settings.default_budget_split,
        "shared_insights_lookback_days": shared_insights_lookback_days,
    }
    counters = {
        "subjects_seen": 0,
        "subjects_processed": 0,
        "subjects_failed": 0,
        "subjects_skipped": 0,
        "summaries_written": 0,
        "notifications_sent": 0,
    }
    start_run(conn, run_id)
    log.info("team_summary_started", run_id=run_id, force=force, now_utc=now.isoformat())
    try:
        subjects = retry_call(
            lambda: list_profiles(conn),
            attempts=retry_attempts,
            base_delay=retry_backoff_seconds,
            deadline=deadline,
            retry_exceptions=(sqlite3.OperationalError,),
            label="list_profiles",
        )
        pending = list(subjects.items())
        for index, (subject_id, profiles) in enumerate(pending):
            if deadline is not None and time.monotonic() >= deadline:
                # Out of time: the rest are counted as skipped and the run still succeeds.
                remaining = len(pending) - index
                counters["subjects_seen"] += remaining
                counters["subjects_skipped"] += remaining
                log.warning("team_summary_budget_exhausted", run_id=run_id, remaining=remaining)
                break
            counters["subjects_seen"] += 1
            tz_name = subject_timezone(profiles, default_tz)
            if not force and not trigger_window(now, tz_name, trigger_weekday, trigger_hour):
                counters["subjects_skipped"] += 1
                log.debug("team_summary_subject_skipped", run_id=run_id, subject_id=subject_id, timezone=tz_name)
                continue
            try:
                with structlog.contextvars.bound_contextvars(run_id=run_id, subject_id=subject_id):
                    result = _process_subject(conn, notifier, subject_id, profiles, now, opts, deadline, notify)
            except Exception as exc:
                counters["subjects_failed"] += 1
                log.error(
                    "team_summary_subject_failed",
                    run_id=run_id,
                    subject_id=subject_id,
                    err=str(exc),
                    err_type=type(exc).__name__,
                )
                continue
            counters["subjects_processed"] += 1
            counters["summaries_written"] += result["summaries_written"]
            counters["notifications_sent"] += result["notifications_sent"]
        finish_run_ok(conn, run_id, counters)
        log.info("team_summary_finished", run_id=run_id, status="succeeded", **counters)
    except Exception as e:
        log.error("team_summary_failed", run_id=run_id, err=str(e), **counters)
        finish_run_fail(conn, run_id, str(e), counters)
        raise
    return {"run_id": run_id, **counters}


def run_options_from_settings() -> dict:
    return {
        "trigger_weekday": settings.trigger_weekday,
        "trigger_hour": settings.trigger_hour,
        "default_tz": settings.default_tz,
        "retry_attempts": settings.io_retry_attempts,
        "retry_backoff_seconds": settings.io_retry_backoff_seconds,
        "time_budget_seconds": settings.run_time_budget_seconds,
        "target_calories": settings.default_target_calories,
        "target_water_ml": settings.default_target_water_ml,
        "budget_split": settings.default_budget_split,
        "shared_insights_lookback_days": settings.shared_insights_lookback_days,
    }


def build_notifier() -> ExpoPushClient:
    return ExpoPushClient(settings.expo_push_url, settings.expo_access_token, settings.push_timeout_seconds)


def run_from_settings(run_id: str | None = None, force: bool = False, now_utc: datetime | None = None, notify: bool = True) -> dict:
    conn = get_conn(settings.db_path)
    migrate(conn)
    return run_team_summary(
        conn,
        build_notifier(),
        now_utc=now_utc,
        force=force,
        run_id=run_id,
        notify=notify,
        **run_options_from_settings(),
    )


def trigger_team_summary(background, force: bool = False) -> str:
    run_id = str(uuid.uuid4())
    background.add_task(_run_background, run_id, force)
    return run_id


def _run_background(run_id: str, force: bool):
    try:
        run_from_settings(run_id=run_id, force=force)
    except Exception as e:
        # Already recorded on the run row.
        log.error("team_summary_background_failed", run_id=run_id, err=str(e))


def get_status(run_id: str):
    conn = get_conn(settings.db_path)
    return get_run_status(conn, run_id)
