#!/usr/bin/env python3
"""
Backfill/rebuild weekly and monthly summaries (per domain, plus combined for
dual-profile subjects) for past weeks. Never sends notifications.

Usage:
    python scripts/backfill_period_summaries.py                  # Missing summaries for the last 4 weeks
    python scripts/backfill_period_summaries.py 12               # Missing summaries for the last 12 weeks
    python scripts/backfill_period_summaries.py --rebuild-all    # Recompute even when a summary exists
    python scripts/backfill_period_summaries.py --dry-run        # Show what would be done
"""
from pathlib import Path
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from teamsum.db import get_conn, migrate
from teamsum.config import settings
from teamsum.logging import setup_logging
from teamsum.utils import now_utc
from teamsum.pipeline.calendar import local_today, week_bounds, month_bounds
from teamsum.pipeline.combined import build_combined_summary
from teamsum.pipeline.orchestrator import subject_timezone
from teamsum.pipeline.periods import build_fitness_period_summary, build_finance_period_summary
from teamsum.pipeline.persist import get_period_summary, upsert_period_summary, upsert_combined_summary
from teamsum.pipeline.readers import list_profiles
import structlog

log = structlog.get_logger()


def _build(conn, domain, subject_id, period_type, start, persona, today, now):
    if domain == "fitness":
        return build_fitness_period_summary(
            conn, subject_id, period_type, start, persona=persona, today=today, now_utc=now,
            default_calories=settings.default_target_calories,
            default_water_ml=settings.default_target_water_ml,
        )
    return build_finance_period_summary(
        conn, subject_id, period_type, start, persona=persona, today=today, now_utc=now,
        default_split=settings.default_budget_split,
    )


def backfill_period_summaries(conn, weeks: int = 4, only_missing: bool = True, dry_run: bool = False):
    now = now_utc()
    rebuilt = skipped = failed = 0
    for subject_id, profiles in list_profiles(conn).items():
        today = local_today(now, subject_timezone(profiles, settings.default_tz))
        # Oldest first so each week's trend sees the week before it.
        for offset in range(-weeks, 0):
            week_start, _ = week_bounds(today, offset)
            month_start, _ = month_bounds(week_start)
            weekly = {}
            try:
                for domain, profile in profiles.items():
                    for period_type, start in (("weekly", week_start), ("monthly", month_start)):
                        existing = get_period_summary(conn, domain, period_type, subject_id, str(start))
                        if only_missing and existing is not None:
                            skipped += 1
                            if period_type == "weekly":
                                weekly[domain] = existing
                            continue
                        if dry_run:
                            log.info("dry_run_would_build", subject_id=subject_id, domain=domain, period_type=period_type, start=str(start))
                            continue
                        record = _build(conn, domain, subject_id, period_type, start, profile.get("persona"), today, now)
                        upsert_period_summary(conn, domain, period_type, subject_id, str(start), record)
                        rebuilt += 1
                        if period_type == "weekly":
                            weekly[domain] = record
                if not dry_run and "fitness" in weekly and "finance" in weekly:
                    fitness = {k: v for k, v in weekly["fitness"].items() if k != "updated_at_utc"}
                    finance = {k: v for k, v in weekly["finance"].items() if k != "updated_at_utc"}
                    combined = build_combined_summary(subject_id, week_start, fitness, finance, [], now)
                    upsert_combined_summary(conn, subject_id, str(week_start), combined)
            except Exception as exc:
                log.error("backfill_week_failed", subject_id=subject_id, week_start=str(week_start), err=str(exc))
                failed += 1
    log.info("backfill_complete", rebuilt=rebuilt, skipped=skipped, failed=failed, weeks=weeks)
    return {"rebuilt": rebuilt, "skipped": skipped, "failed": failed}


if __name__ == '__main__':
    args = [arg for arg in sys.argv[1:] if not arg.startswith('--')]
    flags = [arg for arg in sys.argv[1:] if arg.startswith('--')]

    rebuild_all = '--rebuild-all' in flags
    dry_run = '--dry-run' in flags
    weeks = int(args[0]) if args else 4

    mode_label = 'DRY RUN' if dry_run else ('Rebuilding ALL' if rebuild_all else 'Generating MISSING')
    print(f'{mode_label} summaries for the last {weeks} week(s)...')

    setup_logging()
    conn = get_conn(settings.db_path)
    migrate(conn)
    backfill_period_summaries(conn, weeks=weeks, only_missing=not rebuild_all, dry_run=dry_run)
    print('Done.')
