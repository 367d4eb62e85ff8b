from __future__ import annotations
import asyncio
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from dateutil import tz
import structlog

from ..config import settings
from ..pipeline.orchestrator import run_from_settings

_log = structlog.get_logger()
_scheduler: AsyncIOScheduler | None = None

def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=tz.UTC)
    return _scheduler

def schedule_jobs(sched: AsyncIOScheduler | None = None, start: bool = True) -> AsyncIOScheduler:
    sched = sched or get_scheduler()
    # Hourly; each subject is gated on its own local trigger window.
    sched.add_job(
        run_hourly,
        CronTrigger(minute=settings.scheduler_minute, timezone=tz.UTC),
        id="team_summary_hourly",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    if start:
        sched.start()
        _log.info("team_summary_scheduler_started", minute=settings.scheduler_minute)
    return sched

def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        _log.info("team_summary_scheduler_stopped")
    _scheduler = None

async def run_hourly():
    try:
        result = await asyncio.to_thread(run_from_settings)
    except Exception as e:
        _log.error("team_summary_job_failed", err=str(e))
        return
    _log.info("team_summary_job_done", **result)
