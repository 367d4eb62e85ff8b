from datetime import date
from fastapi import APIRouter, BackgroundTasks, HTTPException
from .schemas import SummaryRun, StatusResponse, TeamSummaryRunRequest, DismissResponse
from ..pipeline.orchestrator import trigger_team_summary, get_status, subject_timezone
from ..pipeline.persist import get_combined_summary, dismiss_combined_summary, get_period_summary
from ..pipeline.readers import list_profiles, get_expenses, get_savings_goals
from ..pipeline.calendar import PERIOD_TYPES, local_today, month_bounds, month_end
from ..pipeline.budget import build_budget_tracking
from ..utils import now_utc
from ..config import settings
from ..db import get_conn, migrate

router = APIRouter()

_DOMAINS = ("fitness", "finance")

def _conn():
    conn = get_conn(settings.db_path)
    migrate(conn)
    return conn

def _check_date(value: str, name: str) -> str:
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise HTTPException(400, f'{name} must be YYYY-MM-DD')

@router.get(
    '/health',
    summary="Health check",
    description="Returns service and DB connectivity plus last run metadata.",
    tags=["Health"],
)
def health():
    try:
        conn = _conn()
        cur = conn.cursor()
        row = cur.execute(
            "SELECT run_id, status, started_at_utc, finished_at_utc FROM runs ORDER BY started_at_utc DESC LIMIT 1"
        ).fetchone()
        last = None
        if row:
            last = {'run_id': row[0], 'status': row[1], 'started_at_utc': row[2], 'finished_at_utc': row[3]}
        return {'ok': True, 'db': 'ok', 'last_run': last}
    except Exception as e:
        raise HTTPException(503, f'db_error: {e}')

@router.post(
    '/runs/team-summary',
    response_model=SummaryRun,
    status_code=202,
    summary="Trigger team summary run",
    description="Starts the summary pass in the background. force=true ignores each subject's trigger window.",
    tags=["Runs"],
)
def run_team_summary(background: BackgroundTasks, req: TeamSummaryRunRequest | None = None):
    force = bool(req and req.force)
    run_id = trigger_team_summary(background, force=force)
    return SummaryRun(run_id=run_id)

@router.get(
    '/status/{run_id}',
    response_model=StatusResponse,
    summary="Get run status",
    description="Return status and counters for a given run_id.",
    tags=["Runs"],
)
def status(run_id: str):
    st = get_status(run_id)
    if not st:
        raise HTTPException(404, 'run not found')
    return st

@router.get(
    '/subjects/{subject_id}/combined-summary',
    summary="Get combined weekly summary",
    description="Latest non-dismissed week, or the week given by week_start. Marks the record viewed.",
    tags=["Summaries"],
)
def combined_summary(subject_id: str, week_start: str | None = None):
    if week_start is not None:
        week_start = _check_date(week_start, 'week_start')
    out = get_combined_summary(_conn(), subject_id, week_start)
    if not out:
        raise HTTPException(404, 'combined summary not found')
    return out

@router.post(
    '/subjects/{subject_id}/combined-summary/{week_start}/dismiss',
    response_model=DismissResponse,
    summary="Dismiss combined summary",
    tags=["Summaries"],
)
def dismiss_summary(subject_id: str, week_start: str):
    week_start = _check_date(week_start, 'week_start')
    conn = _conn()
    if get_combined_summary(conn, subject_id, week_start, mark_viewed=False) is None:
        raise HTTPException(404, 'combined summary not found')
    dismissed = dismiss_combined_summary(conn, subject_id, week_start)
    return DismissResponse(subject_id=subject_id, week_start=week_start, dismissed=dismissed)

@router.get(
    '/subjects/{subject_id}/summaries/{domain}/{period_type}/{period_start}',
    summary="Get domain period summary",
    tags=["Summaries"],
)
def period_summary(subject_id: str, domain: str, period_type: str, period_start: str):
    if domain not in _DOMAINS:
        raise HTTPException(400, 'domain must be fitness|finance')
    if period_type not in PERIOD_TYPES:
        raise HTTPException(400, 'period_type must be weekly|monthly')
    period_start = _check_date(period_start, 'period_start')
    out = get_period_summary(_conn(), domain, period_type, subject_id, period_start)
    if not out:
        raise HTTPException(404, 'summary not found')
    return out

@router.get(
    '/subjects/{subject_id}/budget',
    summary="Live budget tracking",
    description="Needs/wants/savings usage for the subject's current local month.",
    tags=["Budget"],
)
def budget(subject_id: str):
    conn = _conn()
    profiles = list_profiles(conn).get(subject_id) or {}
    finance = profiles.get('finance')
    if not finance:
        raise HTTPException(404, 'finance profile not found')
    persona = finance.get('persona') or {}
    today = local_today(now_utc(), subject_timezone(profiles, settings.default_tz))
    first, _ = month_bounds(today)
    return build_budget_tracking(
        persona.get('monthly_income') or 0,
        persona.get('budget_split'),
        get_expenses(conn, subject_id, first, month_end(first)),
        get_savings_goals(conn, subject_id),
        today,
        default_split=settings.default_budget_split,
    )
