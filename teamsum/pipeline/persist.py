import json
import sqlite3

import structlog

from ..utils import now_utc_iso, sha256_json
from .validation import validate_combined_summary, validate_period_summary

log = structlog.get_logger()

# Wall-clock fields; they never make two records "different".
HASH_EXCLUDED_KEYS = ("is_complete", "updated_at_utc")

RUN_COUNTERS = (
    "subjects_seen",
    "subjects_processed",
    "subjects_failed",
    "subjects_skipped",
    "summaries_written",
    "notifications_sent",
)


class SummaryValidationError(ValueError):
    def __init__(self, kind: str, reasons: list[str]):
        super().__init__(f"{kind} invalid: {'; '.join(reasons)}")
        self.kind = kind
        self.reasons = reasons


def content_hash(record: dict) -> str:
    return sha256_json({k: v for k, v in record.items() if k not in HASH_EXCLUDED_KEYS})


def _write_if_changed(conn: sqlite3.Connection, select_sql: str, key: tuple, write_sql: str, params: tuple, sha: str, complete: bool) -> bool:
    cur = conn.cursor()
    cur.execute("BEGIN")
    try:
        existing = cur.execute(select_sql, key).fetchone()
        if existing and existing[0] == sha and bool(existing[1]) == complete:
            cur.execute("COMMIT")
            return False
        cur.execute(write_sql, params)
        cur.execute("COMMIT")
    except Exception:
        cur.execute("ROLLBACK")
        raise
    return True


def upsert_period_summary(
    conn: sqlite3.Connection,
    domain: str,
    period_type: str,
    subject_id: str,
    period_start: str,
    record: dict,
) -> bool:
    """Insert or replace one PeriodSummary; returns False when nothing changed."""
    ok, reasons = validate_period_summary(record)
    if not ok:
        raise SummaryValidationError("period_summary", reasons)
    sha = content_hash(record)
    complete = bool(record.get("is_complete"))
    now = now_utc_iso()
    wrote = _write_if_changed(
        conn,
        """
        SELECT payload_sha256, is_complete FROM period_summaries
        WHERE domain=? AND period_type=? AND subject_id=? AND period_start=?
        """,
        (domain, period_type, subject_id, str(period_start)),
        """
        INSERT INTO period_summaries(domain, period_type, subject_id, period_start, period_end, payload_json, payload_sha256, is_complete, created_at_utc, updated_at_utc)
        VALUES(?,?,?,?,?,?,?,?,?,?)
        ON CONFLICT(domain, period_type, subject_id, period_start) DO UPDATE SET
          period_end=excluded.period_end,
          payload_json=excluded.payload_json,
          payload_sha256=excluded.payload_sha256,
          is_complete=excluded.is_complete,
          updated_at_utc=excluded.updated_at_utc
        """,
        (
            domain,
            period_type,
            subject_id,
            str(period_start),
            record.get("period_end"),
            json.dumps(record, default=str),
            sha,
            1 if complete else 0,
            now,
            now,
        ),
        sha,
        complete,
    )
    log.debug(
        "period_summary_upserted" if wrote else "period_summary_unchanged",
        domain=domain,
        period_type=period_type,
        subject_id=subject_id,
        period_start=str(period_start),
    )
    return wrote


def upsert_combined_summary(conn: sqlite3.Connection, subject_id: str, period_start: str, record: dict) -> bool:
    """Insert or replace the combined record; ``viewed`` and ``dismissed_at_utc`` survive re-runs."""
    ok, reasons = validate_combined_summary(record)
    if not ok:
        raise SummaryValidationError("combined_summary", reasons)
    sha = content_hash(record)
    complete = bool(record.get("is_complete"))
    now = now_utc_iso()
    wrote = _write_if_changed(
        conn,
        "SELECT payload_sha256, is_complete FROM combined_summaries WHERE subject_id=? AND period_start=?",
        (subject_id, str(period_start)),
        """
        INSERT INTO combined_summaries(subject_id, period_start, period_end, payload_json, payload_sha256, is_complete, viewed, created_at_utc, updated_at_utc)
        VALUES(?,?,?,?,?,?,0,?,?)
        ON CONFLICT(subject_id, period_start) DO UPDATE SET
          period_end=excluded.period_end,
          payload_json=excluded.payload_json,
          payload_sha256=excluded.payload_sha256,
          is_complete=excluded.is_complete,
          updated_at_utc=excluded.updated_at_utc
        """,
        (
            subject_id,
            str(period_start),
            record.get("period_end"),
            json.dumps(record, default=str),
            sha,
            1 if complete else 0,
            now,
            now,
        ),
        sha,
        complete,
    )
    log.debug(
        "combined_summary_upserted" if wrote else "combined_summary_unchanged",
        subject_id=subject_id,
        week_start=str(period_start),
    )
    return wrote


def get_period_summary(conn: sqlite3.Connection, domain: str, period_type: str, subject_id: str, period_start: str):
    cur = conn.cursor()
    row = cur.execute(
        """
        SELECT payload_json, is_complete, updated_at_utc FROM period_summaries
        WHERE domain=? AND period_type=? AND subject_id=? AND period_start=?
        """,
        (domain, period_type, subject_id, str(period_start)),
    ).fetchone()
    if not row:
        return None
    payload = json.loads(row[0])
    payload["is_complete"] = bool(row[1])
    payload["updated_at_utc"] = row[2]
    return payload


def _combined_row(row) -> dict:
    payload = json.loads(row[0])
    payload.update(
        {
            "is_complete": bool(row[1]),
            "viewed": bool(row[2]),
            "dismissed_at_utc": row[3],
            "created_at_utc": row[4],
            "updated_at_utc": row[5],
        }
    )
    return payload


def get_combined_summary(conn: sqlite3.Connection, subject_id: str, period_start: str | None = None, mark_viewed: bool = True):
    """Fetch one week (or the latest non-dismissed week) and flip ``viewed`` on first read.

    The returned ``viewed`` is the state before this read, so the first reader sees False.
    """
    cur = conn.cursor()
    cols = "payload_json, is_complete, viewed, dismissed_at_utc, created_at_utc, updated_at_utc, period_start"
    if period_start is not None:
        row = cur.execute(
            f"SELECT {cols} FROM combined_summaries WHERE subject_id=? AND period_start=?",
            (subject_id, str(period_start)),
        ).fetchone()
    else:
        row = cur.execute(
            f"""
            SELECT {cols} FROM combined_summaries
            WHERE subject_id=? AND dismissed_at_utc IS NULL
            ORDER BY period_start DESC LIMIT 1
            """,
            (subject_id,),
        ).fetchone()
    if not row:
        return None
    out = _combined_row(row)
    if mark_viewed and not out["viewed"]:
        cur.execute(
            "UPDATE combined_summaries SET viewed=1 WHERE subject_id=? AND period_start=?",
            (subject_id, row[6]),
        )
    return out


def dismiss_combined_summary(conn: sqlite3.Connection, subject_id: str, period_start: str) -> bool:
    cur = conn.cursor()
    cur.execute(
        "UPDATE combined_summaries SET dismissed_at_utc=? WHERE subject_id=? AND period_start=? AND dismissed_at_utc IS NULL",
        (now_utc_iso(), subject_id, str(period_start)),
    )
    return cur.rowcount > 0


def start_run(conn: sqlite3.Connection, run_id: str):
    conn.execute(
        "INSERT OR REPLACE INTO runs(run_id, started_at_utc, status) VALUES(?,?,?)",
        (run_id, now_utc_iso(), "running"),
    )


def _counter_values(counters: dict | None) -> list[int]:
    counters = counters or {}
    return [int(counters.get(name, 0)) for name in RUN_COUNTERS]


def finish_run_ok(conn: sqlite3.Connection, run_id: str, counters: dict | None = None):
    conn.execute(
        f"UPDATE runs SET finished_at_utc=?, status=?, {', '.join(f'{c}=?' for c in RUN_COUNTERS)} WHERE run_id=?",
        (now_utc_iso(), "succeeded", *_counter_values(counters), run_id),
    )


def finish_run_fail(conn: sqlite3.Connection, run_id: str, err: str, counters: dict | None = None):
    conn.execute(
        f"UPDATE runs SET finished_at_utc=?, status=?, error_message=?, {', '.join(f'{c}=?' for c in RUN_COUNTERS)} WHERE run_id=?",
        (now_utc_iso(), "failed", err[:1000], *_counter_values(counters), run_id),
    )


def get_run_status(conn: sqlite3.Connection, run_id: str):
    cur = conn.cursor()
    row = cur.execute(
        f"SELECT run_id, started_at_utc, finished_at_utc, status, error_message, {', '.join(RUN_COUNTERS)} FROM runs WHERE run_id=?",
        (run_id,),
    ).fetchone()
    if not row:
        return None
    out = {
        "run_id": row[0],
        "started_at_utc": row[1],
        "finished_at_utc": row[2],
        "status": row[3],
        "error_message": row[4],
    }
    out.update(dict(zip(RUN_COUNTERS, row[5:])))
    return out
