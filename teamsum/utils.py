import hashlib, json
import time as time_module
from datetime import datetime, timezone

import structlog

log = structlog.get_logger()

def sha256_json(obj) -> str:
    """Stable content hash: sorted keys, dates and other non-JSON values stringified."""
    return hashlib.sha256(json.dumps(obj, sort_keys=True, default=str).encode()).hexdigest()

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def now_utc_iso() -> str:
    return now_utc().isoformat()

def ensure_utc(dt: datetime | None) -> datetime:
    # Naive datetimes are taken as UTC; None means "now".
    if dt is None:
        return now_utc()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def retry_call(
    fn,
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 5.0,
    deadline: float | None = None,
    retry_on_result=None,
    retry_exceptions: tuple = (Exception,),
    label: str | None = None,
):
    """Call ``fn`` up to ``attempts`` times with exponential backoff.

    Only ``retry_exceptions`` are retried; anything else propagates at once.
    When ``retry_on_result`` flags the last attempt's result, that result is returned.
    ``deadline`` is a ``time.monotonic()`` value; crossing it raises TimeoutError.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    for attempt in range(1, attempts + 1):
        if deadline is not None and time_module.monotonic() >= deadline:
            raise TimeoutError("time_budget_exceeded")
        try:
            result = fn()
        except retry_exceptions as exc:
            if attempt >= attempts:
                raise
            log.warning("io_retry", call=label, attempt=attempt, err=str(exc), err_type=type(exc).__name__)
            _sleep_with_deadline(base_delay, attempt, max_delay, deadline)
            continue
        if retry_on_result and retry_on_result(result) and attempt < attempts:
            log.warning("io_retry", call=label, attempt=attempt, reason="result")
            _sleep_with_deadline(base_delay, attempt, max_delay, deadline)
            continue
        return result

def _sleep_with_deadline(base_delay: float, attempt: int, max_delay: float, deadline: float | None):
    delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
    if deadline is not None:
        remaining = deadline - time_module.monotonic()
        if remaining <= 0:
            raise TimeoutError("time_budget_exceeded")
        delay = min(delay, max(0.0, remaining))
    if delay > 0:
        time_module.sleep(delay)
