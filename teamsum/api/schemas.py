from pydantic import BaseModel
from typing import Optional, Literal

class SummaryRun(BaseModel):
    run_id: str

class TeamSummaryRunRequest(BaseModel):
    force: bool = False

class StatusResponse(BaseModel):
    run_id: str
    status: Literal['running','succeeded','failed']
    started_at_utc: str
    finished_at_utc: Optional[str] = None
    error_message: Optional[str] = None
    subjects_seen: int = 0
    subjects_processed: int = 0
    subjects_failed: int = 0
    subjects_skipped: int = 0
    summaries_written: int = 0
    notifications_sent: int = 0

class DismissResponse(BaseModel):
    subject_id: str
    week_start: str
    dismissed: bool
