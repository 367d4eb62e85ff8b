import sqlite3
from pathlib import Path

def get_conn(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, isolation_level=None)  # autocommit
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn

DDL = [
    # Domain profiles owned by the chat app ('fitness'|'finance')
    """
CREATE TABLE IF NOT EXISTS profiles (
  subject_id TEXT NOT NULL,
  domain TEXT NOT NULL,
  profile_id TEXT NOT NULL,
  name TEXT,
  timezone TEXT,
  notifications_enabled INTEGER NOT NULL DEFAULT 1,
  persona_json TEXT,
  settings_json TEXT,
  PRIMARY KEY (subject_id, domain)
);
""",

    # Per-day rollups written by the logging subsystem (read-only here)
    """
CREATE TABLE IF NOT EXISTS daily_metrics (
  subject_id TEXT NOT NULL,
  date TEXT NOT NULL,
  total_calories REAL NOT NULL DEFAULT 0,
  total_protein_g REAL NOT NULL DEFAULT 0,
  total_carbs_g REAL NOT NULL DEFAULT 0,
  total_fat_g REAL NOT NULL DEFAULT 0,
  meal_count INTEGER NOT NULL DEFAULT 0,
  total_water_ml REAL NOT NULL DEFAULT 0,
  workout_count INTEGER NOT NULL DEFAULT 0,
  workout_mins REAL NOT NULL DEFAULT 0,
  total_spent REAL NOT NULL DEFAULT 0,
  total_income REAL NOT NULL DEFAULT 0,
  expense_count INTEGER NOT NULL DEFAULT 0,
  PRIMARY KEY (subject_id, date)
);
""",

    """
CREATE TABLE IF NOT EXISTS expenses (
  id TEXT PRIMARY KEY,
  subject_id TEXT NOT NULL,
  amount REAL NOT NULL,
  category TEXT,
  description TEXT,
  expense_date TEXT NOT NULL,
  created_at_utc TEXT
);
""",
    "CREATE INDEX IF NOT EXISTS ix_expenses_subject_date ON expenses(subject_id, expense_date);",

    """
CREATE TABLE IF NOT EXISTS income (
  id TEXT PRIMARY KEY,
  subject_id TEXT NOT NULL,
  amount REAL NOT NULL,
  category TEXT,
  description TEXT,
  income_date TEXT NOT NULL,
  created_at_utc TEXT
);
""",
    "CREATE INDEX IF NOT EXISTS ix_income_subject_date ON income(subject_id, income_date);",

    """
CREATE TABLE IF NOT EXISTS savings_goals (
  id TEXT PRIMARY KEY,
  subject_id TEXT NOT NULL,
  name TEXT,
  target_amount REAL NOT NULL DEFAULT 0,
  current_amount REAL NOT NULL DEFAULT 0,
  target_date TEXT,
  created_at_utc TEXT,
  completed_at_utc TEXT
);
""",

    # Cross-domain events posted by the chat agents
    """
CREATE TABLE IF NOT EXISTS shared_insights (
  id TEXT PRIMARY KEY,
  subject_id TEXT NOT NULL,
  source_domain TEXT NOT NULL,
  source_name TEXT,
  insight_type TEXT NOT NULL,
  data_json TEXT,
  created_at_utc TEXT NOT NULL,
  expires_at_utc TEXT NOT NULL
);
""",
    "CREATE INDEX IF NOT EXISTS ix_shared_insights_subject_time ON shared_insights(subject_id, created_at_utc DESC);",

    """
CREATE TABLE IF NOT EXISTS push_tokens (
  subject_id TEXT NOT NULL,
  token TEXT NOT NULL,
  platform TEXT,
  PRIMARY KEY (subject_id, token)
);
""",

    # Engine-owned summaries
    """
CREATE TABLE IF NOT EXISTS period_summaries (
  domain TEXT NOT NULL,        -- 'fitness'|'finance'
  period_type TEXT NOT NULL,   -- 'weekly'|'monthly'
  subject_id TEXT NOT NULL,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  payload_json TEXT NOT NULL,
  payload_sha256 TEXT NOT NULL,
  is_complete INTEGER NOT NULL DEFAULT 0,
  created_at_utc TEXT NOT NULL,
  updated_at_utc TEXT NOT NULL,
  PRIMARY KEY (domain, period_type, subject_id, period_start)
);
""",
    "CREATE INDEX IF NOT EXISTS ix_period_summaries_subject ON period_summaries(subject_id, domain, period_type, period_start DESC);",

    """
CREATE TABLE IF NOT EXISTS combined_summaries (
  subject_id TEXT NOT NULL,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  payload_json TEXT NOT NULL,
  payload_sha256 TEXT NOT NULL,
  is_complete INTEGER NOT NULL DEFAULT 0,
  viewed INTEGER NOT NULL DEFAULT 0,
  dismissed_at_utc TEXT,
  created_at_utc TEXT NOT NULL,
  updated_at_utc TEXT NOT NULL,
  PRIMARY KEY (subject_id, period_start)
);
""",

    # Runs table
    """
CREATE TABLE IF NOT EXISTS runs (
  run_id TEXT PRIMARY KEY,
  started_at_utc TEXT NOT NULL,
  finished_at_utc TEXT,
  status TEXT NOT NULL,   -- 'running'|'succeeded'|'failed'
  error_message TEXT,
  subjects_seen INTEGER NOT NULL DEFAULT 0,
  subjects_processed INTEGER NOT NULL DEFAULT 0,
  subjects_failed INTEGER NOT NULL DEFAULT 0,
  subjects_skipped INTEGER NOT NULL DEFAULT 0,
  summaries_written INTEGER NOT NULL DEFAULT 0,
  notifications_sent INTEGER NOT NULL DEFAULT 0
);
""",
]

def migrate(conn: sqlite3.Connection):
    cur = conn.cursor()
    for stmt in DDL:
        cur.execute(stmt)
    conn.commit()
