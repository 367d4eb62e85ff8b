from __future__ import annotations

# Thresholds and knobs (unit: percent unless noted)
TREND_THRESHOLD = 0.10               # fraction of previous value
CALORIE_TOLERANCE = 0.10             # +/- band around the calorie target

BUDGET_WARNING_PCT = 80.0
BUDGET_DANGER_PCT = 90.0
BUDGET_OVER_PCT = 100.0
WEEKS_PER_MONTH = 4                  # weekly budget = monthly income / 4

# Per-domain highlights
MAX_HIGHLIGHTS = 3
HIGHLIGHT_STREAK_MIN = 3
HIGHLIGHT_CALORIE_DAYS_MIN = 5
HIGHLIGHT_WATER_DAYS_MIN = 5
HIGHLIGHT_WORKOUTS_MIN = 4
FINANCE_TOP_CATEGORY_SHARE = 0.5     # top category > half of spend

# Team wins
MAX_TEAM_WINS = 3
TEAM_ACTIVE_WORKOUTS_MIN = 3
TEAM_CALORIE_DAYS_MIN = 5
TEAM_STRONG_WORKOUTS_MIN = 5
TEAM_STRONG_STREAK_MIN = 5
TEAM_BUDGET_DAYS_MIN = 6
TEAM_SAVINGS_PROGRESS_MIN = 50
TEAM_WATER_DAYS_MIN = 5

# Shared insights
MAX_TEAMMATE_NOTES = 5

# Notification copy
PUSH_TITLE = "\U0001f4ca Week in Review"
PUSH_CHANNEL_ID = "weekly-summary"
PUSH_DATA_TYPE = "combined_weekly_summary"
