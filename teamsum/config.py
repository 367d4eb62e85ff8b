from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)
    db_path: str = Field(default="./data/teamsum.db", alias="DB_PATH")
    default_tz: str = Field(default="UTC", alias="DEFAULT_TZ")
    # Python weekday numbering: Monday=0 .. Sunday=6
    trigger_weekday: int = Field(default=6, alias="TRIGGER_WEEKDAY")
    trigger_hour: int = Field(default=19, alias="TRIGGER_HOUR")
    scheduler_enabled: int = Field(default=1, alias="SCHEDULER_ENABLED")
    scheduler_minute: int = Field(default=0, alias="SCHEDULER_MINUTE")
    run_time_budget_seconds: int = Field(default=3000, alias="RUN_TIME_BUDGET_SECONDS")
    expo_push_url: str = Field(default="https://exp.host/--/api/v2/push/send", alias="EXPO_PUSH_URL")
    expo_access_token: str | None = Field(default=None, alias="EXPO_ACCESS_TOKEN")
    push_timeout_seconds: float = Field(default=15.0, alias="PUSH_TIMEOUT_SECONDS")
    io_retry_attempts: int = Field(default=3, alias="IO_RETRY_ATTEMPTS")
    io_retry_backoff_seconds: float = Field(default=1.0, alias="IO_RETRY_BACKOFF_SECONDS")
    default_target_calories: float = Field(default=2000.0, alias="DEFAULT_TARGET_CALORIES")
    default_target_water_ml: float = Field(default=2000.0, alias="DEFAULT_TARGET_WATER_ML")
    default_budget_split: str = Field(default="50/30/20", alias="DEFAULT_BUDGET_SPLIT")
    shared_insights_lookback_days: int = Field(default=7, alias="SHARED_INSIGHTS_LOOKBACK_DAYS")

settings = Settings()
