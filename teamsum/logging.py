import logging
import os
import structlog
import sys
from pathlib import Path
from dotenv import load_dotenv

# Third-party loggers that follow LOG_LEVEL; httpx stays at WARNING (one line per push otherwise).
_FOLLOW_LEVEL = ("uvicorn", "uvicorn.error", "uvicorn.access", "apscheduler")


def _renderer(fmt: str):
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def setup_logging():
    """Configure stdlib handlers and structlog from the environment.

    LOG_LEVEL sets stdout verbosity, LOG_ERROR_FILE adds an ERROR-only file sink,
    LOG_FORMAT picks ``json`` (default) or ``console``. Context bound with
    ``structlog.contextvars`` (run_id, subject_id) is merged into every event.
    """
    env_path = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(dotenv_path=env_path)
    log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_format = os.getenv("LOG_FORMAT", "json").strip().lower()
    error_log_path = os.getenv("LOG_ERROR_FILE", "").strip()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    formatter = logging.Formatter("%(message)s")

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setLevel(log_level)
    stdout.setFormatter(formatter)
    root.addHandler(stdout)

    if error_log_path:
        Path(error_log_path).parent.mkdir(parents=True, exist_ok=True)
        errors = logging.FileHandler(error_log_path)
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        root.addHandler(errors)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(log_format),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
    )
    for name in _FOLLOW_LEVEL:
        logging.getLogger(name).setLevel(log_level)
    logging.getLogger("httpx").setLevel(logging.WARNING)
